"""Error taxonomy shared by the engine and the import boundary."""

from __future__ import annotations


class InkwellError(Exception):
    """Base class for every error raised by inkwell."""


class OutOfRange(InkwellError):
    """An offset or structural position does not exist in the current document snapshot."""


class InvalidPattern(InkwellError):
    """The search expression could not be compiled."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid search pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class ImportErrorBase(InkwellError):
    """Import boundary failure with a message suitable for the user."""

    title = "Import Failed"

    def __init__(self, user_message: str) -> None:
        super().__init__(user_message)
        self.user_message = user_message


class FileTooLarge(ImportErrorBase):
    title = "File Too Large"

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"The file is {size / (1024 * 1024):.1f} MB; the import limit is "
            f"{limit / (1024 * 1024):.0f} MB. Split the document or compress it and try again."
        )
        self.size = size
        self.limit = limit


class UnsupportedFormat(ImportErrorBase):
    title = "Unsupported Format"

    def __init__(self, name: str) -> None:
        super().__init__(f"{name} is not a supported file. Supported formats: TXT, HTML, PDF.")
        self.name = name


class ImportFailed(ImportErrorBase):
    title = "Import Failed"


class ParseWarning(UserWarning):
    """Non-fatal diagnostic reported by the PDF parser. Logged, never raised."""
