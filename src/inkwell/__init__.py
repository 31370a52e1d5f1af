"""inkwell: text-transformation engine for a rich-text editor."""

__version__ = "0.1.0"
