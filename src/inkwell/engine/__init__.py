"""Text-transformation engine: position mapping, search, replace and footnote upkeep."""

from .footnotes import FootnoteMaintainer, MaintenanceReport
from .positions import PositionMapper
from .replace import ReplaceEngine, ReplaceMode, ReplaceOutcome, ReplaceRequest, ReplaceStatus
from .search import Match, SearchOptions, SearchSession, compile_pattern, find_all

__all__ = [
    "FootnoteMaintainer",
    "MaintenanceReport",
    "Match",
    "PositionMapper",
    "ReplaceEngine",
    "ReplaceMode",
    "ReplaceOutcome",
    "ReplaceRequest",
    "ReplaceStatus",
    "SearchOptions",
    "SearchSession",
    "compile_pattern",
    "find_all",
]
