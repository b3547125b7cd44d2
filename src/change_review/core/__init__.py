"""Core diff parsing, analysis and review logic."""

from .analyzer import AnalysisEngine, AnalysisPass, PassRegistry, Results, default_registry
from .diff_parser import DiffParser, parse_diff
from .patch_writer import format_file_patch, format_patch
from .review import ReviewSession
from .session_handler import SessionHandler

__all__ = [
    "AnalysisEngine",
    "AnalysisPass",
    "DiffParser",
    "PassRegistry",
    "Results",
    "ReviewSession",
    "SessionHandler",
    "default_registry",
    "format_file_patch",
    "format_patch",
    "parse_diff",
]
