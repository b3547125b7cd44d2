"""Data models and transfer objects."""

from .diff import DiffSet, File, Fragment, Line, LineOp, NumberedLine
from .finding import Finding, RiskLevel, Severity
from .report import (
    AnalysisReport,
    DecisionRecord,
    DiffStatsRecord,
    FileDecisionRecord,
    FileRecord,
    FindingRecord,
    ParsedReport,
    SessionSummaryRecord,
)
from .review import DecisionCounts, ReviewDecision
from .trace import StepKind, TraceStep

__all__ = [
    # Diff models
    "DiffSet",
    "File",
    "Fragment",
    "Line",
    "LineOp",
    "NumberedLine",
    # Finding models
    "Finding",
    "RiskLevel",
    "Severity",
    # Review models
    "DecisionCounts",
    "ReviewDecision",
    # Trace models
    "StepKind",
    "TraceStep",
    # Wire records
    "AnalysisReport",
    "DecisionRecord",
    "DiffStatsRecord",
    "FileDecisionRecord",
    "FileRecord",
    "FindingRecord",
    "ParsedReport",
    "SessionSummaryRecord",
]
