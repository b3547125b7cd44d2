"""Serializable records for parsed diffs and analysis results.

These are the shapes handed to transports and written by ``check --format
json``. Field names follow the wire format, so ``FindingRecord`` exposes
the pass under the ``pass`` key.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from change_review.core.analyzer import Results
    from change_review.models.diff import DiffSet, File
    from change_review.models.finding import Finding

RiskName = Literal["info", "low", "medium", "high", "critical"]
SeverityName = Literal["info", "warning", "error"]
DecisionName = Literal["pending", "approved", "rejected"]


class DiffStatsRecord(BaseModel):
    """Aggregate counts for a diff."""

    files: int
    added: int
    deleted: int

    @classmethod
    def from_diff_set(cls, diff_set: DiffSet) -> DiffStatsRecord:
        files, added, deleted = diff_set.stats()
        return cls(files=files, added=added, deleted=deleted)


class FindingRecord(BaseModel):
    """A single finding as exposed to clients."""

    model_config = ConfigDict(populate_by_name=True)

    pass_name: str = Field(alias="pass")
    file: str
    line: int | None = None
    message: str
    severity: SeverityName
    risk: RiskName

    @classmethod
    def from_finding(cls, finding: Finding) -> FindingRecord:
        return cls(
            pass_name=finding.pass_name,
            file=finding.file,
            line=finding.line or None,
            message=finding.message,
            severity=finding.severity.value,
            risk=str(finding.risk),
        )


class AnalysisReport(BaseModel):
    """Summary and findings of an analysis run."""

    summary: str
    max_risk: RiskName
    total: int
    findings: list[FindingRecord] = Field(default_factory=list)
    stats: DiffStatsRecord | None = None

    @classmethod
    def from_results(cls, results: Results, diff_set: DiffSet | None = None) -> AnalysisReport:
        return cls(
            summary=results.summary(),
            max_risk=str(results.max_risk()),
            total=len(results.findings),
            findings=[FindingRecord.from_finding(f) for f in results.findings],
            stats=DiffStatsRecord.from_diff_set(diff_set) if diff_set is not None else None,
        )

    def to_wire(self) -> dict[str, Any]:
        """Dump with wire field names, omitting absent line numbers and stats."""
        return self.model_dump(by_alias=True, exclude_none=True)


class FileRecord(BaseModel):
    """One file of a parsed diff."""

    name: str
    old_name: str = ""
    new_name: str = ""
    is_new: bool = False
    is_deleted: bool = False
    is_renamed: bool = False
    is_binary: bool = False
    added_lines: int
    deleted_lines: int
    fragments: int

    @classmethod
    def from_file(cls, file: File) -> FileRecord:
        return cls(
            name=file.name(),
            old_name=file.old_name,
            new_name=file.new_name,
            is_new=file.is_new,
            is_deleted=file.is_deleted,
            is_renamed=file.is_renamed,
            is_binary=file.is_binary,
            added_lines=file.added_lines,
            deleted_lines=file.deleted_lines,
            fragments=len(file.fragments),
        )


class ParsedReport(BaseModel):
    """File list and stats sent after a diff is loaded."""

    files: list[FileRecord] = Field(default_factory=list)
    stats: DiffStatsRecord

    @classmethod
    def from_diff_set(cls, diff_set: DiffSet) -> ParsedReport:
        return cls(
            files=[FileRecord.from_file(f) for f in diff_set.files],
            stats=DiffStatsRecord.from_diff_set(diff_set),
        )


class DecisionRecord(BaseModel):
    """Confirmation of a decision change for one file."""

    file_index: int
    decision: DecisionName


class FileDecisionRecord(BaseModel):
    name: str
    decision: DecisionName


class SessionSummaryRecord(BaseModel):
    """Final state of a review session."""

    approved: int
    rejected: int
    pending: int
    files: list[FileDecisionRecord] = Field(default_factory=list)
    patch: str = ""
    commit_message: str = ""
