"""Review decisions over a parsed diff.

A ``ReviewSession`` holds one decision per file, indexed by the file's
position in the DiffSet. Approving or rejecting a file moves the active
file forward to the next undecided one; when the reviewer is done the
approved subset becomes a patch and a commit message.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import PurePosixPath

import structlog

from change_review.core.analyzer import Results
from change_review.core.patch_writer import format_patch
from change_review.errors import DecisionStateError
from change_review.models.diff import DiffSet, File
from change_review.models.finding import Finding
from change_review.models.review import DecisionCounts, ReviewDecision
from change_review.models.trace import TraceStep
from change_review.utils.logging import LogEventNames
from change_review.utils.metrics import get_metrics

log = structlog.get_logger()


class ReviewSession:
    """Per-file accept/reject state for one review.

    Example:
        session = ReviewSession(diff_set, results)
        session.approve(0)
        session.reject(1)
        patch = session.generate_patch()
    """

    def __init__(
        self,
        diff_set: DiffSet,
        results: Results | None = None,
        steps: Sequence[TraceStep] = (),
    ) -> None:
        self.diff_set = diff_set
        self.results = results or Results()
        self.steps = tuple(steps)
        self._decisions = [ReviewDecision.PENDING] * len(diff_set.files)
        self.active_index = 0

    @property
    def files(self) -> tuple[File, ...]:
        return self.diff_set.files

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._decisions):
            raise DecisionStateError(index, len(self._decisions))

    def decision(self, index: int) -> ReviewDecision:
        self._check_index(index)
        return self._decisions[index]

    def decisions(self) -> list[ReviewDecision]:
        """Snapshot of every decision in file order."""
        return list(self._decisions)

    def select(self, index: int) -> None:
        """Make ``index`` the active file."""
        self._check_index(index)
        self.active_index = index

    def approve(self, index: int) -> None:
        """Approve a file and advance to the next undecided file.

        Raises:
            DecisionStateError: If ``index`` is out of range
        """
        self._decide(index, ReviewDecision.APPROVED)

    def reject(self, index: int) -> None:
        """Reject a file and advance to the next undecided file.

        Raises:
            DecisionStateError: If ``index`` is out of range
        """
        self._decide(index, ReviewDecision.REJECTED)

    def undo(self, index: int) -> None:
        """Return a file to pending. The active file does not move."""
        self._check_index(index)
        self._decisions[index] = ReviewDecision.PENDING
        log.debug(LogEventNames.DECISION_UNDONE, file_index=index)

    def _decide(self, index: int, decision: ReviewDecision) -> None:
        self._check_index(index)
        self._decisions[index] = decision
        get_metrics().decisions.inc(labels={"decision": decision.value})
        log.debug(LogEventNames.DECISION_RECORDED, file_index=index, decision=decision.value)

        for candidate in range(index + 1, len(self._decisions)):
            if self._decisions[candidate] == ReviewDecision.PENDING:
                self.active_index = candidate
                break

    def counts(self) -> DecisionCounts:
        approved = self._decisions.count(ReviewDecision.APPROVED)
        rejected = self._decisions.count(ReviewDecision.REJECTED)
        return DecisionCounts(
            approved=approved,
            rejected=rejected,
            pending=len(self._decisions) - approved - rejected,
        )

    def _files_with(self, decision: ReviewDecision) -> list[File]:
        return [f for f, d in zip(self.files, self._decisions, strict=True) if d == decision]

    def approved_files(self) -> list[File]:
        return self._files_with(ReviewDecision.APPROVED)

    def rejected_files(self) -> list[File]:
        return self._files_with(ReviewDecision.REJECTED)

    def pending_files(self) -> list[File]:
        return self._files_with(ReviewDecision.PENDING)

    def findings_for(self, index: int) -> list[Finding]:
        """Analysis findings attached to the file at ``index``."""
        self._check_index(index)
        return self.results.by_file().get(self.files[index].name(), [])

    def steps_for(self, index: int) -> list[TraceStep]:
        """Trace steps that touched the file at ``index``.

        A step matches when its path ends with the file's path or shares
        its basename. With no matching step, every step is returned.
        """
        self._check_index(index)
        path = self.files[index].path
        base = PurePosixPath(path).name

        matching = [
            step
            for step in self.steps
            if step.file_path
            and (
                step.file_path.endswith(path)
                or path.endswith(step.file_path)
                or PurePosixPath(step.file_path).name == base
            )
        ]
        return matching or list(self.steps)

    def generate_patch(self) -> str:
        """Unified diff of the approved files, in original order.

        Returns an empty string when nothing is approved.
        """
        approved = self.approved_files()
        if not approved:
            return ""
        patch = format_patch(approved)
        get_metrics().patches_generated.inc()
        log.info(LogEventNames.PATCH_GENERATED, files=len(approved), bytes=len(patch))
        return patch

    def generate_commit_message(self) -> str:
        """Suggested commit message for the approved files.

        Returns an empty string when nothing is approved.
        """
        approved = self.approved_files()
        if not approved:
            return ""

        if len(approved) == 1:
            file = approved[0]
            if file.is_new:
                subject = f"Add {file.name()}"
            elif file.is_deleted:
                subject = f"Remove {file.name()}"
            else:
                subject = f"Update {file.name()}"
        else:
            added = sum(1 for f in approved if f.is_new)
            deleted = sum(1 for f in approved if f.is_deleted and not f.is_new)
            modified = len(approved) - added - deleted

            parts = []
            if modified:
                parts.append(f"update {modified} file(s)")
            if added:
                parts.append(f"add {added} file(s)")
            if deleted:
                parts.append(f"remove {deleted} file(s)")
            subject = ", ".join(parts)
            subject = subject[:1].upper() + subject[1:]

        lines = [subject, "", "Approved files:"]
        lines.extend(f"  - {f.name()}" for f in approved)

        rejected = self.rejected_files()
        if rejected:
            lines.append("")
            lines.append("Rejected files:")
            lines.extend(f"  - {f.name()}" for f in rejected)

        return "\n".join(lines) + "\n"
