"""Data models for review decisions."""

from dataclasses import dataclass
from enum import StrEnum


class ReviewDecision(StrEnum):
    """Reviewer decision for one file."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class DecisionCounts:
    """Tally of decisions across every file of a session."""

    approved: int
    rejected: int
    pending: int

    @property
    def total(self) -> int:
        return self.approved + self.rejected + self.pending
