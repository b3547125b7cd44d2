"""Data models for agent trace steps.

Traces are parsed by external tooling; a review session only needs the
file each step touched so it can show the steps relevant to a file.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class StepKind(StrEnum):
    """Category of an agent action."""

    PLAN = "plan"
    REASONING = "reasoning"
    READ = "read"
    WRITE = "write"
    EDIT = "edit"
    BASH = "bash"
    RESULT = "result"
    USER = "user"


@dataclass(frozen=True)
class TraceStep:
    """A single action from an agent's timeline."""

    kind: StepKind
    summary: str
    file_path: str = ""
    detail: str = ""
    timestamp: datetime | None = None
