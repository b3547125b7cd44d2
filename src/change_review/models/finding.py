"""Data models for analysis findings."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum


class RiskLevel(IntEnum):
    """Strictly ordered risk classification for a finding."""

    INFO = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    def __str__(self) -> str:
        return self.name.lower()

    def __format__(self, format_spec: str) -> str:
        return format(str(self), format_spec)

    @classmethod
    def parse(cls, value: str) -> RiskLevel:
        """Look up a risk level by its lowercase name (e.g. ``"high"``)."""
        try:
            return cls[value.upper()]
        except KeyError:
            raise ValueError(f"Unknown risk level: {value}") from None


class Severity(StrEnum):
    """How a finding should be presented to the reviewer."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Finding:
    """One located, risk-ranked observation produced by an analysis pass."""

    pass_name: str
    file: str
    message: str
    severity: Severity
    risk: RiskLevel
    line: int = 0  # 0 for file-level findings

    @property
    def location(self) -> str:
        """``file:line``, or just the file for file-level findings."""
        if self.line > 0:
            return f"{self.file}:{self.line}"
        return self.file

    def __str__(self) -> str:
        return f"[{self.pass_name}] {self.location}: {self.message}"
