"""Common anti-patterns in machine-authored code.

Checks added lines for:
- Broad exception handling (catch-alls, bare rescue/except)
- Commented-out code
- Leftover TODO/FIXME/HACK markers
- Near-duplicate blocks, found by hashing a sliding window of added lines
  across the whole diff
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Iterable
from pathlib import Path

from change_review.models.diff import DiffSet
from change_review.models.finding import Finding, RiskLevel, Severity

from ._common import added_lines

PASS_NAME = "anti_patterns"

DEFAULT_DUPLICATION_WINDOW = 4

BROAD_EXCEPT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?i)except\s*:"),  # Python bare except
    re.compile(r"(?i)except\s+Exception\s*:"),  # Python catch-all
    re.compile(r"(?i)catch\s*\(\s*(Exception|Error|e)\s*\)"),  # Java/C#
    re.compile(r"(?i)catch\s*\(\s*err(?:or)?\s*\)\s*\{"),
    re.compile(r"(?i)catch\s*\{"),  # Scala/Kotlin/Swift
    re.compile(r"(?i)rescue\s*$"),  # Ruby bare rescue
    re.compile(r"(?i)rescue\s+StandardError"),
    re.compile(r"\.catch\(\s*(?:_|err|\(\s*\))\s*=>"),  # JS promise swallow
)

# Lines that look like disabled code rather than prose comments
COMMENTED_CODE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"^\s*(?://|#)\s*(?:func |def |class |if |for |while |return |import |from "
        r"|const |let |var |pub fn )"
    ),
    re.compile(r"^\s*(?://|#)\s*\w+\s*[({=]"),
    re.compile(r"^\s*{?/\*.*\b(?:func|def|class|return)\b.*\*/}?"),
)

TODO_PATTERN = re.compile(r"(?i)\b(TODO|FIXME|HACK|XXX|TEMP|TEMPORARY)\b")

TRIVIAL_LINES = frozenset({"", "{", "}", "(", ")"})


def _hash_block(lines: list[str]) -> str:
    digest = hashlib.sha256()
    for line in lines:
        digest.update(line.encode("utf-8"))
        digest.update(b"\n")
    return digest.hexdigest()[:16]


class AntiPatternPass:
    """Anti-pattern pass with a configurable duplication window.

    Example:
        run = AntiPatternPass(duplication_window=6)
        findings = run(diff_set, None)
    """

    def __init__(self, duplication_window: int = DEFAULT_DUPLICATION_WINDOW) -> None:
        if duplication_window < 2:
            raise ValueError("duplication_window must be at least 2")
        self.duplication_window = duplication_window

    def __call__(self, diff_set: DiffSet, repo_root: Path | None = None) -> list[Finding]:
        findings: list[Finding] = []
        for file in diff_set.files:
            findings.extend(self._check_lines(file.name(), added_lines(file)))
        findings.extend(self._check_duplication(diff_set))
        return findings

    def _check_lines(self, name: str, lines: Iterable[tuple[int, str]]) -> list[Finding]:
        findings: list[Finding] = []

        for number, text in lines:
            stripped = text.strip()

            if any(pattern.search(text) for pattern in BROAD_EXCEPT_PATTERNS):
                message = f"Broad exception handling: {stripped}"
                findings.append(self._finding(name, number, message, RiskLevel.MEDIUM))

            if any(pattern.search(text) for pattern in COMMENTED_CODE_PATTERNS):
                findings.append(
                    self._finding(name, number, f"Commented-out code: {stripped}", RiskLevel.LOW)
                )

            marker = TODO_PATTERN.search(text)
            if marker:
                findings.append(
                    self._finding(
                        name,
                        number,
                        f"Agent left {marker.group(0)} marker: {stripped}",
                        RiskLevel.LOW,
                    )
                )

        return findings

    def _check_duplication(self, diff_set: DiffSet) -> list[Finding]:
        """Report every repeat of an added-line window, pointing at its first occurrence."""
        window = self.duplication_window
        blocks: dict[str, list[tuple[str, int]]] = {}

        for file in diff_set.files:
            name = file.name()
            significant = [
                (number, text.strip())
                for number, text in added_lines(file)
                if text.strip() not in TRIVIAL_LINES
            ]
            for start in range(len(significant) - window + 1):
                chunk = [text for _, text in significant[start : start + window]]
                blocks.setdefault(_hash_block(chunk), []).append((name, significant[start][0]))

        findings: list[Finding] = []
        for locations in blocks.values():
            if len(locations) < 2:
                continue
            first_file, first_line = locations[0]
            for file_name, line in locations[1:]:
                findings.append(
                    self._finding(
                        file_name,
                        line,
                        f"Near-duplicate code block (also at {first_file}:{first_line})",
                        RiskLevel.MEDIUM,
                    )
                )
        return findings

    @staticmethod
    def _finding(file: str, line: int, message: str, risk: RiskLevel) -> Finding:
        return Finding(
            pass_name=PASS_NAME,
            file=file,
            line=line,
            message=message,
            severity=Severity.WARNING,
            risk=risk,
        )


anti_pattern_pass = AntiPatternPass()
