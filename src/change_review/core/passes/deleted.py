"""Deleted function detection.

Every function definition removed by the diff is reported. When the
repository is available, test files next to the changed file are searched
for the name; a deleted function that tests still reference is an error.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath

import structlog

from change_review.models.diff import DiffSet
from change_review.models.finding import Finding, RiskLevel, Severity

from ._common import deleted_lines, match_function_name, word_pattern

log = structlog.get_logger()

PASS_NAME = "deleted"

# Relative to the changed file's directory
TEST_FILE_GLOBS: tuple[str, ...] = (
    "*_test.*",
    "test_*",
    "*_spec.*",
    "*/*_test.*",
)


def find_test_references(repo_root: Path | None, file_path: str, function_name: str) -> list[str]:
    """Return repository-relative test files that mention ``function_name``.

    Unreadable files are skipped; a missing repository yields no references.
    """
    if repo_root is None:
        return []

    directory = repo_root / PurePosixPath(file_path).parent
    pattern = word_pattern(function_name)
    references: list[str] = []

    for glob in TEST_FILE_GLOBS:
        for candidate in sorted(directory.glob(glob)):
            if not candidate.is_file():
                continue
            try:
                content = candidate.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                log.debug("test_file_unreadable", path=str(candidate), error=str(e))
                continue
            if not pattern.search(content):
                continue
            relative = candidate.relative_to(repo_root).as_posix()
            if relative not in references:
                references.append(relative)

    return references


def deleted_code_pass(diff_set: DiffSet, repo_root: Path | None = None) -> list[Finding]:
    """Report deleted function definitions, escalating those tests still use."""
    findings: list[Finding] = []

    for file in diff_set.files:
        name = file.name()

        for number, text in deleted_lines(file):
            function_name = match_function_name(text)
            if function_name is None:
                continue

            references = find_test_references(repo_root, file.path, function_name)
            if references:
                findings.append(
                    Finding(
                        pass_name=PASS_NAME,
                        file=name,
                        line=number,
                        message=(
                            f'Deleted function "{function_name}" is referenced in tests: '
                            f"{', '.join(references)}"
                        ),
                        severity=Severity.ERROR,
                        risk=RiskLevel.HIGH,
                    )
                )
            else:
                findings.append(
                    Finding(
                        pass_name=PASS_NAME,
                        file=name,
                        line=number,
                        message=f"Deleted function: {function_name}",
                        severity=Severity.INFO,
                        risk=RiskLevel.LOW,
                    )
                )

    return findings
