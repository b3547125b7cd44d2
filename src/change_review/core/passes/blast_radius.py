"""Blast-radius estimation.

For every function defined or removed on a changed line, count whole-word
references across the repository's source files. Counting stops once the
reference ceiling is passed, and at most ``max_files_walked`` files are read
per name, so large repositories stay cheap to scan.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import structlog

from change_review.models.diff import DiffSet, File, LineOp
from change_review.models.finding import Finding, RiskLevel, Severity

from ._common import all_function_names, word_pattern

log = structlog.get_logger()

PASS_NAME = "blast_radius"

SKIPPED_DIRECTORIES = frozenset({"vendor", "node_modules", "dist", "build", "__pycache__"})

SOURCE_EXTENSIONS = frozenset(
    {
        ".go",
        ".py",
        ".js",
        ".ts",
        ".tsx",
        ".jsx",
        ".rb",
        ".rs",
        ".java",
        ".kt",
        ".scala",
        ".c",
        ".cpp",
        ".h",
        ".hpp",
        ".cs",
        ".ex",
        ".exs",
        ".erl",
        ".hs",
        ".ml",
        ".swift",
    }
)


def changed_function_names(file: File, min_length: int = 3) -> list[str]:
    """Function names defined on added or deleted lines, first-seen order."""
    names: list[str] = []
    for fragment in file.fragments:
        for line in fragment.lines:
            if line.op == LineOp.CONTEXT:
                continue
            for name in all_function_names(line.text):
                if len(name) >= min_length and name not in names:
                    names.append(name)
    return names


def _source_files(repo_root: Path) -> Iterator[tuple[Path, str]]:
    """Yield ``(path, relative_posix_path)`` for source files under the root."""
    for dirpath, dirnames, filenames in os.walk(repo_root):
        dirnames[:] = sorted(
            d for d in dirnames if not d.startswith(".") and d not in SKIPPED_DIRECTORIES
        )
        for filename in sorted(filenames):
            if os.path.splitext(filename)[1] not in SOURCE_EXTENSIONS:
                continue
            path = Path(dirpath) / filename
            yield path, path.relative_to(repo_root).as_posix()


class BlastRadiusPass:
    """Reference counting pass.

    Args:
        reference_ceiling: Counting stops once this many references are exceeded
        high_threshold: More references than this is a high-risk change
        medium_threshold: More references than this is a medium-risk change
        min_name_length: Shorter function names are never counted
        max_files_walked: Upper bound on source files read per name
    """

    def __init__(
        self,
        reference_ceiling: int = 20,
        high_threshold: int = 15,
        medium_threshold: int = 5,
        min_name_length: int = 3,
        max_files_walked: int = 20000,
    ) -> None:
        self.reference_ceiling = reference_ceiling
        self.high_threshold = high_threshold
        self.medium_threshold = medium_threshold
        self.min_name_length = min_name_length
        self.max_files_walked = max_files_walked

    def __call__(self, diff_set: DiffSet, repo_root: Path | None = None) -> list[Finding]:
        if repo_root is None or not repo_root.is_dir():
            return []

        findings: list[Finding] = []

        for file in diff_set.files:
            name = file.name()
            for function_name in changed_function_names(file, self.min_name_length):
                count = self.count_references(repo_root, file.path, function_name)
                if count > self.high_threshold:
                    message = (
                        f'Function "{function_name}" has {count} references (high blast radius)'
                    )
                    risk = RiskLevel.HIGH
                elif count > self.medium_threshold:
                    message = (
                        f'Function "{function_name}" has {count} references across the codebase'
                    )
                    risk = RiskLevel.MEDIUM
                else:
                    continue
                findings.append(
                    Finding(
                        pass_name=PASS_NAME,
                        file=name,
                        message=message,
                        severity=Severity.WARNING,
                        risk=risk,
                    )
                )

        return findings

    def count_references(self, repo_root: Path, source_path: str, function_name: str) -> int:
        """Count whole-word occurrences outside ``source_path``, up to just past the ceiling."""
        if len(function_name) < self.min_name_length:
            return 0

        pattern = word_pattern(function_name)
        count = 0
        walked = 0

        for path, relative in _source_files(repo_root):
            if relative == source_path:
                continue
            if walked >= self.max_files_walked:
                log.debug("blast_radius_walk_limit", function=function_name, walked=walked)
                break
            walked += 1

            try:
                content = path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                log.debug("source_file_unreadable", path=str(path), error=str(e))
                continue

            count += len(pattern.findall(content))
            if count > self.reference_ceiling:
                break

        return count


blast_radius_pass = BlastRadiusPass()
