"""Data models for parsed unified diffs."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum


class LineOp(StrEnum):
    """Operation of a single hunk line, keyed by its diff prefix."""

    CONTEXT = " "
    ADD = "+"
    DELETE = "-"


@dataclass(frozen=True)
class Line:
    """One line of a hunk, without its prefix or trailing newline."""

    op: LineOp
    text: str
    no_newline_at_eof: bool = False  # followed by "\ No newline at end of file"


@dataclass(frozen=True)
class NumberedLine:
    """A hunk line together with its position in the old and new file.

    ``old_number`` is None for added lines and ``new_number`` is None for
    deleted lines.
    """

    line: Line
    old_number: int | None
    new_number: int | None

    @property
    def number(self) -> int:
        """Line number in the file the line belongs to (old file for deletions)."""
        if self.line.op == LineOp.DELETE:
            return self.old_number or 0
        return self.new_number or 0


@dataclass(frozen=True)
class Fragment:
    """A single hunk: a contiguous block of changes in one file."""

    old_position: int
    old_lines: int
    new_position: int
    new_lines: int
    lines: tuple[Line, ...] = ()
    comment: str = ""

    def numbered(self) -> Iterator[NumberedLine]:
        """Walk the hunk, assigning old/new file line numbers.

        Context and delete lines advance the old counter; context and add
        lines advance the new counter.
        """
        old_number = self.old_position
        new_number = self.new_position
        for line in self.lines:
            if line.op == LineOp.ADD:
                yield NumberedLine(line, None, new_number)
                new_number += 1
            elif line.op == LineOp.DELETE:
                yield NumberedLine(line, old_number, None)
                old_number += 1
            else:
                yield NumberedLine(line, old_number, new_number)
                old_number += 1
                new_number += 1

    @property
    def header(self) -> str:
        """The ``@@ -a,b +c,d @@ comment`` line for this hunk."""
        text = f"@@ -{self.old_position},{self.old_lines} +{self.new_position},{self.new_lines} @@"
        if self.comment:
            text = f"{text} {self.comment}"
        return text


@dataclass(frozen=True)
class File:
    """All changes to a single file."""

    old_name: str = ""
    new_name: str = ""
    is_new: bool = False
    is_deleted: bool = False
    is_renamed: bool = False
    is_binary: bool = False
    fragments: tuple[Fragment, ...] = ()
    old_mode: str = ""
    new_mode: str = ""
    added_lines: int = field(init=False)
    deleted_lines: int = field(init=False)

    def __post_init__(self) -> None:
        added = 0
        deleted = 0
        for fragment in self.fragments:
            for line in fragment.lines:
                if line.op == LineOp.ADD:
                    added += 1
                elif line.op == LineOp.DELETE:
                    deleted += 1
        object.__setattr__(self, "added_lines", added)
        object.__setattr__(self, "deleted_lines", deleted)

    def name(self) -> str:
        """Display name for the file.

        Renamed files render as ``old → new``; new files show the new name
        and deleted files the old one.
        """
        if self.is_renamed:
            return f"{self.old_name} → {self.new_name}"
        if self.is_new:
            return self.new_name
        if self.is_deleted:
            return self.old_name
        return self.new_name or self.old_name

    @property
    def path(self) -> str:
        """Repository-relative path of the file as it exists after the change."""
        if self.is_deleted:
            return self.old_name
        return self.new_name or self.old_name


@dataclass(frozen=True)
class DiffSet:
    """A parsed diff: files in the order they appeared in the source text."""

    files: tuple[File, ...] = ()
    raw: str = ""

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self) -> Iterator[File]:
        return iter(self.files)

    def stats(self) -> tuple[int, int, int]:
        """Return ``(file_count, added_lines, deleted_lines)``."""
        added = sum(f.added_lines for f in self.files)
        deleted = sum(f.deleted_lines for f in self.files)
        return len(self.files), added, deleted
