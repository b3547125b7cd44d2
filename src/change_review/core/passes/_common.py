"""Helpers shared by the analysis passes."""

from __future__ import annotations

import re
from collections.abc import Iterator

from change_review.models.diff import File, LineOp

# Function/method definitions; group 1 is the name. Order matters: the
# first match wins for a given line.
FUNC_DEF_PATTERNS: tuple[re.Pattern[str], ...] = (
    # Go: func Name(
    re.compile(r"^\s*func\s+(\w+)\s*\("),
    # Go method: func (r *Type) Name(
    re.compile(r"^\s*func\s+\([^)]+\)\s+(\w+)\s*\("),
    # Python: def name(
    re.compile(r"^\s*def\s+(\w+)\s*\("),
    # JS/TS: function name(
    re.compile(r"^\s*(?:export\s+)?(?:async\s+)?function\s+(\w+)\s*\("),
    # JS/TS: const name = (
    re.compile(r"^\s*(?:export\s+)?(?:const|let|var)\s+(\w+)\s*=\s*(?:async\s+)?\("),
    # Ruby: def name
    re.compile(r"^\s*def\s+(\w+)"),
    # Rust: fn name( / pub fn name<
    re.compile(r"^\s*(?:pub\s+)?(?:async\s+)?fn\s+(\w+)\s*[(<]"),
    # Java/C#: visibility type name(
    re.compile(
        r"^\s*(?:public|private|protected|static|final|abstract|override|async)\s+.*?(\w+)\s*\("
    ),
    # Elixir: def name( / defp name(
    re.compile(r"^\s*defp?\s+(\w+)\s*\("),
)

COMMENT_PREFIXES = ("//", "#", "*", "/*")


def added_lines(file: File) -> Iterator[tuple[int, str]]:
    """Yield ``(new_line_number, text)`` for every added line of a file."""
    for fragment in file.fragments:
        for numbered in fragment.numbered():
            if numbered.line.op == LineOp.ADD:
                yield numbered.number, numbered.line.text


def deleted_lines(file: File) -> Iterator[tuple[int, str]]:
    """Yield ``(old_line_number, text)`` for every deleted line of a file."""
    for fragment in file.fragments:
        for numbered in fragment.numbered():
            if numbered.line.op == LineOp.DELETE:
                yield numbered.number, numbered.line.text


def match_function_name(text: str) -> str | None:
    """Return the function name defined on ``text``, if any pattern matches."""
    for pattern in FUNC_DEF_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def all_function_names(text: str) -> list[str]:
    """Return the names every pattern extracts from ``text``, in pattern order."""
    names = []
    for pattern in FUNC_DEF_PATTERNS:
        match = pattern.search(text)
        if match:
            names.append(match.group(1))
    return names


def is_comment(text: str) -> bool:
    return text.strip().startswith(COMMENT_PREFIXES)


def word_pattern(name: str) -> re.Pattern[str]:
    """Whole-word matcher for an identifier."""
    return re.compile(rf"\b{re.escape(name)}\b")
