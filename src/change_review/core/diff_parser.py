"""Parser for unified diffs.

This module implements the DiffParser class that turns unified diff text
into a DiffSet. It supports:
- git extended headers (modes, renames, copies, index lines)
- plain unified diffs without a ``diff --git`` line
- binary file markers and ``GIT binary patch`` payloads
- ``\\ No newline at end of file`` markers
- omitted hunk line counts and blank context lines

Hunk bodies are validated against their ``@@`` header counts, so every
Fragment produced satisfies the old/new line numbering contract.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import structlog

from change_review.errors import DiffParseError
from change_review.models.diff import DiffSet, File, Fragment, Line, LineOp
from change_review.utils.logging import LogEventNames
from change_review.utils.metrics import Timer, get_metrics

log = structlog.get_logger()

DEV_NULL = "/dev/null"


@dataclass
class _FileBuilder:
    """Mutable accumulator for one file while its headers and hunks are read."""

    old_name: str = ""
    new_name: str = ""
    is_new: bool = False
    is_deleted: bool = False
    is_renamed: bool = False
    is_binary: bool = False
    old_mode: str = ""
    new_mode: str = ""
    has_file_headers: bool = False
    fragments: list[Fragment] = field(default_factory=list)

    def build(self) -> File:
        old_name = "" if self.is_new else self.old_name
        new_name = "" if self.is_deleted else self.new_name
        return File(
            old_name=old_name,
            new_name=new_name,
            is_new=self.is_new,
            is_deleted=self.is_deleted,
            is_renamed=self.is_renamed,
            is_binary=self.is_binary,
            fragments=tuple(self.fragments),
            old_mode=self.old_mode,
            new_mode=self.new_mode,
        )


class DiffParser:
    """Parser for unified diff text.

    Example:
        parser = DiffParser()
        diff_set = parser.parse(raw_text)
        for file in diff_set.files:
            print(file.name(), file.added_lines, file.deleted_lines)
    """

    GIT_HEADER = "diff --git "
    HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@ ?(.*)$")
    QUOTED_PATH = r'"(?:[^"\\]|\\.)*"'
    GIT_NAMES_PATTERN = re.compile(rf"^({QUOTED_PATH}|a/.+?) ({QUOTED_PATH}|b/.+)$")
    ESCAPE_PATTERN = re.compile(r"\\([0-7]{1,3}|.)", re.DOTALL)
    BINARY_FILES_PATTERN = re.compile(r"^Binary files (.+) and (.+) differ$")
    NO_NEWLINE_MARKER = "\\"

    # C escapes git uses in quoted paths, besides three-digit octal bytes
    C_ESCAPES: dict[str, str] = {
        "a": "\a",
        "b": "\b",
        "f": "\f",
        "n": "\n",
        "r": "\r",
        "t": "\t",
        "v": "\v",
        '"': '"',
        "\\": "\\",
    }

    # Extended header prefix -> builder attribute it sets
    MODE_HEADERS: dict[str, str] = {
        "new file mode ": "new_mode",
        "deleted file mode ": "old_mode",
        "old mode ": "old_mode",
        "new mode ": "new_mode",
    }

    def parse(self, raw: str) -> DiffSet:
        """Parse unified diff text.

        Args:
            raw: The full diff text

        Returns:
            DiffSet with one File per file section, in input order

        Raises:
            DiffParseError: If a header or hunk is malformed
        """
        lines = raw.split("\n")
        if lines and lines[-1] == "":
            lines.pop()

        files: list[File] = []
        current: _FileBuilder | None = None
        i = 0
        total = len(lines)

        while i < total:
            line = lines[i]

            if line.startswith(self.GIT_HEADER):
                if current is not None:
                    files.append(current.build())
                current = self._start_git_file(line)
                i += 1
                continue

            if line.startswith("--- ") and i + 1 < total and lines[i + 1].startswith("+++ "):
                if current is None or current.has_file_headers:
                    if current is not None:
                        files.append(current.build())
                    current = _FileBuilder()
                self._apply_file_headers(current, line, lines[i + 1])
                i += 2
                continue

            if current is None:
                # Preamble or trailing text outside any file
                i += 1
                continue

            if line.startswith("--- ") and not current.has_file_headers and not current.fragments:
                raise DiffParseError("'---' file header without matching '+++' header", i + 1)

            if line.startswith("@@"):
                if not current.has_file_headers:
                    raise DiffParseError("hunk found before '---'/'+++' file headers", i + 1)
                fragment, i = self._parse_fragment(lines, i)
                current.fragments.append(fragment)
                continue

            if not current.fragments:
                self._apply_extended_header(current, line)
            i += 1

        if current is not None:
            files.append(current.build())

        return DiffSet(files=tuple(files), raw=raw)

    def _start_git_file(self, line: str) -> _FileBuilder:
        """Begin a file from a ``diff --git a/x b/y`` line."""
        builder = _FileBuilder()
        rest = line[len(self.GIT_HEADER) :].rstrip("\r")

        # Identical names on both sides can be split unambiguously even with spaces
        mid = len(rest) // 2
        if len(rest) % 2 == 1 and rest[mid] == " ":
            left, right = rest[:mid], rest[mid + 1 :]
            if left.startswith("a/") and right.startswith("b/") and left[2:] == right[2:]:
                builder.old_name = builder.new_name = left[2:]
                return builder

        match = self.GIT_NAMES_PATTERN.match(rest)
        if match:
            builder.old_name = self._parse_path(match.group(1), "a/")
            builder.new_name = self._parse_path(match.group(2), "b/")
        return builder

    def _apply_file_headers(self, builder: _FileBuilder, old_line: str, new_line: str) -> None:
        """Apply a ``---``/``+++`` header pair."""
        old_path = self._parse_path(old_line[4:], "a/")
        new_path = self._parse_path(new_line[4:], "b/")

        if old_path == DEV_NULL:
            builder.is_new = True
        else:
            builder.old_name = old_path
        if new_path == DEV_NULL:
            builder.is_deleted = True
        else:
            builder.new_name = new_path
        builder.has_file_headers = True

    def _apply_extended_header(self, builder: _FileBuilder, line: str) -> None:
        """Apply a git extended header line; unknown lines are ignored."""
        line = line.rstrip("\r")

        for prefix, attribute in self.MODE_HEADERS.items():
            if line.startswith(prefix):
                setattr(builder, attribute, line[len(prefix) :].strip())
                if prefix == "new file mode ":
                    builder.is_new = True
                elif prefix == "deleted file mode ":
                    builder.is_deleted = True
                return

        if line.startswith("index "):
            parts = line.split()
            if len(parts) == 3 and not builder.old_mode and not builder.new_mode:
                builder.old_mode = builder.new_mode = parts[2]
        elif line.startswith("rename from "):
            builder.is_renamed = True
            builder.old_name = self._unquote(line[len("rename from ") :])
        elif line.startswith("rename to "):
            builder.is_renamed = True
            builder.new_name = self._unquote(line[len("rename to ") :])
        elif line.startswith("copy from "):
            builder.old_name = self._unquote(line[len("copy from ") :])
        elif line.startswith("copy to "):
            builder.new_name = self._unquote(line[len("copy to ") :])
        elif line.startswith("GIT binary patch"):
            builder.is_binary = True
        else:
            match = self.BINARY_FILES_PATTERN.match(line)
            if match:
                builder.is_binary = True
                old_path = self._parse_path(match.group(1), "a/")
                new_path = self._parse_path(match.group(2), "b/")
                if old_path == DEV_NULL:
                    builder.is_new = True
                elif not builder.old_name:
                    builder.old_name = old_path
                if new_path == DEV_NULL:
                    builder.is_deleted = True
                elif not builder.new_name:
                    builder.new_name = new_path

    def _parse_fragment(self, lines: list[str], start: int) -> tuple[Fragment, int]:
        """Parse one hunk starting at its ``@@`` header.

        Returns:
            The Fragment and the index of the first line after it

        Raises:
            DiffParseError: If the header is malformed or the body does not
                match the header counts
        """
        header = lines[start].rstrip("\r")
        match = self.HUNK_HEADER.match(header)
        if not match:
            raise DiffParseError(f"malformed hunk header: {header!r}", start + 1)

        old_position = int(match.group(1))
        old_lines = int(match.group(2)) if match.group(2) is not None else 1
        new_position = int(match.group(3))
        new_lines = int(match.group(4)) if match.group(4) is not None else 1
        comment = match.group(5).strip()

        old_remaining = old_lines
        new_remaining = new_lines
        body: list[Line] = []
        i = start + 1

        while old_remaining > 0 or new_remaining > 0:
            if i >= len(lines):
                raise DiffParseError(
                    f"hunk {header!r} ended early: {old_remaining} old and "
                    f"{new_remaining} new lines missing",
                    i,
                )
            text = lines[i]
            op = self._line_op(text)

            if op is None:
                if text.startswith(self.NO_NEWLINE_MARKER) and body:
                    body[-1] = Line(body[-1].op, body[-1].text, no_newline_at_eof=True)
                    i += 1
                    continue
                raise DiffParseError(
                    f"unexpected line in hunk {header!r}: {text!r}",
                    i + 1,
                )

            if op != LineOp.ADD:
                old_remaining -= 1
            if op != LineOp.DELETE:
                new_remaining -= 1
            if old_remaining < 0 or new_remaining < 0:
                raise DiffParseError(f"hunk {header!r} has more lines than its header", i + 1)

            body.append(Line(op, text[1:]))
            i += 1

        if i < len(lines) and lines[i].startswith(self.NO_NEWLINE_MARKER) and body:
            body[-1] = Line(body[-1].op, body[-1].text, no_newline_at_eof=True)
            i += 1

        fragment = Fragment(
            old_position=old_position,
            old_lines=old_lines,
            new_position=new_position,
            new_lines=new_lines,
            lines=tuple(body),
            comment=comment,
        )
        return fragment, i

    @staticmethod
    def _line_op(text: str) -> LineOp | None:
        """Classify a hunk body line; blank lines count as empty context."""
        if text == "" or text == "\r":
            return LineOp.CONTEXT
        try:
            return LineOp(text[0])
        except ValueError:
            return None

    def _parse_path(self, value: str, prefix: str) -> str:
        """Extract a path from a header value, dropping timestamps and a/ b/ prefixes."""
        value = value.rstrip("\r")
        if "\t" in value:
            value = value.split("\t", 1)[0]
        value = self._unquote(value.strip())
        if value == DEV_NULL:
            return value
        if value.startswith(prefix):
            value = value[len(prefix) :]
        return value

    def _unquote(self, value: str) -> str:
        """Decode the C-style quoting git applies to unusual paths.

        Octal escapes are raw bytes of the UTF-8 path (``core.quotePath``).
        Bytes that are not valid UTF-8 survive as surrogates, so quoting the
        name again reproduces the original bytes.
        """
        value = value.strip()
        if len(value) < 2 or not value.startswith('"') or not value.endswith('"'):
            return value

        inner = value[1:-1]
        raw = bytearray()
        pos = 0
        for match in self.ESCAPE_PATTERN.finditer(inner):
            raw += inner[pos : match.start()].encode("utf-8", "surrogateescape")
            token = match.group(1)
            if token[0] in "01234567":
                raw.append(int(token, 8) & 0xFF)
            else:
                raw += self.C_ESCAPES.get(token, token).encode("utf-8", "surrogateescape")
            pos = match.end()
        raw += inner[pos:].encode("utf-8", "surrogateescape")
        return raw.decode("utf-8", "surrogateescape")


_parser = DiffParser()


def parse_diff(raw: str) -> DiffSet:
    """Parse unified diff text into a DiffSet.

    Syntactically valid input with no file sections (including the empty
    string) yields an empty DiffSet rather than an error.

    Raises:
        DiffParseError: If the diff grammar is malformed
    """
    metrics = get_metrics()
    try:
        with Timer(metrics.parse_duration):
            diff_set = _parser.parse(raw)
    except DiffParseError as e:
        metrics.parse_errors.inc()
        log.warning(LogEventNames.DIFF_PARSE_FAILED, error=str(e))
        raise

    files, added, deleted = diff_set.stats()
    metrics.diffs_parsed.inc()
    log.debug(LogEventNames.DIFF_PARSED, files=files, added=added, deleted=deleted)
    return diff_set
