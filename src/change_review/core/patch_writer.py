"""Unified diff writer.

Re-emits parsed files as git-style unified diff text. Hunks are written
verbatim, so the output parses back to the same files, names and line
counts.
"""

from __future__ import annotations

from collections.abc import Iterable

from change_review.models.diff import File

DEV_NULL = "/dev/null"
DEFAULT_MODE = "100644"
NO_NEWLINE_MARKER = "\\ No newline at end of file"

# Bytes git writes as C escapes; other control and non-ASCII bytes become octal
_ESCAPES = {
    ord("\\"): "\\\\",
    ord('"'): '\\"',
    ord("\a"): "\\a",
    ord("\b"): "\\b",
    ord("\f"): "\\f",
    ord("\n"): "\\n",
    ord("\r"): "\\r",
    ord("\t"): "\\t",
    ord("\v"): "\\v",
}


def _quote_byte(byte: int) -> str:
    if byte in _ESCAPES:
        return _ESCAPES[byte]
    if byte < 0x20 or byte >= 0x7F:
        return f"\\{byte:03o}"
    return chr(byte)


def quote_path(path: str) -> str:
    """Quote a path the way git does with ``core.quotePath`` enabled.

    Names decoded with ``surrogateescape`` are written back as their
    original bytes.
    """
    quoted = "".join(_quote_byte(b) for b in path.encode("utf-8", "surrogateescape"))
    if quoted == path:
        return path
    return f'"{quoted}"'


def _side(prefix: str, name: str) -> str:
    return quote_path(f"{prefix}{name}")


def format_file_patch(file: File) -> str:
    """Format one file as a unified diff section, headers included."""
    old_name = file.old_name or file.new_name
    new_name = file.new_name or file.old_name
    out: list[str] = [f"diff --git {_side('a/', old_name)} {_side('b/', new_name)}"]

    if file.is_new:
        out.append(f"new file mode {file.new_mode or DEFAULT_MODE}")
    elif file.is_deleted:
        out.append(f"deleted file mode {file.old_mode or DEFAULT_MODE}")
    elif file.old_mode and file.new_mode and file.old_mode != file.new_mode:
        out.append(f"old mode {file.old_mode}")
        out.append(f"new mode {file.new_mode}")

    if file.is_renamed:
        out.append(f"rename from {quote_path(file.old_name)}")
        out.append(f"rename to {quote_path(file.new_name)}")

    old_side = DEV_NULL if file.is_new else _side("a/", old_name)
    new_side = DEV_NULL if file.is_deleted else _side("b/", new_name)

    if file.is_binary and not file.fragments:
        out.append(f"Binary files {old_side} and {new_side} differ")
        return "\n".join(out) + "\n"

    if file.fragments:
        out.append(f"--- {old_side}")
        out.append(f"+++ {new_side}")

    for fragment in file.fragments:
        out.append(fragment.header)
        for line in fragment.lines:
            out.append(f"{line.op.value}{line.text}")
            if line.no_newline_at_eof:
                out.append(NO_NEWLINE_MARKER)

    return "\n".join(out) + "\n"


def format_patch(files: Iterable[File]) -> str:
    """Concatenate file sections; empty string for no files."""
    return "".join(format_file_patch(file) for file in files)
