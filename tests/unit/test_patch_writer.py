"""Tests for the unified diff writer."""

import pytest

from change_review.core.diff_parser import parse_diff
from change_review.core.patch_writer import format_file_patch, format_patch, quote_path
from change_review.models.diff import File, Fragment, Line, LineOp


def summarize(file: File) -> tuple:
    return (
        file.name(),
        file.is_new,
        file.is_deleted,
        file.is_renamed,
        file.is_binary,
        file.fragments,
        file.added_lines,
        file.deleted_lines,
    )


class TestFormatPatch:
    """Test that written patches parse back to the same files."""

    @pytest.mark.parametrize(
        "fixture_name", ["multi_file_diff", "rename_binary_diff", "no_newline_diff"]
    )
    def test_reparses_to_same_files(self, fixture_name, request) -> None:
        original = parse_diff(request.getfixturevalue(fixture_name))
        reparsed = parse_diff(format_patch(original.files))

        assert [summarize(f) for f in reparsed.files] == [summarize(f) for f in original.files]

    def test_empty(self) -> None:
        assert format_patch([]) == ""

    def test_new_file_headers(self, multi_file_set) -> None:
        text = format_file_patch(multi_file_set.files[1])
        assert text == (
            "diff --git a/docs/notes.md b/docs/notes.md\n"
            "new file mode 100644\n"
            "--- /dev/null\n"
            "+++ b/docs/notes.md\n"
            "@@ -0,0 +1,2 @@\n"
            "+# Notes\n"
            "+Hello\n"
        )

    def test_deleted_file_headers(self, multi_file_set) -> None:
        text = format_file_patch(multi_file_set.files[2])
        assert text.splitlines()[:4] == [
            "diff --git a/old.txt b/old.txt",
            "deleted file mode 100644",
            "--- a/old.txt",
            "+++ /dev/null",
        ]

    def test_rename_and_mode_change(self, rename_binary_diff) -> None:
        renamed, binary, mode_change = parse_diff(rename_binary_diff).files

        assert "rename from lib/old_name.py\nrename to lib/new_name.py\n" in format_file_patch(
            renamed
        )
        assert format_file_patch(binary).endswith(
            "Binary files /dev/null and b/assets/logo.png differ\n"
        )
        assert format_file_patch(mode_change) == (
            "diff --git a/bin/run.sh b/bin/run.sh\nold mode 100644\nnew mode 100755\n"
        )

    def test_no_newline_marker(self, no_newline_diff) -> None:
        text = format_patch(parse_diff(no_newline_diff).files)
        assert text.count("\\ No newline at end of file\n") == 2

    def test_default_mode_for_new_file(self) -> None:
        file = File(
            new_name="x.txt",
            is_new=True,
            fragments=(Fragment(0, 0, 1, 1, lines=(Line(LineOp.ADD, "x"),)),),
        )
        assert "new file mode 100644\n" in format_file_patch(file)


class TestQuotePath:
    def test_plain_path_is_unchanged(self) -> None:
        assert quote_path("a/src/app.py") == "a/src/app.py"

    def test_special_characters_are_escaped(self) -> None:
        assert quote_path('a/tab\there "q".txt') == '"a/tab\\there \\"q\\".txt"'

    def test_non_ascii_is_written_as_octal_utf8(self) -> None:
        assert quote_path("b/café.txt") == '"b/caf\\303\\251.txt"'

    def test_backslash_is_escaped(self) -> None:
        assert quote_path("a/dir\\name") == '"a/dir\\\\name"'

    def test_surrogate_escaped_bytes_are_restored(self) -> None:
        name = b"a/caf\xe9.txt".decode("utf-8", "surrogateescape")
        assert quote_path(name) == '"a/caf\\351.txt"'

    def test_non_ascii_name_survives_patch_round_trip(self) -> None:
        """Test that a git-quoted non-ASCII file is written back with the same quoting."""
        raw = (
            'diff --git "a/caf\\303\\251.txt" "b/caf\\303\\251.txt"\n'
            '--- "a/caf\\303\\251.txt"\n'
            '+++ "b/caf\\303\\251.txt"\n'
            "@@ -1,1 +1,1 @@\n"
            "-old\n"
            "+new\n"
        )
        original = parse_diff(raw)

        patch = format_patch(original.files)

        assert patch == raw
        assert parse_diff(patch).files[0].name() == "café.txt"
