"""Shared test fixtures for change-review."""

from collections.abc import Callable
from pathlib import Path

import pytest

from change_review.core.diff_parser import parse_diff
from change_review.models.diff import DiffSet
from change_review.utils.metrics import get_metrics

# Get the fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"
DIFFS_DIR = FIXTURES_DIR / "diffs"

DELETED_FUNCTION_DIFF = (
    "diff --git a/pkg/calc.go b/pkg/calc.go\n"
    "index 1234567..89abcde 100644\n"
    "--- a/pkg/calc.go\n"
    "+++ b/pkg/calc.go\n"
    "@@ -1,9 +1,5 @@\n"
    " package calc\n"
    " \n"
    "-func Add(a, b int) int {\n"
    "-\treturn a + b\n"
    "-}\n"
    "-\n"
    " func Sub(a, b int) int {\n"
    " \treturn a - b\n"
    " }\n"
)


@pytest.fixture(autouse=True)
def reset_metrics() -> None:
    """Start every test with empty metrics."""
    get_metrics().reset()


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def load_diff_text() -> Callable[[str], str]:
    """Return a loader for diff fixtures by file name."""

    def _load(name: str) -> str:
        return (DIFFS_DIR / name).read_text()

    return _load


@pytest.fixture
def multi_file_diff(load_diff_text: Callable[[str], str]) -> str:
    """A modified, a new and a deleted file, after a commit preamble."""
    return load_diff_text("multi_file.diff")


@pytest.fixture
def multi_file_set(multi_file_diff: str) -> DiffSet:
    return parse_diff(multi_file_diff)


@pytest.fixture
def rename_binary_diff(load_diff_text: Callable[[str], str]) -> str:
    """A rename with an edit, a new binary file and a mode change."""
    return load_diff_text("rename_binary.diff")


@pytest.fixture
def no_newline_diff(load_diff_text: Callable[[str], str]) -> str:
    return load_diff_text("no_newline.diff")


@pytest.fixture
def package_json_diff(load_diff_text: Callable[[str], str]) -> str:
    """Two dependencies added inside an existing dependency block."""
    return load_diff_text("package_json.diff")


@pytest.fixture
def duplication_diff(load_diff_text: Callable[[str], str]) -> str:
    """Two new functions with identical bodies."""
    return load_diff_text("duplication.diff")


@pytest.fixture
def deleted_function_diff() -> str:
    """Removes ``Add`` from pkg/calc.go."""
    return DELETED_FUNCTION_DIFF


@pytest.fixture
def calc_repo(tmp_path: Path) -> Path:
    """Repository whose tests still call ``Add``."""
    pkg = tmp_path / "pkg"
    pkg.mkdir()
    (pkg / "calc.go").write_text(
        "package calc\n\nfunc Sub(a, b int) int {\n\treturn a - b\n}\n"
    )
    (pkg / "calc_test.go").write_text(
        "package calc\n\nimport \"testing\"\n\n"
        "func TestAdd(t *testing.T) {\n\tif Add(1, 2) != 3 {\n\t\tt.Fail()\n\t}\n}\n"
    )
    return tmp_path
