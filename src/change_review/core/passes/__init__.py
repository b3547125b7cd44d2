"""Analysis passes.

Each pass is a callable ``(diff_set, repo_root) -> list[Finding]``. Passes
read the diff (and optionally the repository) and never share state.
"""

from .anti_patterns import AntiPatternPass, anti_pattern_pass
from .blast_radius import BlastRadiusPass, blast_radius_pass
from .deleted import deleted_code_pass
from .deps import dependency_pass
from .schema import schema_change_pass
from .security import security_pass

# Registration order, also the order passes run in
PASS_NAMES: tuple[str, ...] = (
    "deps",
    "security",
    "deleted",
    "schema",
    "anti_patterns",
    "blast_radius",
)

__all__ = [
    "PASS_NAMES",
    "AntiPatternPass",
    "BlastRadiusPass",
    "anti_pattern_pass",
    "blast_radius_pass",
    "deleted_code_pass",
    "dependency_pass",
    "schema_change_pass",
    "security_pass",
]
