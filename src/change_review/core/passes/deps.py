"""New dependency detection.

Looks at added lines of known manifest and lock files and reports each
dependency the change introduces. Recognized manifests are keyed by
basename; each ecosystem has its own line grammar. TOML manifests of the
pip ecosystem are read table by table instead of line by line.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from pathlib import Path, PurePosixPath

from change_review.models.diff import DiffSet, File, LineOp
from change_review.models.finding import Finding, RiskLevel, Severity

from ._common import added_lines

PASS_NAME = "deps"

MANIFEST_ECOSYSTEMS: dict[str, str] = {
    "go.mod": "go",
    "go.sum": "go",
    "package.json": "npm",
    "package-lock.json": "npm",
    "yarn.lock": "npm",
    "pnpm-lock.yaml": "npm",
    "Cargo.toml": "cargo",
    "Cargo.lock": "cargo",
    "requirements.txt": "pip",
    "Pipfile": "pip",
    "Pipfile.lock": "pip",
    "pyproject.toml": "pip",
    "poetry.lock": "pip",
    "Gemfile": "gem",
    "Gemfile.lock": "gem",
    "mix.exs": "hex",
    "mix.lock": "hex",
}

TOML_PIP_MANIFESTS = frozenset({"pyproject.toml", "Pipfile", "poetry.lock"})

# Manifest keys that sit next to dependencies but are not dependencies
NPM_RESERVED_KEYS = frozenset(
    {
        "dependencies",
        "devDependencies",
        "peerDependencies",
        "optionalDependencies",
        "bundledDependencies",
        "name",
        "version",
        "description",
        "main",
        "module",
        "types",
        "scripts",
        "license",
        "author",
        "private",
        "repository",
        "engines",
        "resolved",
        "integrity",
        "homepage",
    }
)
CARGO_RESERVED_KEYS = frozenset(
    {"name", "version", "edition", "authors", "description", "license", "readme", "repository"}
)
PIP_RESERVED_KEYS = frozenset(
    {
        "python",
        "python_version",
        "python_full_version",
        "requires-python",
        "name",
        "version",
        "description",
        "readme",
        "license",
        "authors",
        "maintainers",
        "keywords",
        "classifiers",
        "urls",
        "homepage",
        "repository",
        "documentation",
        "packages",
        "include",
        "exclude",
        "dynamic",
        "scripts",
        "entry-points",
        "dependencies",
        "optional-dependencies",
        "dev-dependencies",
        "build-backend",
        "requires",
    }
)

# Tables whose ``name = constraint`` keys are dependencies, by last component:
# [tool.poetry.dependencies], [tool.poetry.group.dev.dependencies], Pipfile [packages]
PIP_KEY_TABLES = frozenset({"dependencies", "dev-dependencies", "packages", "dev-packages"})
# Arrays of PEP 508 requirement strings, by table and key
PIP_ARRAY_KEYS: dict[str, frozenset[str]] = {
    "project": frozenset({"dependencies"}),
    "build-system": frozenset({"requires"}),
}
# Tables where every array holds requirement strings
PIP_ARRAY_TABLES = frozenset({"project.optional-dependencies", "dependency-groups"})

NPM_ENTRY = re.compile(r'^"([^"]+)"\s*:\s*"[^"]*"$')
TOML_KEY = re.compile(r"^([A-Za-z0-9_.-]+)\s*=")
TOML_ASSIGNMENT = re.compile(r"""^([A-Za-z0-9_.-]+)\s*=\s*["'{\[]""")
TOML_TABLE = re.compile(r"^\[\[?([^\]]+)\]\]?")
TOML_ARRAY_START = re.compile(r"^([A-Za-z0-9_.-]+)\s*=\s*\[(.*)$")
TOML_VERSION_VALUE = re.compile(r"""^[A-Za-z0-9_.-]+\s*=\s*(?:\{|["'][\^~=<>!*\d])""")
TOML_INLINE_TABLE = re.compile(r"\{[^}]*\}")
QUOTED_STRING = re.compile(r"""["']([^"']*)["']""")
PIP_REQUIREMENT = re.compile(r"^([A-Za-z0-9][A-Za-z0-9._-]*)(?:\[[^\]]*\])?\s*(?:[=<>!~;@]|$)")
GEM_ENTRY = re.compile(r"""^gem\s+['"]([^'"]+)['"]""")
HEX_ENTRY = re.compile(r"^\{:(\w+),")


def _parse_go(line: str) -> str | None:
    fields = line.split()
    if fields and fields[0] == "require" and len(fields) >= 3:
        return fields[1]
    # Inside a require block
    if len(fields) >= 2 and "/" in fields[0] and not fields[0].startswith("//"):
        return fields[0]
    return None


def _parse_npm(line: str) -> str | None:
    match = NPM_ENTRY.match(line.rstrip(","))
    if not match:
        return None
    name = match.group(1)
    if name in NPM_RESERVED_KEYS or name.startswith("@types/"):
        return None
    return name


def _parse_cargo(line: str) -> str | None:
    if line.startswith(("[", "#")):
        return None
    match = TOML_KEY.match(line)
    if not match:
        return None
    name = match.group(1)
    if "." in name or name in CARGO_RESERVED_KEYS:
        return None
    return name


def _parse_pip(line: str) -> str | None:
    """requirements.txt and Pipfile.lock lines."""
    if line.startswith(("#", "-", "[")):
        return None
    match = PIP_REQUIREMENT.match(line.strip("\"',"))
    if match:
        return match.group(1)
    return None


def _parse_gem(line: str) -> str | None:
    match = GEM_ENTRY.match(line)
    return match.group(1) if match else None


def _parse_hex(line: str) -> str | None:
    match = HEX_ENTRY.match(line)
    return match.group(1) if match else None


LINE_PARSERS: dict[str, Callable[[str], str | None]] = {
    "go": _parse_go,
    "npm": _parse_npm,
    "cargo": _parse_cargo,
    "pip": _parse_pip,
    "gem": _parse_gem,
    "hex": _parse_hex,
}


def _is_requirement_array(table: str | None, key: str) -> bool:
    if table is None:
        return key in ("dependencies", "requires")
    return table in PIP_ARRAY_TABLES or key in PIP_ARRAY_KEYS.get(table, ())


def _is_dependency_table(table: str | None) -> bool:
    if table is None or table.startswith("package."):
        # poetry.lock [package.dependencies] lists requirements of locked packages
        return False
    return table.rsplit(".", 1)[-1] in PIP_KEY_TABLES


def _requirement_names(text: str) -> Iterator[str]:
    for value in QUOTED_STRING.findall(TOML_INLINE_TABLE.sub("", text)):
        match = PIP_REQUIREMENT.match(value.strip())
        if match:
            yield match.group(1)


def _scan_pip_toml(file: File) -> Iterator[tuple[int, str]]:
    """Yield ``(line, name)`` for dependencies added to a TOML pip manifest.

    The current table and any open array are tracked across the context and
    added lines of each hunk. A hunk that starts below its table header has
    no table context: there only version-like values, ``dependencies`` and
    ``requires`` arrays, and bare requirement strings count.
    """
    for fragment in file.fragments:
        table: str | None = None
        array_key: str | None = None

        for numbered in fragment.numbered():
            op = numbered.line.op
            if op == LineOp.DELETE:
                continue
            text = numbered.line.text.strip()
            if not text or text.startswith("#"):
                continue
            added = op == LineOp.ADD
            number = numbered.number

            if array_key is not None:
                if added and _is_requirement_array(table, array_key):
                    for name in _requirement_names(text):
                        yield number, name
                if "]" in QUOTED_STRING.sub("", text):
                    array_key = None
                continue

            header = TOML_TABLE.match(text)
            if header:
                table = header.group(1).replace('"', "").replace(" ", "")
                continue

            match = TOML_ARRAY_START.match(text)
            if match:
                key, rest = match.groups()
                if added and _is_requirement_array(table, key):
                    for name in _requirement_names(rest):
                        yield number, name
                elif added and _is_dependency_table(table):
                    # Poetry multiple-constraint form: name = [{...}, {...}]
                    yield number, key
                if "]" not in QUOTED_STRING.sub("", rest):
                    array_key = key
                continue

            if not added:
                continue

            match = TOML_ASSIGNMENT.match(text)
            if match:
                key = match.group(1)
                if table == "package" and key == "name":
                    # poetry.lock: [[package]] name = "httpx"
                    values = QUOTED_STRING.findall(text)
                    if values:
                        yield number, values[0]
                elif "." in key or key in PIP_RESERVED_KEYS:
                    continue
                elif _is_dependency_table(table):
                    yield number, key
                elif table is None and TOML_VERSION_VALUE.match(text):
                    yield number, key
            elif table is None and QUOTED_STRING.fullmatch(text.rstrip(",")):
                # Entry of an array whose opening line is above the hunk
                for name in _requirement_names(text):
                    yield number, name


def _scan_lines(file: File, parse_line: Callable[[str], str | None]) -> Iterator[tuple[int, str]]:
    for number, text in added_lines(file):
        dependency = parse_line(text.strip())
        if dependency:
            yield number, dependency


def dependency_pass(diff_set: DiffSet, repo_root: Path | None = None) -> list[Finding]:
    """Report every dependency added to a recognized manifest."""
    findings: list[Finding] = []

    for file in diff_set.files:
        basename = PurePosixPath(file.path).name
        ecosystem = MANIFEST_ECOSYSTEMS.get(basename)
        if ecosystem is None:
            continue
        if basename in TOML_PIP_MANIFESTS:
            entries = _scan_pip_toml(file)
        else:
            entries = _scan_lines(file, LINE_PARSERS[ecosystem])
        name = file.name()

        for number, dependency in entries:
            findings.append(
                Finding(
                    pass_name=PASS_NAME,
                    file=name,
                    line=number,
                    message=f"New {ecosystem} dependency: {dependency}",
                    severity=Severity.WARNING,
                    risk=RiskLevel.MEDIUM,
                )
            )

    return findings
