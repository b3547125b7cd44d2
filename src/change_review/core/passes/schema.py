"""Schema and migration change detection."""

from __future__ import annotations

import re
from pathlib import Path

from change_review.models.diff import DiffSet
from change_review.models.finding import Finding, RiskLevel, Severity

from ._common import added_lines

PASS_NAME = "schema"

# (path pattern, description); the first match names the file
SCHEMA_FILE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?i)migrat"), "database migration"),
    (re.compile(r"(?i)schema"), "schema definition"),
    (re.compile(r"\.proto$"), "protobuf definition"),
    (re.compile(r"(?i)(openapi|swagger)\.(ya?ml|json)$"), "OpenAPI spec"),
    (re.compile(r"(?i)graphql$"), "GraphQL schema"),
    (re.compile(r"\.prisma$"), "Prisma schema"),
    (re.compile(r"(?i)alembic.*\.py$"), "Alembic migration"),
    (re.compile(r"(?i)flyway"), "Flyway migration"),
    (re.compile(r"(?i)knex.*migrat"), "Knex migration"),
    (re.compile(r"(?i)sequel.*migrat"), "Sequel migration"),
    (re.compile(r"(?i)active_record.*migrat"), "ActiveRecord migration"),
    (re.compile(r"(?i)ecto.*migrat"), "Ecto migration"),
)

DDL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?i)\b(CREATE|ALTER|DROP)\s+(TABLE|INDEX|VIEW|SCHEMA|DATABASE|TYPE|SEQUENCE)\b"),
    re.compile(r"(?i)\bADD\s+COLUMN\b"),
    re.compile(r"(?i)\bDROP\s+COLUMN\b"),
    re.compile(r"(?i)\bRENAME\s+(TABLE|COLUMN)\b"),
    re.compile(r"(?i)\bMODIFY\s+COLUMN\b"),
)


def describe_schema_file(path: str) -> str | None:
    """Return what kind of schema file ``path`` is, or None."""
    for pattern, description in SCHEMA_FILE_PATTERNS:
        if pattern.search(path):
            return description
    return None


def schema_change_pass(diff_set: DiffSet, repo_root: Path | None = None) -> list[Finding]:
    """Flag schema/migration files and DDL statements in added lines."""
    findings: list[Finding] = []

    for file in diff_set.files:
        name = file.name()

        description = describe_schema_file(name)
        if description is not None:
            findings.append(
                Finding(
                    pass_name=PASS_NAME,
                    file=name,
                    message=f"Changes to {description} file",
                    severity=Severity.WARNING,
                    risk=RiskLevel.HIGH,
                )
            )

        for number, text in added_lines(file):
            if any(pattern.search(text) for pattern in DDL_PATTERNS):
                findings.append(
                    Finding(
                        pass_name=PASS_NAME,
                        file=name,
                        line=number,
                        message=f"DDL statement: {text.strip()}",
                        severity=Severity.WARNING,
                        risk=RiskLevel.HIGH,
                    )
                )

    return findings
