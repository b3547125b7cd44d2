"""Security-surface detection.

Flags added lines that touch authentication, authorization, data access,
cryptography, the file system, secrets, network exposure or process
execution. Each category is reported at most once per line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from change_review.models.diff import DiffSet
from change_review.models.finding import Finding, RiskLevel, Severity

from ._common import added_lines, is_comment

PASS_NAME = "security"


@dataclass(frozen=True)
class SecurityCategory:
    """A named group of patterns sharing one risk level."""

    name: str
    risk: RiskLevel
    patterns: tuple[re.Pattern[str], ...]


def _category(name: str, risk: RiskLevel, *patterns: str) -> SecurityCategory:
    return SecurityCategory(name, risk, tuple(re.compile(p) for p in patterns))


SECURITY_CATEGORIES: tuple[SecurityCategory, ...] = (
    _category(
        "authentication",
        RiskLevel.HIGH,
        r"(?i)(auth|login|logout|signin|signup|password|credential|token|jwt|oauth|session|cookie)",
    ),
    _category(
        "authorization",
        RiskLevel.HIGH,
        r"(?i)(permission|role|access.?control|rbac|acl|authorize|forbidden|is.?admin|can.?access)",
    ),
    _category(
        "SQL/database",
        RiskLevel.HIGH,
        r"(?i)(db\.exec|db\.query|\.prepare\(|raw.?sql|sql\.)",
        r"(?i)(\bSELECT\b|\bINSERT\b|\bUPDATE\b|\bDELETE\b|\bDROP\b|\bALTER\b)\s",
        r"(?i)(connection\.execute|cursor\.execute)",
    ),
    _category(
        "cryptography",
        RiskLevel.HIGH,
        r"(?i)(encrypt|decrypt|hash|hmac|cipher|aes|rsa|sha256|sha512|bcrypt|argon|scrypt|pbkdf)",
        r"(?i)(private.?key|public.?key|secret.?key|signing.?key|crypto\.)",
    ),
    _category(
        "file system",
        RiskLevel.MEDIUM,
        r"(?i)(os\.Remove|os\.Rename|os\.Chmod|os\.Chown"
        r"|os\.MkdirAll|os\.WriteFile|ioutil\.WriteFile)",
        r"(?i)(unlink|rmdir|chmod|chown|write_file|open.*[\"']w)",
        r"(?i)(path\.join|filepath\.join).*\.\.|\.\./",
    ),
    _category(
        "environment/secrets",
        RiskLevel.MEDIUM,
        r"(?i)(os\.Getenv|os\.environ|process\.env|ENV\[|getenv)",
        r"(?i)(api.?key|secret|password|token)\s*[:=]",
        r"(?i)(PRIVATE|SECRET|PASSWORD|TOKEN|KEY)\s*=\s*[\"']",
    ),
    _category(
        "network/HTTP",
        RiskLevel.MEDIUM,
        r"(?i)(http\.ListenAndServe|\.listen\(|cors|origin|allow.?origin)",
        r"(?i)(tls\.Config|InsecureSkipVerify|disable.?ssl|verify.?ssl.*false)",
    ),
    _category(
        "subprocess/exec",
        RiskLevel.HIGH,
        r"(?i)(exec\.Command|os\.system|subprocess|child_process|shell_exec|system\()",
        r"(?i)(eval\(|exec\(|compile\()",
    ),
)


def security_pass(diff_set: DiffSet, repo_root: Path | None = None) -> list[Finding]:
    """Flag added, non-comment lines matching a security category."""
    findings: list[Finding] = []
    seen: set[tuple[str, int, str]] = set()

    for file in diff_set.files:
        name = file.name()

        for number, text in added_lines(file):
            if is_comment(text):
                continue
            stripped = text.strip()

            for category in SECURITY_CATEGORIES:
                if not any(pattern.search(text) for pattern in category.patterns):
                    continue
                message = f"Security-sensitive change ({category.name}): {stripped}"
                key = (name, number, message)
                if key in seen:
                    continue
                seen.add(key)
                findings.append(
                    Finding(
                        pass_name=PASS_NAME,
                        file=name,
                        line=number,
                        message=message,
                        severity=Severity.WARNING,
                        risk=category.risk,
                    )
                )

    return findings
