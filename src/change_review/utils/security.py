"""Secret redaction for log output.

Diffs routinely carry credentials an agent wrote into config files, and the
security pass echoes the offending line into its finding message. Anything
that reaches a log sink goes through ``SecretRedactor`` first.

Redaction is fail-closed: a pattern that fails to compile or match raises
``RedactionError`` instead of letting the text through.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Sequence

log = structlog.get_logger()


class SecurityError(Exception):
    """Base exception for security-related errors."""


class RedactionError(SecurityError):
    """Raised when secret redaction fails."""


class SecretRedactor:
    """Detects and redacts secrets from text.

    Usage:
        redactor = SecretRedactor()
        safe_text = redactor.redact(added_line)

    Attributes:
        placeholder: The string secrets are replaced with.
    """

    DEFAULT_PATTERNS: tuple[tuple[str, str], ...] = (
        (
            r"(?i)(api[_-]?key|secret|token|password|credential)\s*[=:]\s*[\"']?[\w-]{16,}",
            "Generic secret",
        ),
        (r"xox[baprs]-[\w-]+", "Slack token"),
        (r"ghp_[a-zA-Z0-9]{36}", "GitHub PAT"),
        (r"github_pat_[a-zA-Z0-9_]{22,}", "GitHub fine-grained PAT"),
        (r"gh[ousr]_[a-zA-Z0-9]{36}", "GitHub app token"),
        (r"sk-ant-[\w-]{40,}", "Anthropic API key"),
        (r"sk-proj-[a-zA-Z0-9]{20,}", "OpenAI project API key"),
        (r"sk-[a-zA-Z0-9]{48}", "OpenAI legacy API key"),
        (r"AKIA[0-9A-Z]{16}", "AWS access key ID"),
        (
            r"(?i)aws[_-]?secret[_-]?access[_-]?key\s*[=:]\s*[\"']?[a-zA-Z0-9/+=]{40}",
            "AWS secret access key",
        ),
        (r"AIza[0-9A-Za-z\-_]{35}", "Google API key"),
        (r"sk_live_[a-zA-Z0-9]{24,}", "Stripe secret key"),
        (
            r"(?i)(postgres(?:ql)?|mysql|mongodb(?:\+srv)?|redis|amqp)://[^:\s]+:[^@\s]+@[^\s]+",
            "Database connection string",
        ),
        (
            r"-----BEGIN (?:RSA |EC |DSA |OPENSSH )?PRIVATE KEY-----",
            "Private key header",
        ),
        (
            r"eyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*\.[a-zA-Z0-9_-]*",
            "JWT token",
        ),
    )

    def __init__(
        self,
        placeholder: str = "[REDACTED]",
        custom_patterns: Sequence[tuple[str, str]] | None = None,
    ) -> None:
        """Initialize the SecretRedactor.

        Args:
            placeholder: String to replace detected secrets with.
            custom_patterns: Additional (pattern, name) tuples to detect.

        Raises:
            RedactionError: If any pattern fails to compile.
        """
        self.placeholder = placeholder
        self._pattern_names: dict[re.Pattern[str], str] = {}

        all_patterns = list(self.DEFAULT_PATTERNS)
        if custom_patterns:
            all_patterns.extend(custom_patterns)

        try:
            for pattern_str, name in all_patterns:
                self._pattern_names[re.compile(pattern_str)] = name
        except re.error as e:
            log.error("pattern_compilation_failed", pattern=pattern_str, error=str(e))
            raise RedactionError(f"Failed to compile secret pattern '{pattern_str}': {e}") from e

    def redact(self, text: str) -> str:
        """Redact all secrets from the given text.

        Raises:
            RedactionError: If redaction fails for any reason.
        """
        if not text:
            return text

        try:
            result = text
            for pattern in self._pattern_names:
                result = pattern.sub(self.placeholder, result)
            return result
        except Exception as e:
            raise RedactionError(f"Redaction failed: {e}") from e
