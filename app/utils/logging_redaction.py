"""
Logging redaction helpers.
Redacts API keys and tokens from log messages (FRED keys travel in the query string).
"""

from __future__ import annotations

import logging
import re
from typing import Iterable


_PATTERNS: Iterable[tuple[re.Pattern, str]] = (
    # FRED style query parameter: ?api_key=<key>&...
    (re.compile(r"(?i)([?&]api_key=)([^&\s]+)"), r"\1[REDACTED]"),
    # Authorization: Bearer <token>
    (re.compile(r"(Bearer\s+)([A-Za-z0-9\-\._]+)"), r"\1[REDACTED]"),
    # x-cg-pro-api-key / x-cg-demo-api-key headers
    (re.compile(r"(?i)(x-cg-(?:pro|demo)-api-key)\s*[:=]\s*([A-Za-z0-9\-\._]+)"), r"\1=[REDACTED]"),
    # Generic key/secret in config dumps
    (re.compile(r"(?i)\b(api[_-]?key|api[_-]?secret)\s*[:=]\s*([A-Za-z0-9\-\._]+)"), r"\1=[REDACTED]"),
)


def redact_message(message: str) -> str:
    redacted = message
    for pattern, replacement in _PATTERNS:
        redacted = pattern.sub(replacement, redacted)
    return redacted


class RedactingFilter(logging.Filter):
    """Filter that redacts sensitive data from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Malformed format args; let the handler report it
            return True
        redacted = redact_message(message)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


def install_redaction_filter() -> None:
    root = logging.getLogger()
    for existing in root.filters:
        if isinstance(existing, RedactingFilter):
            return
    redacting = RedactingFilter()
    root.addFilter(redacting)
    # Root logger filters do not apply to records propagated from child loggers
    for handler in root.handlers:
        if not any(isinstance(f, RedactingFilter) for f in handler.filters):
            handler.addFilter(redacting)
