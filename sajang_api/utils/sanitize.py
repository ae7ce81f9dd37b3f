"""Log sanitizer: secrets, personal data, crawl bodies and tracebacks.

Strings go through a size gate before any regex runs:
 - longer than MAX_STR_LOG: replaced by a length + sha256 marker (crawled
   markdown and Edge Function payloads usually land here)
 - longer than MAX_STR_FOR_REGEX: only an auth-header prefix check
 - otherwise: every redaction pattern is applied
"""

import hashlib
import re
import traceback
from typing import Any

MAX_STR_LOG: int = 2048
MAX_STR_FOR_REGEX: int = 512
MAX_DEPTH: int = 6

REDACTED = "[REDACTED]"

# Compared lower-cased
_SENSITIVE_KEYS: frozenset[str] = frozenset({
    # auth
    "authorization", "token", "access_token", "refresh_token", "jwt",
    "api_key", "secret", "secret_key",
    # NicePay
    "signature", "signdata", "billing_id", "bid", "card", "card_no",
    # personal data
    "email", "phone",
    # crawl payloads
    "firecrawl_markdown",
})

_AUTH_PREFIXES = ("Bearer ", "Basic ")

_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"Bearer \S+"),
    re.compile(r"Basic \S+"),
    re.compile(r"api_key=\S+"),
    re.compile(r"access_token=\S+"),
    # Gemini keys leak through generativelanguage.googleapis.com URLs
    re.compile(r"key=AIza\S+"),
)


def _digest_marker(s: str) -> str:
    digest = hashlib.sha256(s.encode("utf-8", errors="replace")).hexdigest()[:16]
    return f"[TRUNCATED len={len(s)} sha256={digest}]"


def sanitize_str(s: str) -> str:
    """Redact or digest a string for logging (see module docstring)."""
    if not isinstance(s, str):
        return s  # type: ignore[return-value]

    if len(s) > MAX_STR_LOG:
        return _digest_marker(s)

    if len(s) > MAX_STR_FOR_REGEX:
        return REDACTED if s.startswith(_AUTH_PREFIXES) else s

    for pattern in _PATTERNS:
        s = pattern.sub(REDACTED, s)
    return s


def sanitize_obj(obj: Any, depth: int = 0) -> Any:
    """Recursively sanitize a log extra value.

    Sensitive dict keys are replaced wholesale; containers are walked up to
    MAX_DEPTH levels; strings go through sanitize_str().
    """
    if depth >= MAX_DEPTH:
        return "[DEPTH_LIMIT]"

    if isinstance(obj, dict):
        return {
            key: REDACTED
            if isinstance(key, str) and key.lower() in _SENSITIVE_KEYS
            else sanitize_obj(value, depth + 1)
            for key, value in obj.items()
        }

    if isinstance(obj, (list, tuple)):
        return [sanitize_obj(item, depth + 1) for item in obj]

    if isinstance(obj, str):
        return sanitize_str(obj)

    return obj


def sanitize_exc(exc_info: tuple) -> str:
    """Render exc_info as a sanitized traceback string.

    Locals are not captured, so tokens and crawl bodies held in frames stay
    out of the output.
    """
    _type, value, _tb = exc_info
    if value is None:
        return ""
    try:
        te = traceback.TracebackException.from_exception(value, capture_locals=False)
        return sanitize_str("".join(te.format()))
    except Exception:
        return "[TRACEBACK_FORMAT_ERROR]"
