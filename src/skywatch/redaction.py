"""Keep provider credentials out of logs and error messages.

The only secret skywatch handles is the PWS API key, which travels as an
`apiKey` query parameter. URLs are therefore redacted parameter by parameter,
and free text falls back to a `name=value` / `name: value` pattern.
"""

from __future__ import annotations

import re
from typing import Any

import httpx

REDACTED = "[REDACTED]"

_SENSITIVE_MARKERS = ("apikey", "api_key", "token", "secret", "password", "authorization")

_INLINE_SECRET_RE = re.compile(
    r"""(?ix)
    \b
    (?P<name>[a-z_-]*(?:api[_-]?key|token|secret|password|authorization))
    (?P<sep>\s*[:=]\s*)
    (?:bearer\s+)?
    [^\s,;&"']+
    """
)


def is_sensitive_name(name: str) -> bool:
    """True for parameter, header, or field names that carry credentials."""
    folded = name.casefold().replace("-", "_")
    return any(marker in folded for marker in _SENSITIVE_MARKERS)


def redact_url(url: httpx.URL | str) -> str:
    """Return `url` with the values of credential query parameters replaced."""
    parsed = httpx.URL(url)
    if not parsed.query:
        return str(parsed)
    params = [
        (key, REDACTED if is_sensitive_name(key) else value)
        for key, value in parsed.params.multi_items()
    ]
    return str(parsed.copy_with(params=params))


def sanitize_text(text: str) -> str:
    """Redact `name=value` style credentials embedded in plain text."""
    return _INLINE_SECRET_RE.sub(lambda m: f"{m.group('name')}{m.group('sep')}{REDACTED}", text)


def sanitize_for_logging(value: Any) -> Any:
    """Recursively redact credentials in structures passed as log `extra`."""
    if isinstance(value, dict):
        return {
            key: REDACTED if is_sensitive_name(str(key)) else sanitize_for_logging(child)
            for key, child in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(sanitize_for_logging(item) for item in value)
    if isinstance(value, httpx.URL):
        return redact_url(value)
    if isinstance(value, str):
        return sanitize_text(value)
    return value
