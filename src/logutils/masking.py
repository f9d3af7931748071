"""Masking of credentials in log output.

Supabase service keys, Firebase API keys and bearer tokens routinely end up in
error messages and request reprs; these helpers scrub them before a record is
written anywhere.
"""

from __future__ import annotations

import re
from typing import Any

MASK = "***MASKED***"

# Patterns whose first group is the key part to keep
_KEYED_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r'(["\']?password["\']?\s*[:=]\s*)["\']?[^"\'\s,}\]]+["\']?', re.IGNORECASE),
    re.compile(
        r'(["\']?(?:api[_-]?key|apikey|anon[_-]?key|service[_-]?role[_-]?key)["\']?\s*[:=]\s*)'
        r'["\']?[A-Za-z0-9_\-\.]+["\']?',
        re.IGNORECASE,
    ),
    re.compile(
        r'(["\']?(?:(?:auth|access|refresh)[_-]?)?token["\']?\s*[:=]\s*)["\']?[A-Za-z0-9_\-\.]+["\']?',
        re.IGNORECASE,
    ),
    re.compile(r'(["\']?secret["\']?\s*[:=]\s*)["\']?[A-Za-z0-9_\-]+["\']?', re.IGNORECASE),
    re.compile(r"(Bearer\s+)[A-Za-z0-9_\-\.]+", re.IGNORECASE),
)

_URL_CREDENTIALS = re.compile(r"(https?://)[^:/\s]+:[^@/\s]+(@)", re.IGNORECASE)

# JWTs (Supabase keys are JWTs) appearing bare in text
_JWT = re.compile(r"\beyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+")

_EMAIL = re.compile(r"([A-Za-z0-9._%+-]{1,2})[A-Za-z0-9._%+-]*(@[A-Za-z0-9.-]+\.[A-Za-z]{2,})")

SENSITIVE_KEYWORDS: frozenset[str] = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "anon_key",
        "service_role",
        "authorization",
        "credential",
        "private_key",
    }
)


def mask_sensitive_string(text: str) -> str:
    """Replace secrets in free text with ``MASK``."""
    if not text:
        return text

    result = _URL_CREDENTIALS.sub(r"\1" + MASK + r"\2", text)
    for pattern in _KEYED_PATTERNS:
        result = pattern.sub(r"\g<1>" + MASK, result)
    result = _JWT.sub(MASK, result)
    result = _EMAIL.sub(r"\1***\2", result)
    return result


def is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    return any(word in lowered for word in SENSITIVE_KEYWORDS)


def mask_dict(data: dict[str, Any], depth: int = 0, max_depth: int = 8) -> dict[str, Any]:
    """Recursively mask values whose key looks sensitive, and secrets in strings."""
    if depth >= max_depth:
        return data

    masked: dict[str, Any] = {}
    for key, value in data.items():
        if is_sensitive_key(str(key)):
            masked[key] = MASK
        elif isinstance(value, dict):
            masked[key] = mask_dict(value, depth + 1, max_depth)
        elif isinstance(value, list):
            masked[key] = [
                mask_dict(item, depth + 1, max_depth) if isinstance(item, dict) else item
                for item in value
            ]
        elif isinstance(value, str):
            masked[key] = mask_sensitive_string(value)
        else:
            masked[key] = value
    return masked


class SensitiveValue:
    """Holds a secret that renders as ``MASK`` when formatted.

    Usage:
        key = SensitiveValue(os.getenv("SUPABASE_KEY"))
        logger.info(f"Using key {key}")  # -> "Using key ***MASKED***"
    """

    def __init__(self, value: Any) -> None:
        self._value = value

    def get(self) -> Any:
        return self._value

    def __str__(self) -> str:
        return MASK

    def __repr__(self) -> str:
        return f"SensitiveValue({MASK})"

    def __bool__(self) -> bool:
        return bool(self._value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SensitiveValue):
            return self._value == other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)
