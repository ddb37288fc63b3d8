"""HTTP header utilities."""

from __future__ import annotations

from collections.abc import Mapping

_SECRET_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie"})


def get_header(headers: Mapping[str, str], name: str) -> str | None:
    """Get a header value by name (case-insensitive, first match wins)."""
    name_lower = name.lower()
    for key, value in headers.items():
        if key.lower() == name_lower:
            return value
    return None


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy headers, masking credentials but keeping the auth scheme visible.

    >>> redact_headers({"Authorization": "epi-single abc123"})
    {'Authorization': 'epi-single ***'}
    """
    redacted: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in _SECRET_HEADERS:
            scheme, sep, _ = value.partition(" ")
            redacted[key] = f"{scheme} ***" if sep else "***"
        else:
            redacted[key] = value
    return redacted
