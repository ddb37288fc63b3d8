"""Error taxonomy for query building, transport and schema discovery.

GraphQL-level ``errors`` returned by the server are not exceptions; they
arrive as data on :class:`optigraph.formats.envelope.GraphResponse`.
"""

from __future__ import annotations

from typing import Any


class OptigraphError(Exception):
    """Base class for expected, user-recoverable failures."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class BuildError(OptigraphError):
    """The query definition cannot produce a query (no content type or fields)."""


class ValidationError(OptigraphError):
    """A filter, field or literal is incompatible with the schema.

    ``field`` names the offending field so the caller can highlight it.
    """

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(message, details)
        self.field = field


class TransportError(OptigraphError):
    """No usable HTTP response was obtained (DNS, TLS, timeout, bad body)."""


class ConfigError(TransportError):
    """The connection settings are incomplete for the selected auth mode."""


class IntrospectionError(OptigraphError):
    """Schema fetch or parse failed; the previous snapshot is kept."""


class SessionBusyError(OptigraphError):
    """A query is already executing on this session."""
