"""Pydantic models for the GraphQL-over-HTTP wire envelopes."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, JsonValue


class GraphRequest(BaseModel):
    query: str
    operation_name: str | None = Field(default=None, alias="operationName")
    variables: dict[str, JsonValue] | None = None

    model_config = {"populate_by_name": True}

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body; ``operationName``/``variables`` only when set."""
        payload: dict[str, Any] = {"query": self.query}
        if self.operation_name is not None:
            payload["operationName"] = self.operation_name
        if self.variables is not None:
            payload["variables"] = self.variables
        return payload


class ErrorLocation(BaseModel):
    line: int
    column: int


class GraphError(BaseModel):
    message: str = ""
    locations: list[ErrorLocation] | None = None
    path: list[str | int] | None = None
    extensions: dict[str, JsonValue] | None = None


class GraphResponse(BaseModel):
    """A parsed GraphQL response. ``errors`` may coexist with partial ``data``."""

    data: JsonValue = None
    errors: list[GraphError] | None = None
    extensions: dict[str, JsonValue] | None = None

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def error_messages(self) -> list[str]:
        return [e.message for e in self.errors or []]

    @classmethod
    def from_error(cls, message: str) -> GraphResponse:
        return cls(errors=[GraphError(message=message)])


def is_graphql_body(body: Any) -> bool:
    """True if a decoded JSON body looks like a GraphQL response envelope."""
    return isinstance(body, dict) and any(k in body for k in ("data", "errors", "extensions"))


class RequestInfo(BaseModel):
    """Details of the last HTTP exchange, for debugging output."""

    url: str
    method: str = "POST"
    request_headers: dict[str, str] = Field(default_factory=dict)
    request_body: str = ""
    status_code: int | None = None
    response_headers: dict[str, str] = Field(default_factory=dict)
    response_body: str = ""
    duration_ms: float = 0
