"""Discover content types through GraphQL introspection.

The service caches one :class:`SchemaSnapshot`. A refresh builds a complete
new snapshot before swapping it in; on failure the previous snapshot stays,
so the builder keeps working with stale but consistent schema data.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
import logging
from typing import Any

from optigraph.client.transport import GraphClient
from optigraph.errors import IntrospectionError, TransportError
from optigraph.formats.envelope import GraphRequest
from optigraph.schema.operators import is_scalar_type
from optigraph.schema.types import ContentTypeSchema, SchemaField, SchemaSnapshot

logger = logging.getLogger(__name__)

INTROSPECTION_QUERY = """
query IntrospectionQuery {
  __schema {
    queryType { name }
    types {
      kind
      name
      description
      fields(includeDeprecated: false) {
        name
        description
        type {
          kind
          name
          ofType {
            kind
            name
            ofType {
              kind
              name
              ofType {
                kind
                name
              }
            }
          }
        }
      }
      interfaces { name }
      enumValues(includeDeprecated: false) { name }
    }
  }
}
"""

_EXCLUDED_TYPES = frozenset(
    name.lower()
    for name in (
        "Query", "Mutation", "Subscription",
        "String", "Int", "Float", "Boolean", "ID",
        "DateTime", "Date", "Time", "DateTimeOffset",
        "Decimal", "Long", "Short", "Byte",
        "Uri", "Guid", "TimeSpan",
    )
)
_EXCLUDED_PREFIXES = ("__", "query", "mutation")
_EXCLUDED_SUFFIXES = (
    "Input", "Output", "Connection", "Edge",
    "WhereInput", "OrderByInput", "Facet", "Autocomplete",
)
LOCALES_ENUM = "Locales"
NESTED_DEPTH = 2


class IntrospectionService:
    """Owns the cached schema snapshot for one Graph endpoint."""

    def __init__(self, client: GraphClient):
        self._client = client
        self._snapshot: SchemaSnapshot | None = None
        self._listeners: list[Callable[[SchemaSnapshot], None]] = []

    @property
    def snapshot(self) -> SchemaSnapshot | None:
        return self._snapshot

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    def on_refreshed(self, callback: Callable[[SchemaSnapshot], None]) -> None:
        self._listeners.append(callback)

    async def get_snapshot(self) -> SchemaSnapshot:
        """Return the cached snapshot, loading it on first use."""
        if self._snapshot is not None:
            return self._snapshot
        return await self.refresh()

    async def refresh(self) -> SchemaSnapshot:
        """Fetch and parse a new snapshot, replacing the cached one.

        Raises :class:`IntrospectionError` and keeps the old snapshot when the
        fetch or the parse fails.
        """
        logger.info("Loading GraphQL schema via introspection from %s", self._client.settings.endpoint)
        try:
            response = await self._client.execute_async(GraphRequest(query=INTROSPECTION_QUERY))
        except TransportError as e:
            logger.error("Schema introspection failed: %s", e)
            raise IntrospectionError(f"Schema introspection failed: {e}", e.details) from e

        if response.has_errors:
            errors = "; ".join(response.error_messages())
            logger.error("Schema introspection failed: %s", errors)
            raise IntrospectionError(f"Schema introspection failed: {errors}")

        snapshot = parse_introspection(response.data)
        self._snapshot = snapshot
        logger.info("Loaded %d content types from schema", len(snapshot.content_types))
        for callback in self._listeners:
            callback(snapshot)
        return snapshot

    async def get_content_type(self, name: str) -> ContentTypeSchema | None:
        snapshot = await self.get_snapshot()
        return snapshot.get_content_type(name)

    async def content_type_names(self) -> list[str]:
        snapshot = await self.get_snapshot()
        return [ct.name for ct in snapshot.content_types]


def parse_introspection(data: Any, fetched_at: datetime | None = None) -> SchemaSnapshot:
    """Parse an introspection ``data`` payload into a :class:`SchemaSnapshot`.

    Raises :class:`IntrospectionError` if the payload is not shaped like an
    introspection result.
    """
    try:
        schema = data["__schema"]
        types: list[dict[str, Any]] = list(schema["types"])
        query_type_name = (schema.get("queryType") or {}).get("name") or "Query"
    except (KeyError, TypeError, AttributeError) as e:
        raise IntrospectionError("Malformed introspection response: missing __schema.types") from e

    by_name: dict[str, dict[str, Any]] = {}
    for t in types:
        if isinstance(t, dict) and t.get("name"):
            by_name[t["name"]] = t

    try:
        queryable_names: list[str] = []
        content_type_names: set[str] = set()
        for f in (by_name.get(query_type_name) or {}).get("fields") or []:
            name = f.get("name") or ""
            if name.startswith("__"):
                continue
            queryable_names.append(name)
            if not name.startswith("_"):
                content_type_names.add(name)

        content_types: list[ContentTypeSchema] = []
        for t in types:
            if not isinstance(t, dict) or t.get("kind") != "OBJECT":
                continue
            name = t.get("name") or ""
            if _is_excluded(name):
                continue
            fields = tuple(
                sf
                for sf in (_parse_field(f, by_name, NESTED_DEPTH, {name}) for f in t.get("fields") or [])
                if sf is not None
            )
            if not fields:
                continue
            content_types.append(
                ContentTypeSchema(
                    name=name,
                    description=t.get("description"),
                    fields=fields,
                    queryable=name in content_type_names,
                    interfaces=tuple(i["name"] for i in t.get("interfaces") or [] if i.get("name")),
                )
            )

        locales_type = by_name.get(LOCALES_ENUM) or {}
        locales = tuple(
            v["name"] for v in locales_type.get("enumValues") or [] if v.get("name") and v["name"] != "ALL"
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise IntrospectionError(f"Malformed introspection response: {e}") from e

    content_types.sort(key=lambda ct: (not ct.queryable, ct.name))

    return SchemaSnapshot(
        content_types=tuple(content_types),
        fetched_at=fetched_at or datetime.now(timezone.utc),
        available_locales=locales,
        queryable_type_names=tuple(sorted(queryable_names)),
    )


def _is_excluded(name: str) -> bool:
    if not name or name.lower() in _EXCLUDED_TYPES:
        return True
    if name.lower().startswith(_EXCLUDED_PREFIXES):
        return True
    return name.endswith(_EXCLUDED_SUFFIXES)


def _parse_field(
    field: dict[str, Any],
    by_name: dict[str, dict[str, Any]],
    depth: int,
    seen: set[str],
) -> SchemaField | None:
    name = field.get("name") or ""
    if not name or name.startswith("__"):
        return None

    graph_type, underlying, nullable, is_list = unwrap_type(field["type"])
    target = by_name.get(underlying) or {}
    kind = target.get("kind")
    # Custom scalars and enums filter like strings; objects get nested fields
    is_scalar = is_scalar_type(underlying) or kind in ("SCALAR", "ENUM")

    nested: tuple[SchemaField, ...] | None = None
    if not is_scalar and kind in ("OBJECT", "INTERFACE") and depth > 0 and underlying not in seen:
        nested = tuple(
            sf
            for sf in (
                _parse_field(f, by_name, depth - 1, seen | {underlying}) for f in target.get("fields") or []
            )
            if sf is not None
        )

    return SchemaField(
        name=name,
        graph_type=graph_type,
        underlying_type=underlying,
        nullable=nullable,
        is_list=is_list,
        is_scalar=is_scalar,
        is_enum=kind == "ENUM",
        filterable=True,
        sortable=is_scalar and not is_list,
        searchable=underlying == "String",
        description=field.get("description"),
        nested_fields=nested,
    )


def unwrap_type(type_ref: dict[str, Any]) -> tuple[str, str, bool, bool]:
    """Unwind NON_NULL/LIST wrappers.

    Returns ``(printed_type, underlying_type, nullable, is_list)``, e.g.
    ``("[String]!", "String", False, True)``.
    """
    kind = type_ref.get("kind")
    if kind == "NON_NULL":
        printed, underlying, _, is_list = unwrap_type(type_ref.get("ofType") or {})
        return f"{printed}!", underlying, False, is_list
    if kind == "LIST":
        printed, underlying, _, _ = unwrap_type(type_ref.get("ofType") or {})
        return f"[{printed}]", underlying, True, True
    name = type_ref.get("name") or "Unknown"
    return name, name, True, False
