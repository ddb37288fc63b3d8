"""Schema types produced by introspection and consumed read-only elsewhere.

A :class:`SchemaSnapshot` is immutable; a refresh replaces it wholesale.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from optigraph.helpers.naming import split_path
from optigraph.schema.operators import Operator, operators_for


@dataclass(frozen=True)
class SchemaField:
    """A field on a content type (or on a nested object type)."""

    name: str
    graph_type: str  # GraphQL type as printed, e.g. "[String]!"
    underlying_type: str  # innermost named type, e.g. "String"
    nullable: bool = True
    is_list: bool = False
    is_scalar: bool = True
    is_enum: bool = False
    filterable: bool = True
    sortable: bool = True
    searchable: bool = False
    description: str | None = None
    nested_fields: tuple[SchemaField, ...] | None = None
    available_operators: tuple[Operator, ...] = field(init=False)

    def __post_init__(self) -> None:
        # Always derived from the type, never passed in
        object.__setattr__(
            self,
            "available_operators",
            operators_for(self.underlying_type, self.is_list, self.is_scalar),
        )

    def get_nested(self, name: str) -> SchemaField | None:
        for f in self.nested_fields or ():
            if f.name == name:
                return f
        return None


@dataclass(frozen=True)
class ContentTypeSchema:
    name: str
    fields: tuple[SchemaField, ...] = ()
    queryable: bool = True
    interfaces: tuple[str, ...] = ()
    description: str | None = None

    def get_field(self, name: str) -> SchemaField | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def find_field(self, path: str) -> SchemaField | None:
        """Resolve a dotted path (``_metadata.status``) through nested fields."""
        parts = split_path(path)
        if not parts:
            return None
        current = self.get_field(parts[0])
        for part in parts[1:]:
            if current is None:
                return None
            current = current.get_nested(part)
        return current


@dataclass(frozen=True)
class SchemaSnapshot:
    content_types: tuple[ContentTypeSchema, ...]
    fetched_at: datetime
    available_locales: tuple[str, ...] = ()
    queryable_type_names: tuple[str, ...] = ()

    def get_content_type(self, name: str) -> ContentTypeSchema | None:
        """Case-insensitive content type lookup."""
        wanted = name.lower()
        for ct in self.content_types:
            if ct.name.lower() == wanted:
                return ct
        return None

    def find_field(self, content_type: str, path: str) -> SchemaField | None:
        ct = self.get_content_type(content_type)
        return ct.find_field(path) if ct else None
