"""Structured, mutable representation of a query being built.

Nothing here validates: editable state is never rejected outright, the
builder checks it at render time.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from enum import Enum
import uuid

from optigraph.schema.operators import Operator


class FilterLogic(str, Enum):
    AND = "and"
    OR = "or"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class FacetOrderBy(str, Enum):
    COUNT = "COUNT"
    VALUE = "VALUE"


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class FilterDefinition:
    field: str = ""
    operator: Operator = Operator.EQ
    value: str = ""
    values: list[str] = dc_field(default_factory=lambda: list[str]())  # In/NotIn only
    logic: FilterLogic = FilterLogic.AND  # how this filter joins the previous one
    nested_filters: list[FilterDefinition] = dc_field(default_factory=lambda: list[FilterDefinition]())
    # UI list identity only; excluded from equality
    id: str = dc_field(default_factory=_new_id, compare=False)

    def clone(self) -> FilterDefinition:
        return FilterDefinition(
            field=self.field,
            operator=self.operator,
            value=self.value,
            values=list(self.values),
            logic=self.logic,
            nested_filters=[f.clone() for f in self.nested_filters],
            id=self.id,
        )


@dataclass
class SortDefinition:
    field: str = ""
    direction: SortDirection = SortDirection.ASC
    order: int = 0

    def clone(self) -> SortDefinition:
        return SortDefinition(field=self.field, direction=self.direction, order=self.order)


@dataclass
class PaginationOptions:
    skip: int | None = None
    limit: int | None = 10
    cursor: str | None = None
    use_cursor_pagination: bool = False

    def use_offset(self, skip: int | None = None, limit: int | None = None) -> None:
        """Switch to offset paging, dropping any cursor."""
        self.use_cursor_pagination = False
        self.cursor = None
        self.skip = skip
        if limit is not None:
            self.limit = limit

    def use_cursor(self, cursor: str | None = None, limit: int | None = None) -> None:
        """Switch to cursor paging, dropping any skip."""
        self.use_cursor_pagination = True
        self.skip = None
        self.cursor = cursor
        if limit is not None:
            self.limit = limit

    def clone(self) -> PaginationOptions:
        return PaginationOptions(
            skip=self.skip,
            limit=self.limit,
            cursor=self.cursor,
            use_cursor_pagination=self.use_cursor_pagination,
        )


@dataclass
class FacetDefinition:
    field: str = ""
    limit: int | None = None
    order_by: FacetOrderBy = FacetOrderBy.COUNT

    def clone(self) -> FacetDefinition:
        return FacetDefinition(field=self.field, limit=self.limit, order_by=self.order_by)


@dataclass
class QueryDefinition:
    content_type: str = ""
    selected_fields: list[str] = dc_field(default_factory=lambda: list[str]())
    filters: list[FilterDefinition] = dc_field(default_factory=lambda: list[FilterDefinition]())
    sorts: list[SortDefinition] = dc_field(default_factory=lambda: list[SortDefinition]())
    pagination: PaginationOptions = dc_field(default_factory=PaginationOptions)
    locale: str | None = None
    search_term: str | None = None
    facets: list[FacetDefinition] = dc_field(default_factory=lambda: list[FacetDefinition]())
    include_total: bool = True

    def clone(self) -> QueryDefinition:
        """Deep copy; the clone shares no mutable state with the original."""
        return QueryDefinition(
            content_type=self.content_type,
            selected_fields=list(self.selected_fields),
            filters=[f.clone() for f in self.filters],
            sorts=[s.clone() for s in self.sorts],
            pagination=self.pagination.clone(),
            locale=self.locale,
            search_term=self.search_term,
            facets=[f.clone() for f in self.facets],
            include_total=self.include_total,
        )

    def toggle_field(self, name: str) -> bool:
        """Add *name* if absent, remove it if present. Returns True if now selected."""
        if name in self.selected_fields:
            self.selected_fields = [f for f in self.selected_fields if f != name]
            return False
        self.selected_fields.append(name)
        return True

    def unique_fields(self) -> list[str]:
        """Selected fields with duplicates dropped, first occurrence wins."""
        return list(dict.fromkeys(self.selected_fields))

    def add_filter(
        self,
        field_name: str = "",
        operator: Operator = Operator.EQ,
        value: str = "",
        values: list[str] | None = None,
        logic: FilterLogic = FilterLogic.AND,
    ) -> FilterDefinition:
        f = FilterDefinition(
            field=field_name,
            operator=operator,
            value=value,
            values=list(values or []),
            logic=logic,
        )
        self.filters.append(f)
        return f

    def remove_filter(self, filter_id: str) -> bool:
        before = len(self.filters)
        self.filters = [f for f in self.filters if f.id != filter_id]
        return len(self.filters) != before

    def add_sort(self, field_name: str, direction: SortDirection = SortDirection.ASC) -> SortDefinition:
        """Append a sort ranked after every existing one."""
        next_order = max((s.order for s in self.sorts), default=-1) + 1
        s = SortDefinition(field=field_name, direction=direction, order=next_order)
        self.sorts.append(s)
        return s

    def add_facet(
        self,
        field_name: str,
        limit: int | None = None,
        order_by: FacetOrderBy = FacetOrderBy.COUNT,
    ) -> FacetDefinition:
        f = FacetDefinition(field=field_name, limit=limit, order_by=order_by)
        self.facets.append(f)
        return f
