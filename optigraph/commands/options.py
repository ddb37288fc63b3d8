"""Shared click options and the helpers that turn them into core objects."""

from __future__ import annotations

from collections.abc import Callable
import sys
from typing import Any, TypeVar

import click
from rich.markup import escape

from optigraph.errors import OptigraphError
from optigraph.formats.settings import GraphSettings
from optigraph.helpers.console import console
from optigraph.query.definition import (
    FacetDefinition,
    FacetOrderBy,
    FilterDefinition,
    FilterLogic,
    QueryDefinition,
    SortDefinition,
    SortDirection,
)
from optigraph.schema.operators import Operator
from optigraph.settings_store import SettingsStore, apply_env_overrides, merge_settings

F = TypeVar("F", bound=Callable[..., Any])


def connection_options(func: F) -> F:
    """Options overriding the stored connection settings for one command."""
    options = [
        click.option("--endpoint", default=None, help="GraphQL endpoint URL"),
        click.option(
            "--auth-mode",
            default=None,
            type=click.Choice(["none", "single-key", "hmac"], case_sensitive=False),
            help="Authentication mode",
        ),
        click.option("--single-key", default=None, help="Single key for public queries"),
        click.option("--app-key", default=None, help="App key for HMAC authentication"),
        click.option("--secret", default=None, help="Secret for HMAC authentication"),
        click.option("--timeout", default=None, type=float, help="Request timeout in seconds"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def query_options(func: F) -> F:
    """Options describing a query definition."""
    options = [
        click.option("-t", "--type", "content_type", required=True, help="Content type to query"),
        click.option("-f", "--field", "fields", multiple=True, help="Field to select (dotted paths allowed). Repeatable."),
        click.option(
            "-w",
            "--filter",
            "filters",
            multiple=True,
            help="FIELD:OP:VALUE[:or]; In/NotIn values separated by '|'. Repeatable.",
        ),
        click.option("-s", "--sort", "sorts", multiple=True, help="FIELD[:asc|desc]. Repeatable."),
        click.option("--skip", type=int, default=None, help="Items to skip (offset paging)"),
        click.option("--limit", type=int, default=10, show_default=True, help="Maximum items to return"),
        click.option("--cursor", default=None, help="Cursor from a previous page (cursor paging)"),
        click.option("--cursor-paging", is_flag=True, default=False, help="Use cursor paging"),
        click.option("--locale", default=None, help="Content locale, e.g. en or en,sv"),
        click.option("-q", "--search", default=None, help="Full-text search term"),
        click.option("--facet", "facets", multiple=True, help="FIELD[:count|value][:LIMIT]. Repeatable."),
        click.option("--no-total", is_flag=True, default=False, help="Do not request the total count"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def resolve_settings(ctx: click.Context, **overrides: Any) -> GraphSettings:
    """Stored settings, then OPTIGRAPH_* environment, then command options."""
    store: SettingsStore = ctx.obj["store"]
    settings = apply_env_overrides(store.load())
    try:
        return merge_settings(settings, overrides)
    except ValueError as e:
        raise click.UsageError(f"Invalid connection settings: {e}") from e


def definition_from_options(
    content_type: str,
    fields: tuple[str, ...],
    filters: tuple[str, ...],
    sorts: tuple[str, ...],
    skip: int | None,
    limit: int | None,
    cursor: str | None,
    cursor_paging: bool,
    locale: str | None,
    search: str | None,
    facets: tuple[str, ...],
    no_total: bool,
    default_locale: str | None = None,
) -> QueryDefinition:
    definition = QueryDefinition(
        content_type=content_type,
        selected_fields=list(fields),
        filters=[parse_filter(raw) for raw in filters],
        sorts=[],
        locale=locale or default_locale,
        search_term=search,
        facets=[parse_facet(raw) for raw in facets],
        include_total=not no_total,
    )
    for index, raw in enumerate(sorts):
        sort = parse_sort(raw)
        sort.order = index
        definition.sorts.append(sort)
    if cursor_paging or cursor:
        definition.pagination.use_cursor(cursor, limit)
    else:
        definition.pagination.use_offset(skip, limit)
    return definition


def parse_filter(raw: str) -> FilterDefinition:
    """Parse ``FIELD:OP:VALUE[:or|:and]``.

    >>> parse_filter("status:eq:published").operator
    <Operator.EQ: 'eq'>
    """
    parts = raw.split(":", 2)
    if len(parts) < 2 or not parts[0].strip():
        raise click.BadParameter(f"Expected FIELD:OP:VALUE, got '{raw}'", param_hint="--filter")
    field_name, op_text = parts[0].strip(), parts[1].strip()
    rest = parts[2] if len(parts) == 3 else ""

    logic = FilterLogic.AND
    lowered = rest.lower()
    for suffix, candidate in ((":or", FilterLogic.OR), (":and", FilterLogic.AND)):
        if lowered.endswith(suffix):
            rest, logic = rest[: -len(suffix)], candidate
            break
    if lowered in ("or", "and") and op_text.lower() == "exist":
        rest, logic = "", FilterLogic(lowered)

    try:
        operator = Operator(op_text)
    except ValueError:
        valid = ", ".join(op.value for op in Operator)
        raise click.BadParameter(f"Unknown operator '{op_text}' (valid: {valid})", param_hint="--filter")

    f = FilterDefinition(field=field_name, operator=operator, logic=logic)
    if operator.is_multi_value or operator is Operator.SYNONYMS:
        f.values = [v for v in rest.split("|") if v]
    else:
        f.value = rest
    return f


def parse_sort(raw: str) -> SortDefinition:
    field_name, _, direction = raw.partition(":")
    try:
        parsed = SortDirection(direction.strip().upper() or "ASC")
    except ValueError:
        raise click.BadParameter(f"Sort direction must be asc or desc, got '{direction}'", param_hint="--sort")
    return SortDefinition(field=field_name.strip(), direction=parsed)


def parse_facet(raw: str) -> FacetDefinition:
    parts = [p.strip() for p in raw.split(":")]
    facet = FacetDefinition(field=parts[0])
    for part in parts[1:]:
        if part.isdigit():
            facet.limit = int(part)
        elif part.upper() in FacetOrderBy.__members__:
            facet.order_by = FacetOrderBy(part.upper())
        else:
            raise click.BadParameter(f"Unexpected facet option '{part}'", param_hint="--facet")
    return facet


def fail(error: OptigraphError) -> None:
    """Print an error and exit with status 1."""
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    field_name = getattr(error, "field", None)
    if field_name:
        console.print(f"  Field: {field_name}")
    sys.exit(1)
