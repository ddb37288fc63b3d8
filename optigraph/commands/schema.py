"""CLI commands for browsing the Graph schema and the operator rules."""

from __future__ import annotations

import asyncio
from typing import Any

import click
from rich.markup import escape
from rich.table import Table

from optigraph.client.transport import GraphClient
from optigraph.commands.options import connection_options, fail, resolve_settings
from optigraph.errors import IntrospectionError
from optigraph.helpers.console import console, truncate
from optigraph.schema.introspection import IntrospectionService
from optigraph.schema.operators import operators_for
from optigraph.schema.types import ContentTypeSchema, SchemaField, SchemaSnapshot


@click.command("schema")
@click.argument("content_type", required=False)
@connection_options
@click.option("--all", "show_all", is_flag=True, default=False, help="Include non-queryable object types")
@click.pass_context
def schema_command(ctx: click.Context, content_type: str | None, show_all: bool, **overrides: Any) -> None:
    """List content types, or the fields of CONTENT_TYPE."""
    settings = resolve_settings(ctx, **overrides)
    service = IntrospectionService(GraphClient(settings))
    try:
        snapshot = asyncio.run(service.get_snapshot())
    except IntrospectionError as e:
        fail(e)
        return

    if content_type is None:
        _print_content_types(snapshot, show_all)
        return

    schema = snapshot.get_content_type(content_type)
    if schema is None:
        console.print(f"[red]Content type '{content_type}' not found[/red]")
        ctx.exit(1)
    _print_fields(schema)


def _print_content_types(snapshot: SchemaSnapshot, show_all: bool) -> None:
    table = Table(title="Content Types")
    table.add_column("Name", style="cyan")
    table.add_column("Fields", justify="right")
    table.add_column("Queryable")
    table.add_column("Description")
    for ct in snapshot.content_types:
        if not ct.queryable and not show_all:
            continue
        table.add_row(ct.name, str(len(ct.fields)), "yes" if ct.queryable else "", escape(truncate(ct.description or "", 60)))
    console.print(table)
    if snapshot.available_locales:
        console.print(f"  Locales: {', '.join(snapshot.available_locales)}")


def _print_fields(schema: ContentTypeSchema) -> None:
    table = Table(title=schema.name)
    table.add_column("Field", style="cyan")
    table.add_column("Type")
    table.add_column("Sortable")
    table.add_column("Operators")
    for f, depth in _walk(schema.fields, 0):
        table.add_row(
            "  " * depth + f.name,
            escape(f.graph_type),
            "yes" if f.sortable else "",
            ", ".join(op.value for op in f.available_operators),
        )
    console.print(table)
    if schema.interfaces:
        console.print(f"  Implements: {', '.join(schema.interfaces)}")


def _walk(fields: tuple[SchemaField, ...], depth: int):
    for f in fields:
        yield f, depth
        if f.nested_fields:
            yield from _walk(f.nested_fields, depth + 1)


@click.command("operators")
@click.argument("type_name")
@click.option("--list", "is_list", is_flag=True, default=False, help="The field is a list of TYPE_NAME")
@click.option("--object", "is_object", is_flag=True, default=False, help="TYPE_NAME is an object type")
def operators_command(type_name: str, is_list: bool, is_object: bool) -> None:
    """Show the filter operators available for a field type."""
    for op in operators_for(type_name, is_list=is_list, is_scalar=not is_object):
        click.echo(op.value)
