"""CLI commands that build and execute queries."""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any

import click
from rich.markup import escape

from optigraph.client.transport import GraphClient
from optigraph.commands.options import (
    connection_options,
    definition_from_options,
    fail,
    query_options,
    resolve_settings,
)
from optigraph.errors import IntrospectionError, OptigraphError
from optigraph.formats.envelope import GraphResponse
from optigraph.formats.settings import GraphSettings
from optigraph.helpers.console import console
from optigraph.query.builder import build_query, validate_query
from optigraph.query.definition import QueryDefinition
from optigraph.query.session import QuerySession
from optigraph.schema.introspection import IntrospectionService
from optigraph.schema.types import ContentTypeSchema
from optigraph.settings_store import SettingsStore


def _load_content_type(client: GraphClient, name: str) -> ContentTypeSchema | None:
    """Fetch the schema for *name*; warn and return None if unavailable."""
    service = IntrospectionService(client)
    try:
        schema = asyncio.run(service.get_content_type(name))
    except IntrospectionError as e:
        console.print(f"[yellow]Warning: {escape(str(e))}. Building without schema validation.[/yellow]")
        return None
    if schema is None:
        console.print(f"[yellow]Warning: content type '{name}' not found in schema.[/yellow]")
    return schema


def _definition(settings: GraphSettings, options: dict[str, Any]) -> QueryDefinition:
    return definition_from_options(default_locale=settings.default_locale, **options)


@click.command("build")
@query_options
@connection_options
@click.option("--schema-aware", is_flag=True, default=False, help="Validate fields and operators against the live schema")
@click.pass_context
def build_command(
    ctx: click.Context,
    endpoint: str | None,
    auth_mode: str | None,
    single_key: str | None,
    app_key: str | None,
    secret: str | None,
    timeout: float | None,
    schema_aware: bool,
    **options: Any,
) -> None:
    """Print the GraphQL query for a definition without executing it.

    \b
    Examples:
      optigraph build -t BlogPost -f Name -f Url -w Status:eq:Published
      optigraph build -t BlogPost -f Name -w Price:gt:10 -s Name:desc --limit 5
    """
    settings = resolve_settings(
        ctx,
        endpoint=endpoint,
        auth_mode=auth_mode,
        single_key=single_key,
        app_key=app_key,
        secret=secret,
        timeout=timeout,
    )
    try:
        definition = _definition(settings, options)
        schema = _load_content_type(GraphClient(settings), definition.content_type) if schema_aware else None
        query = build_query(definition, schema)
    except OptigraphError as e:
        fail(e)
        return
    click.echo(query)


@click.command("run")
@query_options
@connection_options
@click.option("--schema-aware", is_flag=True, default=False, help="Validate fields and operators against the live schema")
@click.option("--show-query", is_flag=True, default=False, help="Print the generated query before the response")
@click.pass_context
def run_command(
    ctx: click.Context,
    endpoint: str | None,
    auth_mode: str | None,
    single_key: str | None,
    app_key: str | None,
    secret: str | None,
    timeout: float | None,
    schema_aware: bool,
    show_query: bool,
    **options: Any,
) -> None:
    """Build a query from options, execute it and print the response."""
    store: SettingsStore = ctx.obj["store"]
    settings = resolve_settings(
        ctx,
        endpoint=endpoint,
        auth_mode=auth_mode,
        single_key=single_key,
        app_key=app_key,
        secret=secret,
        timeout=timeout,
    )
    client = GraphClient(settings)
    session = QuerySession(client, settings, store.load_history(settings.max_history_items))
    try:
        session.definition = _definition(settings, options)
        schema = _load_content_type(client, session.definition.content_type) if schema_aware else None
        query = session.build(schema)
        if show_query:
            console.print(f"[dim]{escape(query)}[/dim]")
        response = asyncio.run(session.execute(query))
    except OptigraphError as e:
        fail(e)
        return
    _finish(store, session, response)


@click.command("exec")
@click.argument("query_file", type=click.File("r"))
@connection_options
@click.option("--variables", "variables_json", default=None, help="Variables as a JSON object")
@click.option("--operation", "operation_name", default=None, help="Operation name to execute")
@click.pass_context
def exec_command(
    ctx: click.Context,
    query_file: Any,
    endpoint: str | None,
    auth_mode: str | None,
    single_key: str | None,
    app_key: str | None,
    secret: str | None,
    timeout: float | None,
    variables_json: str | None,
    operation_name: str | None,
) -> None:
    """Execute a raw GraphQL query read from QUERY_FILE ('-' for stdin)."""
    query = query_file.read()
    errors = validate_query(query)
    if errors:
        for message in errors:
            console.print(f"[red]Invalid query: {escape(message)}[/red]")
        sys.exit(1)

    variables: dict[str, Any] | None = None
    if variables_json:
        try:
            variables = json.loads(variables_json)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"Not valid JSON: {e}", param_hint="--variables")
        if not isinstance(variables, dict):
            raise click.BadParameter("Must be a JSON object", param_hint="--variables")

    store: SettingsStore = ctx.obj["store"]
    settings = resolve_settings(
        ctx,
        endpoint=endpoint,
        auth_mode=auth_mode,
        single_key=single_key,
        app_key=app_key,
        secret=secret,
        timeout=timeout,
    )
    session = QuerySession(GraphClient(settings), settings, store.load_history(settings.max_history_items))
    try:
        response = asyncio.run(session.execute(query, variables, operation_name=operation_name))
    except OptigraphError as e:
        fail(e)
        return
    _finish(store, session, response)


def _finish(store: SettingsStore, session: QuerySession, response: GraphResponse | None) -> None:
    if session.history.items:
        store.save_history(session.history)
    if response is None:
        return
    console.print_json(session.last_response)
    if response.has_errors:
        for message in response.error_messages():
            console.print(f"[red]GraphQL error: {escape(message)}[/red]")
        sys.exit(1)
