"""CLI commands for viewing and editing the stored connection settings."""

from __future__ import annotations

from typing import Any

import click
from rich.markup import escape
from rich.table import Table

from optigraph.client.transport import GraphClient
from optigraph.commands.options import connection_options, resolve_settings
from optigraph.formats.settings import GraphSettings
from optigraph.helpers.console import console
from optigraph.settings_store import SettingsStore, merge_settings

_SECRET_FIELDS = ("single_key", "secret")


def _mask(value: str | None) -> str:
    if not value:
        return ""
    return value[:4] + "***" if len(value) > 8 else "***"


@click.group("settings")
def settings_group() -> None:
    """Manage the stored connection settings."""


@settings_group.command("show")
@click.option("--reveal", is_flag=True, default=False, help="Show keys and secrets in clear text")
@click.pass_context
def settings_show(ctx: click.Context, reveal: bool) -> None:
    """Show the effective settings (stored values plus environment overrides)."""
    store: SettingsStore = ctx.obj["store"]
    settings = resolve_settings(ctx)

    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for name, value in settings.model_dump().items():
        if name in _SECRET_FIELDS and not reveal:
            shown = _mask(value)
        elif hasattr(value, "value"):
            shown = value.value
        else:
            shown = "" if value is None else str(value)
        table.add_row(name, escape(shown))
    console.print(table)
    console.print(f"  Storage: {store.path}")

    missing = settings.missing_credentials()
    if missing:
        console.print(f"[yellow]Missing for {settings.auth_mode.value} auth: {', '.join(missing)}[/yellow]")


@settings_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def settings_set(ctx: click.Context, key: str, value: str) -> None:
    """Store one setting, e.g. ``optigraph settings set single_key abc123``."""
    store: SettingsStore = ctx.obj["store"]
    name = key.replace("-", "_")
    if name not in GraphSettings.model_fields:
        valid = ", ".join(GraphSettings.model_fields)
        raise click.BadParameter(f"Unknown setting '{key}' (valid: {valid})", param_hint="KEY")
    try:
        updated = merge_settings(store.load(), {name: value})
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="VALUE") from e
    store.save(updated)
    console.print(f"[green]Saved {name}[/green]")


@settings_group.command("clear")
@click.confirmation_option(prompt="Reset all stored settings to defaults?")
@click.pass_context
def settings_clear(ctx: click.Context) -> None:
    """Reset stored settings to defaults."""
    store: SettingsStore = ctx.obj["store"]
    store.clear()
    console.print("[green]Settings cleared[/green]")


@click.command("test-connection")
@connection_options
@click.pass_context
def test_connection_command(ctx: click.Context, **overrides: Any) -> None:
    """Check that the endpoint answers with the current credentials."""
    settings = resolve_settings(ctx, **overrides)
    console.print(f"[bold]Testing connection to[/bold] {settings.endpoint}")
    ok, message = GraphClient(settings).test_connection()
    if ok:
        console.print(f"[green]{escape(message)}[/green]")
    else:
        console.print(f"[red]{escape(message)}[/red]")
        ctx.exit(1)
