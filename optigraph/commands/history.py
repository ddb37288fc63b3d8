"""CLI command for the saved query history."""

from __future__ import annotations

import click
from rich.markup import escape
from rich.table import Table

from optigraph.commands.options import resolve_settings
from optigraph.helpers.console import console, truncate
from optigraph.settings_store import SettingsStore


@click.command("history")
@click.option("--show", "show_index", type=int, default=None, help="Print the query and response of entry N (1 = newest)")
@click.option("--clear", is_flag=True, default=False, help="Delete all saved entries")
@click.pass_context
def history_command(ctx: click.Context, show_index: int | None, clear: bool) -> None:
    """List recently executed queries."""
    store: SettingsStore = ctx.obj["store"]
    settings = resolve_settings(ctx)
    history = store.load_history(settings.max_history_items)

    if clear:
        history.clear()
        store.save_history(history)
        console.print("[green]History cleared[/green]")
        return

    if show_index is not None:
        if not 1 <= show_index <= len(history):
            console.print(f"[red]No history entry {show_index} (have {len(history)})[/red]")
            ctx.exit(1)
        item = history.items[show_index - 1]
        console.print(f"[bold]Query[/bold] ({item.time_ago()})")
        console.print(item.query, markup=False)
        console.print("[bold]Response[/bold]")
        if item.response:
            console.print_json(item.response)
        return

    if not len(history):
        console.print("No saved queries")
        return

    table = Table(title="Query History")
    table.add_column("#", justify="right")
    table.add_column("When")
    table.add_column("Status")
    table.add_column("Query", style="cyan")
    for index, item in enumerate(history, start=1):
        status = "[green]ok[/green]" if item.success else "[red]error[/red]"
        table.add_row(str(index), item.time_ago(), status, escape(truncate(item.short_query, 80)))
    console.print(table)
