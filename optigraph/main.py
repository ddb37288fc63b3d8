"""CLI entry point for optigraph."""

from __future__ import annotations

import click
from dotenv import load_dotenv

from optigraph.commands.history import history_command
from optigraph.commands.query import build_command, exec_command, run_command
from optigraph.commands.schema import operators_command, schema_command
from optigraph.commands.settings import settings_group, test_connection_command
from optigraph.helpers.console import setup_logging
from optigraph.settings_store import SettingsStore

load_dotenv()


@click.group()
@click.version_option(version="0.1.0", prog_name="optigraph")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log requests and schema loading")
@click.option(
    "--storage",
    type=click.Path(dir_okay=False),
    envvar="OPTIGRAPH_STORAGE",
    default=None,
    help="Settings and history file (default ~/.optigraph/storage.json)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, storage: str | None) -> None:
    """Build and run Optimizely Graph queries from the command line."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["store"] = SettingsStore(storage)


cli.add_command(build_command)
cli.add_command(run_command)
cli.add_command(exec_command)
cli.add_command(schema_command)
cli.add_command(operators_command)
cli.add_command(history_command)
cli.add_command(settings_group)
cli.add_command(test_connection_command)


if __name__ == "__main__":
    cli()
