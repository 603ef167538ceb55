"""linkshelf CLI: operator console over the entity services."""

from __future__ import annotations

import logging
from typing import Optional

import typer

from linkshelf.cli import entities, init_cmd

app = typer.Typer(
    name="linkshelf",
    help="Operator console for linkshelf categories, links and users.",
    no_args_is_help=True,
)


class _State:
    """Global CLI state shared across subcommands."""

    storage_uri: str | None = None
    json_output: bool = False
    verbose: bool = False


state = _State()


def _version_callback(value: bool) -> None:
    if value:
        from linkshelf import __version__

        print(f"linkshelf {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    storage_uri: Optional[str] = typer.Option(
        None,
        "--storage-uri",
        envvar="LINKSHELF_STORAGE_URI",
        help="Backend storage URI (e.g. sqlite:///linkshelf.db)",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    version: bool = typer.Option(
        False, "--version", help="Show version", is_eager=True, callback=_version_callback
    ),
) -> None:
    """Global options for all linkshelf commands."""
    from linkshelf.cli._storage import resolve_config
    from linkshelf.storage import parse_storage_target

    if storage_uri:
        try:
            parse_storage_target(storage_uri)
        except Exception as e:
            raise typer.BadParameter(str(e))

    state.storage_uri = storage_uri
    state.json_output = json_output
    state.verbose = verbose

    level = "DEBUG" if verbose else resolve_config().log_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if ctx.invoked_subcommand is None and not version:
        print(ctx.get_help())
        raise typer.Exit()


app.command(name="init")(init_cmd.init_cmd)
app.command(name="get")(entities.get_cmd)
app.command(name="query")(entities.query_cmd)
app.command(name="create")(entities.create_cmd)
app.command(name="update")(entities.update_cmd)
app.command(name="delete")(entities.delete_cmd)


def main() -> None:
    """Entry point for the linkshelf CLI."""
    app()
