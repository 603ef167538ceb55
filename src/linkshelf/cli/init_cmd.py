"""linkshelf init: create the document store tables."""

from __future__ import annotations

import typer

from linkshelf.cli import _exitcodes as ec
from linkshelf.cli._output import print_document, print_error
from linkshelf.cli._storage import resolve_config, run_with_backend
from linkshelf.errors import StorageBackendError
from linkshelf.storage import parse_storage_target


def init_cmd(
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview initialization only"),
) -> None:
    """Initialize the selected storage backend."""
    from linkshelf.cli import state

    json_mode = state.json_output
    cfg = resolve_config()

    try:
        target = parse_storage_target(cfg.storage_uri)
    except StorageBackendError as e:
        print_error(e.message)
        raise typer.Exit(ec.USAGE_ERROR)

    data = {"backend": target.backend, "db_path": target.db_path, "status": "dry_run"}
    if not dry_run:
        try:
            run_with_backend(_noop)
        except StorageBackendError as e:
            print_error(e.message)
            raise typer.Exit(ec.EXECUTION_FAILURE)
        data["status"] = "initialized"
    print_document(data, json_mode=json_mode)


async def _noop(backend: object) -> None:
    return None
