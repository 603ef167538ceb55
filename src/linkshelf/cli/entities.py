"""Entity commands: get, query, create, update and delete through the services."""

from __future__ import annotations

import json
from typing import Any, NoReturn, Optional

import typer

from linkshelf.cli import _exitcodes as ec
from linkshelf.cli._filters import parse_filter_args, parse_range
from linkshelf.cli._output import print_document, print_documents, print_error, print_json
from linkshelf.cli._storage import run_with_backend
from linkshelf.errors import ErrorKind, LinkshelfError
from linkshelf.query import QueryOptions

_EXIT_CODES = {
    ErrorKind.CLIENT: ec.CLIENT_ERROR,
    ErrorKind.NOT_FOUND: ec.NOT_FOUND,
    ErrorKind.NOT_AUTHORIZED: ec.CLIENT_ERROR,
    ErrorKind.SERVER: ec.EXECUTION_FAILURE,
}


def _fail(error: LinkshelfError) -> NoReturn:
    print_error(error.message)
    raise typer.Exit(_EXIT_CODES[error.kind])


def _load_payload(payload: str) -> dict[str, Any]:
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        print_error(f"Invalid JSON payload: {e}")
        raise typer.Exit(ec.USAGE_ERROR)
    if not isinstance(data, dict):
        print_error("JSON payload must be an object")
        raise typer.Exit(ec.USAGE_ERROR)
    return data


def get_cmd(
    kind: str = typer.Argument(..., help="Entity kind (Category, Link, User)"),
    id: int = typer.Argument(..., help="Entity identifier"),
) -> None:
    """Show one entity."""
    from linkshelf.cli import state

    try:
        entity = run_with_backend(lambda backend: backend.service(kind).get(id))
    except LinkshelfError as e:
        _fail(e)

    if entity is None:
        print_error(f"{kind} {id} not found")
        raise typer.Exit(ec.NOT_FOUND)
    print_document(entity.model_dump(by_alias=True), json_mode=state.json_output)


def query_cmd(
    kind: str = typer.Argument(..., help="Entity kind (Category, Link, User)"),
    filter_args: Optional[list[str]] = typer.Option(
        None, "--filter", "-f", help="KEY=VALUE, VALUE may start with =, <, <=, >, >= (repeatable)"
    ),
    sort_by: Optional[list[str]] = typer.Option(
        None, "--sort", help="+field or -field (repeatable)"
    ),
    range_arg: Optional[str] = typer.Option(None, "--range", help="START-END, end inclusive"),
    id_only: bool = typer.Option(False, "--id-only", help="Only return identifiers"),
) -> None:
    """List entities matching the filters."""
    from linkshelf.cli import state

    try:
        filters = parse_filter_args(filter_args)
        range_start, range_end = parse_range(range_arg)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)

    options = QueryOptions(
        sort_by=list(sort_by or []),
        id_only=id_only,
        range_start=range_start,
        range_end=range_end,
    )
    try:
        results = run_with_backend(lambda backend: backend.service(kind).select(filters, options))
    except LinkshelfError as e:
        _fail(e)

    documents = [entity.model_dump(by_alias=True) for entity in results]
    if state.json_output:
        print_json(
            {
                "items": documents,
                "total_count": results.total_count,
                "content_range": results.content_range(options),
            }
        )
        return
    print_documents(documents, footer=results.content_range(options))


def create_cmd(
    kind: str = typer.Argument(..., help="Entity kind (Category, Link, User)"),
    payload: str = typer.Argument(..., help="JSON object with the entity fields"),
    owner: Optional[int] = typer.Option(None, "--owner", help="Identifier of the owning user"),
) -> None:
    """Create an entity and print its identifier."""
    from linkshelf.cli import state

    data = _load_payload(payload)
    try:
        new_id = run_with_backend(lambda backend: backend.service(kind).create(data, owner))
    except LinkshelfError as e:
        _fail(e)
    print_document({"id": new_id}, json_mode=state.json_output)


def update_cmd(
    kind: str = typer.Argument(..., help="Entity kind (Category, Link, User)"),
    id: int = typer.Argument(..., help="Entity identifier"),
    payload: str = typer.Argument(
        ..., help="JSON object with the changed fields and the current 'updated' value"
    ),
) -> None:
    """Update an entity; the payload's 'updated' value must match the stored one."""
    from linkshelf.cli import state

    data = _load_payload(payload)

    async def _update(backend: Any) -> Any:
        service = backend.service(kind)
        await service.update(id, data)
        return await service.get(id)

    try:
        entity = run_with_backend(_update)
    except LinkshelfError as e:
        _fail(e)
    print_document(entity.model_dump(by_alias=True), json_mode=state.json_output)


def delete_cmd(
    kind: str = typer.Argument(..., help="Entity kind (Category, Link, User)"),
    id: int = typer.Argument(..., help="Entity identifier"),
) -> None:
    """Delete an entity (deleting a Category also deletes its links)."""
    from linkshelf.cli import state

    try:
        run_with_backend(lambda backend: backend.service(kind).delete(id))
    except LinkshelfError as e:
        _fail(e)
    print_document({"deleted": f"{kind}:{id}"}, json_mode=state.json_output)
