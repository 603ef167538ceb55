"""Rendering of entities and query pages for the CLI."""

from __future__ import annotations

import json
import sys
from typing import Any


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _columns(documents: list[dict[str, Any]]) -> list[str]:
    columns: list[str] = []
    for document in documents:
        columns.extend(k for k in document if k not in columns)
    return columns


def print_documents(documents: list[dict[str, Any]], *, footer: str | None = None) -> None:
    """Print documents as an aligned table with one column per field seen on any row.

    Missing and null values render as empty cells. ``footer`` is printed
    after the table even when there are no rows.
    """
    if documents:
        columns = _columns(documents)
        cells = [
            ["" if document.get(c) is None else str(document[c]) for c in columns]
            for document in documents
        ]
        widths = [max([len(c)] + [len(row[i]) for row in cells]) for i, c in enumerate(columns)]

        print("  ".join(c.ljust(w) for c, w in zip(columns, widths)).rstrip())
        print("  ".join("-" * w for w in widths))
        for row in cells:
            print("  ".join(v.ljust(w) for v, w in zip(row, widths)).rstrip())
    if footer:
        print(footer)


def print_document(data: dict[str, Any], *, json_mode: bool = False) -> None:
    """Print one document as JSON or as ``key: value`` lines."""
    if json_mode:
        print_json(data)
        return
    for key, value in data.items():
        print(f"{key}: {'' if value is None else value}")


def print_error(msg: str) -> None:
    """Print an error message to stderr."""
    print(f"Error: {msg}", file=sys.stderr)
