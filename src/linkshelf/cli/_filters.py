"""CLI argument parsers: filter pairs, sort tokens and item ranges."""

from __future__ import annotations

import re

_RANGE_RE = re.compile(r"^(\d*)-(\d*)$")


def parse_filter_args(pairs: list[str] | None) -> dict[str, str]:
    """Parse repeated ``KEY=VALUE`` options into a filter map.

    Everything after the first ``=`` is the value, so ``positionIdx=>=2`` filters
    with the ``>=`` operator and ``title==A`` is an explicit equality.
    """
    filters: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid filter '{pair}': expected KEY=VALUE")
        if key in filters:
            raise ValueError(f"Filter '{key}' given more than once")
        filters[key] = value
    return filters


def parse_range(value: str | None) -> tuple[int | None, int | None]:
    """Parse ``START-END`` (either side optional, END inclusive)."""
    if not value:
        return None, None
    match = _RANGE_RE.match(value)
    if match is None or value == "-":
        raise ValueError(f"Invalid range '{value}': expected START-END, e.g. 0-9")
    start, end = match.groups()
    return (int(start) if start else None, int(end) if end else None)
