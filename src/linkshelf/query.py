"""Translation of flat filter maps and query options into store query plans."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from linkshelf.errors import client_error, server_error

KEY_FIELD = "__key__"

EQUALITY = "="
INEQUALITIES = ("<", "<=", ">", ">=")

_OPERATOR_RE = re.compile(r"^(=|<=?|>=?)(.*)$", re.DOTALL)
_INTEGER_RE = re.compile(r"^\d+$")
_RANGE_RE = re.compile(r"items=(\d+)-(\d+)")

# Bounds of a store integer (signed 64 bits).
MIN_INTEGER = -(2**63)
MAX_INTEGER = 2**63 - 1


@dataclass(frozen=True)
class Constraint:
    """A single ``field op value`` filter of a query plan."""

    field: str
    op: str
    value: Any

    @property
    def is_inequality(self) -> bool:
        return self.op in INEQUALITIES


@dataclass(frozen=True)
class SortOrder:
    field: str
    descending: bool = False


@dataclass
class QueryOptions:
    """Sort, projection and range options supplied alongside the filters.

    ``range_end`` is inclusive: ``range_start=0, range_end=9`` asks for ten items.
    """

    sort_by: list[str] | None = None
    id_only: bool = False
    range_start: int | None = None
    range_end: int | None = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> QueryOptions:
        """Read options from the ``Range``, ``X-Sort-By`` and ``X-Ids-Only`` headers."""
        lowered = {k.lower(): v for k, v in headers.items()}
        options = cls(
            id_only=lowered.get("x-ids-only") == "true",
            sort_by=[name for name in (lowered.get("x-sort-by") or "").split(",") if name != ""],
        )
        match = _RANGE_RE.search(lowered.get("range") or "")
        if match is not None:
            options.range_start = int(match.group(1))
            options.range_end = int(match.group(2))
        return options


@dataclass
class QueryPlan:
    """Store-independent description of a query against one entity kind."""

    kind: str
    constraints: list[Constraint] = field(default_factory=list)
    orders: list[SortOrder] = field(default_factory=list)
    keys_only: bool = False
    offset: int | None = None
    limit: int | None = None

    def filter(self, field_name: str, op: str, value: Any) -> QueryPlan:
        if op != EQUALITY and op not in INEQUALITIES:
            raise ValueError(f"Unsupported filter operator '{op}'")
        self.constraints.append(Constraint(field_name, op, value))
        return self

    def order(self, field_name: str, *, descending: bool = False) -> QueryPlan:
        self.orders.append(SortOrder(field_name, descending))
        return self

    def select_keys(self) -> QueryPlan:
        self.keys_only = True
        return self

    @property
    def inequality(self) -> Constraint | None:
        for constraint in self.constraints:
            if constraint.is_inequality:
                return constraint
        return None


def coerce_value(value: Any) -> Any:
    """Turn integer-looking strings into numbers and "true"/"false" into booleans.

    Digit strings beyond the store's integer range become floats.
    """
    if not isinstance(value, str):
        return value
    if _INTEGER_RE.match(value):
        number = int(value)
        return number if number <= MAX_INTEGER else float(value)
    if value == "true":
        return True
    if value == "false":
        return False
    return value


def parse_id(kind: str, value: Any) -> int:
    """Integer identifier of an entity of ``kind``, from an int or a digit string."""
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    elif isinstance(value, str) and _INTEGER_RE.match(value):
        number = int(value)
    else:
        raise client_error(f"Invalid identifier {value!r} for entity {kind}")
    if not MIN_INTEGER <= number <= MAX_INTEGER:
        raise client_error(f"Identifier {value!r} for entity {kind} is out of range")
    return number


def _parse_sort_orders(sort_by: list[str]) -> list[SortOrder]:
    orders: list[SortOrder] = []
    for entry in sort_by:
        if len(entry) < 2:
            raise client_error(
                f"Value '{entry}' of option 'sortBy' must name a field after '+' or '-'"
            )
        direction = entry[0]
        if direction not in ("+", "-"):
            raise client_error(f"Value '{entry}' of option 'sortBy' must start by '+' or '-'")
        orders.append(SortOrder(entry[1:], direction == "-"))
    return orders


def translate(
    kind: str,
    filters: Mapping[str, Any] | None,
    options: QueryOptions | None = None,
) -> QueryPlan:
    """Build the query plan for ``filters`` and ``options`` on entity ``kind``.

    Filter values may carry one of the ``=``, ``<``, ``<=``, ``>``, ``>=``
    prefixes. Only one field may use an inequality; that field is also sorted
    ascending, as the document store requires.
    """
    options = options or QueryOptions()
    plan = QueryPlan(kind)
    inequality_key: str | None = None

    for key, raw in (filters or {}).items():
        if isinstance(raw, (list, tuple)):
            raise server_error(
                f"Selection of many entities from a collection of {key} is not yet supported!"
            )
        if key == "id":
            plan.filter(KEY_FIELD, EQUALITY, parse_id(kind, raw))
            continue

        op = EQUALITY
        value: Any = raw
        if isinstance(raw, str):
            match = _OPERATOR_RE.match(raw)
            if match is not None:
                op, value = match.group(1), match.group(2)
        if op in INEQUALITIES:
            if inequality_key is not None:
                raise client_error(
                    f"Only one inequality is allowed! Got '{inequality_key}' and '{key}'"
                )
            inequality_key = key

        plan.filter(key, op, coerce_value(value))
        if inequality_key == key:
            plan.order(key, descending=False)

    if options.sort_by:
        for order in _parse_sort_orders(list(options.sort_by)):
            plan.order(order.field, descending=order.descending)

    if options.id_only:
        plan.select_keys()

    if options.range_start is not None:
        if options.range_start < 0:
            raise client_error(f"Invalid range start {options.range_start}")
        if options.range_start:
            plan.offset = options.range_start
    if options.range_end is not None:
        limit = options.range_end - (options.range_start or 0) + 1
        if limit < 1:
            raise client_error(
                f"Invalid range {options.range_start or 0}-{options.range_end}: end before start"
            )
        plan.limit = limit

    return plan
