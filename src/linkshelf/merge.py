"""Structural merge of a candidate record into a stored one.

Fields are patched one at a time. Nested objects are merged recursively,
arrays are either kept or replaced as a whole, and read-only fields of the
target's entity kind are never touched.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, MutableMapping
from typing import Any

from linkshelf.types import ABSENT, Entity


def merge(target: Any, candidate: Any) -> bool:
    """Apply candidate onto target in place and report whether anything changed."""
    return _merge(target, candidate, apply=True)


def would_change(target: Any, candidate: Any) -> bool:
    """Report whether merging candidate into target would change it, without mutating."""
    return _merge(target, candidate, apply=False)


def _is_object(value: Any) -> bool:
    return isinstance(value, (Entity, Mapping))


def _is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _candidate_items(target: Any, candidate: Any) -> Iterator[tuple[str, Any]]:
    if isinstance(candidate, Entity):
        pairs: Iterator[tuple[str, Any]] = (
            (name, getattr(candidate, name)) for name in type(candidate).__entity_fields__
        )
    else:
        pairs = iter(list(candidate.items()))

    for key, value in pairs:
        if isinstance(target, Entity):
            name = type(target).field_name(key)
            if name is None:
                continue
            yield name, value
        else:
            yield key, value


def _current(target: Any, name: str) -> Any:
    if isinstance(target, Entity):
        return getattr(target, name)
    return target.get(name, ABSENT)


def _assign(target: Any, name: str, value: Any) -> None:
    if isinstance(target, Entity):
        setattr(target, name, value)
    elif isinstance(target, MutableMapping):
        target[name] = value
    else:
        raise TypeError(f"Cannot assign '{name}' on read-only mapping {type(target).__name__}")


def _same_value(current: Any, new: Any) -> bool:
    if current is ABSENT:
        return False
    # True == 1 and False == 0 in Python, but they are different stored values
    if isinstance(current, bool) or isinstance(new, bool):
        return type(current) is type(new) and current == new
    return bool(current == new)


def _same_array(current: Any, new: Any) -> bool:
    if not _is_array(current) or len(current) != len(new):
        return False
    for current_item, new_item in zip(current, new):
        if _is_object(current_item) and _is_object(new_item):
            if _merge(current_item, new_item, apply=False):
                return False
        elif not _same_value(current_item, new_item):
            return False
    return True


def _merge(target: Any, candidate: Any, *, apply: bool) -> bool:
    if not _is_object(target) or not _is_object(candidate):
        return False

    changed = False
    for name, new in _candidate_items(target, candidate):
        if new is ABSENT:
            continue
        if isinstance(target, Entity) and type(target).is_read_only(name):
            continue

        current = _current(target, name)
        if _is_object(current) and _is_object(new):
            changed = _merge(current, new, apply=apply) or changed
        elif _is_array(new):
            if not _same_array(current, new):
                changed = True
                if apply:
                    _assign(target, name, list(new))
        elif not _same_value(current, new):
            changed = True
            if apply:
                _assign(target, name, new)

    return changed
