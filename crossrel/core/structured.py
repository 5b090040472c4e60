"""Helpers for reading the untyped YAML manifest.

PyYAML hands back plain dicts and lists. These helpers give runtime
validation and static narrowing at the boundary so the rest of the code
only sees the typed manifest dataclasses.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]
ObjList = list[object]


class ShapeError(ValueError):
    """A manifest value has the wrong shape (raised while decoding only)."""


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    """Return True if obj is a dict with string keys."""
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    if is_str_dict(obj):
        return obj
    return None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a string value, stripped.

    Returns None if missing or empty after stripping. Numbers are accepted
    and converted, since YAML reads ``version: 1`` or ``goarm: 7`` as ints.
    """
    value = table.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ShapeError(f"'{key}' must be a string")
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        raise ShapeError(f"'{key}' must be a string")
    s = value.strip()
    return s or None


def get_raw_str(table: Mapping[str, object], key: str) -> str | None:
    """Like get_str but keeps surrounding whitespace (inline key material)."""
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ShapeError(f"'{key}' must be a string")
    return value if value.strip() else None


def get_bool(table: Mapping[str, object], key: str, default: bool = False) -> bool:
    value = table.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ShapeError(f"'{key}' must be true or false")
    return value


def get_int(table: Mapping[str, object], key: str) -> int | None:
    value = table.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ShapeError(f"'{key}' must be an integer")
    return value


def get_float(table: Mapping[str, object], key: str) -> float | None:
    value = table.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ShapeError(f"'{key}' must be a number of seconds")
    return float(value)


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    """Get a nested mapping, or None when the key is absent."""
    value = table.get(key)
    if value is None:
        return None
    d = as_str_dict(value)
    if d is None:
        raise ShapeError(f"'{key}' must be a mapping")
    return d


def get_str_list(table: Mapping[str, object], key: str) -> tuple[str, ...]:
    """Get a list of strings (numbers converted), empty when absent."""
    value = table.get(key)
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ShapeError(f"'{key}' must be a list")
    out: list[str] = []
    for item in cast(list[object], value):
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            raise ShapeError(f"'{key}' entries must be strings")
        out.append(str(item))
    return tuple(out)


def get_table_list(table: Mapping[str, object], key: str) -> list[StrDict]:
    """Get a list of mappings, empty when absent."""
    value = table.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ShapeError(f"'{key}' must be a list")
    out: list[StrDict] = []
    for index, item in enumerate(cast(list[object], value)):
        d = as_str_dict(item)
        if d is None:
            raise ShapeError(f"'{key}[{index}]' must be a mapping")
        out.append(d)
    return out
