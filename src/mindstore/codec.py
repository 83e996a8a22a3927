"""Serialization codec: entity <-> JSON record text.

Each entity class provides ``to_dict()`` and ``from_dict(d)``; this module
turns those dicts into the text written verbatim to the entity's file and
back, and holds the field validators the ``from_dict`` methods share.

    text = encode(neuron)
    same = decode(text, Neuron)        # same == neuron, field for field

Decoding never raises a bare JSON or KeyError: every failure is a
MalformedRecord naming the offending field.
"""

from __future__ import annotations

import json
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any, Protocol, Self, TypeVar

from mindstore.errors import MalformedRecord
from mindstore.paths import NO_CATEGORY

if TYPE_CHECKING:
    from collections.abc import Mapping

RECORD_VERSION = 1


class Record(Protocol):
    def to_dict(self) -> dict[str, Any]: ...

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> Self: ...


R = TypeVar("R", bound=Record)


def encode(entity: Record) -> str:
    return json.dumps({"v": RECORD_VERSION, **entity.to_dict()}, indent=2) + "\n"


def decode(text: str, cls: type[R], path: str | None = None) -> R:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedRecord(None, f"not valid JSON ({exc.msg} at line {exc.lineno})", path) from exc
    if not isinstance(obj, dict):
        raise MalformedRecord(None, f"expected an object, got {type(obj).__name__}", path)
    version = obj.get("v", RECORD_VERSION)
    if version != RECORD_VERSION:
        raise MalformedRecord("v", f"unsupported record version {version!r}", path)
    try:
        return cls.from_dict(obj)
    except MalformedRecord as exc:
        if exc.path is None and path is not None:
            raise MalformedRecord(exc.field, exc.detail, path) from None
        raise


# ---------------------------------------------------------------------------
# Field validators used by from_dict
# ---------------------------------------------------------------------------


def _check_path(field: str, value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise MalformedRecord(field, f"expected a path string, got {value!r}")
    p = PurePosixPath(value)
    if p.is_absolute() or ".." in p.parts:
        raise MalformedRecord(field, f"path must be root-relative: {value!r}")
    return value


def req_path(d: Mapping[str, Any], field: str) -> str:
    if field not in d:
        raise MalformedRecord(field, "missing")
    return _check_path(field, d[field])


def category_ref(d: Mapping[str, Any], field: str = "parent_category") -> str | None:
    """Decode a category reference; NO_CATEGORY means a root-level entity."""
    if field not in d:
        raise MalformedRecord(field, "missing")
    value = d[field]
    if value == NO_CATEGORY:
        return None
    return _check_path(field, value)


def path_list(d: Mapping[str, Any], field: str) -> list[str]:
    if field not in d:
        raise MalformedRecord(field, "missing")
    value = d[field]
    if not isinstance(value, list):
        raise MalformedRecord(field, f"expected a list, got {type(value).__name__}")
    return [_check_path(field, item) for item in value]


def opt_str(d: Mapping[str, Any], field: str) -> str | None:
    value = d.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedRecord(field, f"expected a string, got {value!r}")
    return value


def req_str(d: Mapping[str, Any], field: str) -> str:
    if field not in d:
        raise MalformedRecord(field, "missing")
    value = opt_str(d, field)
    if not value:
        raise MalformedRecord(field, "must be a non-empty string")
    return value


def req_float(d: Mapping[str, Any], field: str) -> float:
    if field not in d:
        raise MalformedRecord(field, "missing")
    value = d[field]
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedRecord(field, f"expected a number, got {value!r}")
    return float(value)
