"""Storage path resolver.

Maps an entity's logical position (category path + name-or-id) to a
root-relative POSIX path:

    resolve(NEURON, "neurons/animals", "dog")  -> "neurons/animals/dog.nrn"
    resolve(NEURON, None, None)                -> "neurons/<next neuron id>.nrn"
    resolve(PATHWAY, None, None)               -> "pathways/<next pathway id>.tlink"

Everything here is a pure function of its inputs except the allocator call
made when no name is given.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from mindstore.errors import InvalidName
from mindstore.ids import IdScope

if TYPE_CHECKING:
    from mindstore.ids import IdAllocator

NEURONS_DIRNAME = "neurons"
PATHWAYS_DIRNAME = "pathways"
CATEGORY_RECORD = ".category"
NO_CATEGORY = "NO_CATEGORY"
TMP_SUFFIX = ".tmp"
RESERVED_SUFFIXES = (".nrn", ".tlink", TMP_SUFFIX)


class EntityKind(StrEnum):
    """Record kinds, valued by file extension."""

    NEURON = "nrn"
    PATHWAY = "tlink"

    @property
    def scope(self) -> IdScope:
        return IdScope.NEURON if self is EntityKind.NEURON else IdScope.PATHWAY

    @property
    def base_dir(self) -> str:
        return NEURONS_DIRNAME if self is EntityKind.NEURON else PATHWAYS_DIRNAME


def validate_name(name: str, what: str = "label") -> str:
    """Check that name can be used as a single file-name segment."""
    if not isinstance(name, str) or not name:
        msg = f"{what} must be a non-empty string"
        raise InvalidName(msg)
    if name in (".", "..") or name.startswith("."):
        msg = f"{what} may not start with '.': {name!r}"
        raise InvalidName(msg)
    if any(ch in name for ch in ("/", "\\", "\0")):
        msg = f"{what} may not contain path separators: {name!r}"
        raise InvalidName(msg)
    if name.endswith(RESERVED_SUFFIXES):
        msg = f"{what} may not end in a record suffix: {name!r}"
        raise InvalidName(msg)
    if name.isdigit():
        # Reserved for allocated ids
        msg = f"{what} may not be all digits: {name!r}"
        raise InvalidName(msg)
    return name


def is_under(path: str, ancestor: str) -> bool:
    """True if root-relative path lies strictly inside ancestor."""
    return PurePosixPath(path).is_relative_to(ancestor) and path != ancestor


def stem_of(path: str) -> str:
    return PurePosixPath(path).stem


def parent_dir(path: str) -> str:
    return str(PurePosixPath(path).parent)


class PathResolver:
    def __init__(self, allocator: IdAllocator) -> None:
        self.allocator = allocator

    def resolve(
        self,
        kind: EntityKind,
        category_path: str | None = None,
        name_or_id: str | int | None = None,
    ) -> str:
        if kind is EntityKind.PATHWAY and category_path is not None:
            msg = "pathways are not filed under categories"
            raise ValueError(msg)
        base = PurePosixPath(category_path or kind.base_dir)
        if name_or_id is None:
            stem = str(self.allocator.next_id(kind.scope))
        elif isinstance(name_or_id, int):
            if name_or_id < 0:
                msg = f"ids are non-negative: {name_or_id}"
                raise ValueError(msg)
            stem = str(name_or_id)
        else:
            stem = validate_name(name_or_id)
        return str(base / f"{stem}.{kind.value}")

    @staticmethod
    def category_path(parent_path: str | None, name: str) -> str:
        validate_name(name, what="category name")
        return str(PurePosixPath(parent_path or NEURONS_DIRNAME) / name)

    @staticmethod
    def category_record(category_path: str) -> str:
        return str(PurePosixPath(category_path) / CATEGORY_RECORD)
