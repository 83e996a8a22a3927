"""Category: a named folder in the neuron tree.

A Category's storage path is its directory (``neurons/animals/pets``) and its
record sits inside it at ``.category``. The record lists the Neurons filed
directly in the directory; sub-categories are found by walking the tree.

Categories cannot be renamed, moved or deleted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from mindstore.codec import category_ref, path_list, req_path, req_str
from mindstore.entity import StoreBound
from mindstore.errors import CategoryNotFound, MalformedRecord, PathAlreadyExists
from mindstore.paths import NEURONS_DIRNAME, NO_CATEGORY, PathResolver, is_under, parent_dir

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from mindstore.neuron import Neuron
    from mindstore.store import MindStore

logger = logging.getLogger("mindstore.category")


@dataclass
class Category(StoreBound):
    name: str
    storage_path: str
    parent_category: str | None = None
    child_neurons: list[str] = field(default_factory=list)

    @property
    def record_path(self) -> str:
        return PathResolver.category_record(self.storage_path)

    @property
    def path_names(self) -> list[str]:
        """Names from the outermost ancestor down to this category."""
        return list(PurePosixPath(self.storage_path).relative_to(NEURONS_DIRNAME).parts)

    # ------------------------------------------------------------------
    # Record
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "parent_category": self.parent_category or NO_CATEGORY,
            "child_neurons": list(self.child_neurons),
            "storage_path": self.storage_path,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> Category:
        name = req_str(d, "name")
        storage_path = req_path(d, "storage_path")
        parent = category_ref(d)
        if PurePosixPath(storage_path).name != name:
            raise MalformedRecord("name", f"{name!r} does not match storage path {storage_path}")
        if parent_dir(storage_path) != (parent or NEURONS_DIRNAME):
            raise MalformedRecord("parent_category", f"{parent} is not the parent of {storage_path}")
        children = path_list(d, "child_neurons")
        for child in children:
            if parent_dir(child) != storage_path:
                raise MalformedRecord("child_neurons", f"{child} is not filed in {storage_path}")
        return cls(
            name=name,
            storage_path=storage_path,
            parent_category=parent,
            child_neurons=children,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, store: MindStore, name: str, parent: Category | None = None) -> Category:
        """Create and persist a new category. Raises PathAlreadyExists if present."""
        with store.locked():
            parent_path = None
            if parent is not None:
                parent_path = store.category(parent.storage_path).storage_path
            path = PathResolver.category_path(parent_path, name)
            category = cls(name=name, storage_path=path, parent_category=parent_path)
            if store.exists(category.record_path):
                raise PathAlreadyExists(path)
            store.create_record(category)
        logger.info("category created: %s", path)
        return category

    @classmethod
    def get_or_create(cls, store: MindStore, name: str, parent: Category | None = None) -> Category:
        with store.locked():
            path = PathResolver.category_path(parent.storage_path if parent else None, name)
            try:
                return store.category(path)
            except CategoryNotFound:
                return cls.create(store, name, parent)

    @classmethod
    def parse(cls, store: MindStore, path: str) -> Category:
        """Load the category at path. Raises CategoryNotFound if absent."""
        return store.category(path)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def has_child(self, neuron: Neuron) -> bool:
        return neuron.storage_path in self.child_neurons

    def add_child(self, neuron: Neuron) -> None:
        """Record neuron as a direct member and persist. Adding twice is harmless."""
        if parent_dir(neuron.storage_path) != self.storage_path:
            msg = f"{neuron.storage_path} is not filed in category {self.storage_path}"
            raise ValueError(msg)
        store = self._bound()
        with store.locked():
            if neuron.storage_path in self.child_neurons:
                return
            self.child_neurons.append(neuron.storage_path)
            try:
                store.save(self)
            except Exception:
                self.child_neurons.remove(neuron.storage_path)
                raise

    def remove_child(self, neuron: Neuron | str) -> bool:
        """Drop neuron from the child set and persist.

        Removing a neuron that is not a member is a no-op that returns False
        rather than raising. Callers that need strict semantics should check
        ``has_child`` first or test the return value.
        """
        path = neuron if isinstance(neuron, str) else neuron.storage_path
        store = self._bound()
        with store.locked():
            if path not in self.child_neurons:
                return False
            index = self.child_neurons.index(path)
            del self.child_neurons[index]
            try:
                store.save(self)
            except Exception:
                self.child_neurons.insert(index, path)
                raise
        return True

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def parent(self) -> Category | None:
        if self.parent_category is None:
            return None
        return self._bound().category(self.parent_category)

    def subcategories(self) -> Iterator[Category]:
        """Direct sub-categories in lexical order."""
        store = self._bound()
        for cat in store.iter_categories(under=self.storage_path):
            if cat.parent_category == self.storage_path:
                yield cat

    def list_descendant_neurons(self, recursive: bool = True) -> Iterator[Neuron]:
        """Neurons filed under this category, in path order.

        Each call starts a fresh walk of the directory; the result is a
        snapshot, not a live view.
        """
        return self._bound().iter_neurons(under=self.storage_path, recursive=recursive)

    def contains(self, path: str) -> bool:
        return is_under(path, self.storage_path)
