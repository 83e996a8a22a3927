"""MindStore: the handle every operation goes through.

    store = MindStore("/path/to/.mind")
    store.bootstrap()
    animals = Category.create(store, "animals")
    dog = Neuron.create(store, label="dog", category=animals)
    cat = Neuron.create(store, linked_neuron=dog, label="cat", category=animals)

The store keeps an index of every entity loaded or written in this session,
keyed by root-relative storage path. Loading a path twice returns the same
object, and all writes, deletes and moves go through the store so the index
and the files agree. Call ``forget()`` to drop the index after the tree was
changed by another process.

Writes go to a sibling ``.tmp`` file that is then renamed into place, so a
reader never sees a half-written record.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any, TypeVar

from mindstore.category import Category
from mindstore.codec import decode, encode
from mindstore.emotions import BasicVocabulary
from mindstore.errors import (
    CategoryNotFound,
    MalformedRecord,
    NeuronNotFound,
    PathAlreadyExists,
    PathwayNotFound,
)
from mindstore.ids import IdAllocator, IdScope
from mindstore.locking import RootLock
from mindstore.neuron import Neuron
from mindstore.paths import (
    CATEGORY_RECORD,
    NEURONS_DIRNAME,
    PATHWAYS_DIRNAME,
    TMP_SUFFIX,
    EntityKind,
    PathResolver,
)
from mindstore.pathway import DEFAULT_WEIGHT, WEIGHT_STEP, NeuralPathway

if TYPE_CHECKING:
    from collections.abc import Iterator

    from mindstore.emotions import EmotionVocabulary

logger = logging.getLogger("mindstore.store")

Entity = Neuron | Category | NeuralPathway
E = TypeVar("E", Neuron, Category, NeuralPathway)


def _norm(path: str) -> str:
    return str(PurePosixPath(path))


class MindStore:
    """File-backed thought graph rooted at one directory."""

    def __init__(
        self,
        root: Path | str,
        *,
        emotions: EmotionVocabulary | None = None,
        initial_weight: float = DEFAULT_WEIGHT,
        weight_step: float = WEIGHT_STEP,
    ) -> None:
        if weight_step <= 0 or initial_weight <= 0:
            msg = "initial_weight and weight_step must be positive"
            raise ValueError(msg)
        self.root = Path(root)
        self.lock = RootLock(self.root)
        self.allocator = IdAllocator(self.root, self.lock)
        self.resolver = PathResolver(self.allocator)
        self.emotions: EmotionVocabulary = emotions or BasicVocabulary()
        self.initial_weight = max(initial_weight, weight_step)
        self.weight_step = weight_step
        self._index: dict[str, Entity] = {}

    def __repr__(self) -> str:
        return f"MindStore({str(self.root)!r})"

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def bootstrap(self) -> None:
        """Create the directory layout and id counters if missing. Idempotent."""
        with self.locked():
            (self.root / NEURONS_DIRNAME).mkdir(parents=True, exist_ok=True)
            (self.root / PATHWAYS_DIRNAME).mkdir(parents=True, exist_ok=True)
            for scope in IdScope:
                self.allocator.initialize(scope)

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Scoped exclusive lock on the storage root (re-entrant)."""
        with self.lock.hold():
            yield

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def abspath(self, rel: str) -> Path:
        return self.root / rel

    def relpath(self, path: Path | str) -> str:
        """Root-relative form of path; relative inputs are taken as already relative."""
        p = Path(path)
        if p.is_absolute():
            return PurePosixPath(*p.resolve().relative_to(self.root.resolve()).parts).as_posix()
        return _norm(str(path))

    def exists(self, rel: str) -> bool:
        return self.abspath(rel).is_file()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def neuron(self, path: str) -> Neuron:
        return self._load(_norm(path), Neuron, NeuronNotFound)

    def pathway(self, path: str) -> NeuralPathway:
        return self._load(_norm(path), NeuralPathway, PathwayNotFound)

    def category(self, path: str) -> Category:
        p = PurePosixPath(path)
        if p.name == CATEGORY_RECORD:
            p = p.parent
        return self._load(str(p), Category, CategoryNotFound)

    def category_at(self, *names: str) -> Category:
        """Load a category by its name chain: ``category_at("animals", "pets")``."""
        return self.category(str(PurePosixPath(NEURONS_DIRNAME, *names)))

    def load(self, path: str) -> Entity:
        """Load whatever entity lives at path, judged by its suffix."""
        rel = self.relpath(path)
        suffix = PurePosixPath(rel).suffix.lstrip(".")
        if suffix == EntityKind.NEURON.value:
            return self.neuron(rel)
        if suffix == EntityKind.PATHWAY.value:
            return self.pathway(rel)
        return self.category(rel)

    def _load(self, rel: str, cls: type[E], not_found: type[Exception]) -> E:
        cached = self._index.get(rel)
        if cached is not None:
            if not isinstance(cached, cls):
                raise not_found(rel)
            return cached
        record = PathResolver.category_record(rel) if cls is Category else rel
        try:
            text = self.abspath(record).read_text()
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
            raise not_found(rel) from None
        except UnicodeDecodeError as exc:
            raise MalformedRecord(None, f"not UTF-8 text: {exc.reason}", record) from exc
        except OSError as exc:
            raise MalformedRecord(None, f"cannot read: {exc.strerror or exc}", record) from exc
        entity = decode(text, cls, path=record)
        if entity.storage_path != rel:
            raise MalformedRecord(
                "storage_path", f"record says {entity.storage_path} but was read from {rel}", record
            )
        entity.store = self
        self._index[rel] = entity
        return entity

    def forget(self) -> None:
        """Drop the session index; later loads re-read the files."""
        self._index.clear()

    def iter_neurons(self, under: str | None = None, recursive: bool = True) -> Iterator[Neuron]:
        """Neurons under a directory (default: all), in lexical path order."""
        base = under or NEURONS_DIRNAME
        for rel in self.list_paths(base, f"*.{EntityKind.NEURON.value}", recursive):
            yield self.neuron(rel)

    def iter_pathways(self, skip_malformed: bool = False) -> Iterator[NeuralPathway]:
        for rel in self.list_paths(PATHWAYS_DIRNAME, f"*.{EntityKind.PATHWAY.value}", recursive=False):
            try:
                yield self.pathway(rel)
            except MalformedRecord:
                if not skip_malformed:
                    raise
                logger.warning("skipping malformed pathway: %s", rel)

    def iter_categories(self, under: str | None = None) -> Iterator[Category]:
        for rel in self.list_paths(under or NEURONS_DIRNAME, CATEGORY_RECORD, recursive=True):
            yield self.category(rel)

    def list_paths(self, base: str, pattern: str, recursive: bool) -> list[str]:
        """Matching files under base as sorted root-relative paths."""
        base_path = self.abspath(base)
        if not base_path.is_dir():
            return []
        matches = base_path.rglob(pattern) if recursive else base_path.glob(pattern)
        return sorted(
            PurePosixPath(*p.relative_to(self.root).parts).as_posix() for p in matches if p.is_file()
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def create_record(self, entity: Entity) -> None:
        """Write a new entity's record. Never overwrites an existing file."""
        with self.locked():
            if self.exists(entity.record_path):
                raise PathAlreadyExists(entity.storage_path)
            self._write(entity.record_path, encode(entity))
            self._register(entity)

    def save(self, entity: Entity) -> None:
        """Rewrite an entity's record in place."""
        with self.locked():
            self._write(entity.record_path, encode(entity))
            self._register(entity)

    def delete_record(self, path: str) -> None:
        """Delete a neuron or pathway file and evict it from the index.

        Deleting a file that is already gone is not an error.
        """
        rel = _norm(path)
        with self.locked():
            self._index.pop(rel, None)
            self.abspath(rel).unlink(missing_ok=True)

    def _register(self, entity: Entity) -> None:
        entity.store = self
        self._index[entity.storage_path] = entity

    def _write(self, rel: str, text: str) -> None:
        path = self.abspath(rel)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + TMP_SUFFIX)
        try:
            with tmp.open("w") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            tmp.replace(path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def stats(self) -> dict[str, Any]:
        return {
            "root": str(self.root),
            "neurons": len(self.list_paths(NEURONS_DIRNAME, f"*.{EntityKind.NEURON.value}", recursive=True)),
            "pathways": len(self.list_paths(PATHWAYS_DIRNAME, f"*.{EntityKind.PATHWAY.value}", recursive=False)),
            "categories": len(self.list_paths(NEURONS_DIRNAME, CATEGORY_RECORD, recursive=True)),
            "indexed": len(self._index),
        }
