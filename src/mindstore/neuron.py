"""Neuron: a node in the thought graph, persisted as one ``.nrn`` file.

A Neuron's file name is its morpheme (human-readable label) when it has one,
otherwise an id from the neuron counter. The file lives in its Category's
directory, or directly under ``neurons/`` when uncategorized.

Multi-file operations (create, relocate, destroy) run under the store lock
and keep an undo stack. If a step fails, the steps already taken are undone
newest-first and the failure is reported as CreateFailed / RelocateFailed.
Any undo step that fails is listed on the error; ``scan_and_repair`` is the
backstop for those.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from mindstore.codec import category_ref, opt_str, path_list, req_path
from mindstore.entity import StoreBound, unwind
from mindstore.errors import (
    CategoryNotFound,
    CreateFailed,
    InvalidHandle,
    MalformedRecord,
    PathAlreadyExists,
    PathwayNotFound,
    RelocateFailed,
)
from mindstore.paths import (
    NEURONS_DIRNAME,
    PATHWAYS_DIRNAME,
    NO_CATEGORY,
    EntityKind,
    is_under,
    parent_dir,
    stem_of,
    validate_name,
)
from mindstore.pathway import NeuralPathway, target_path_of

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from mindstore.category import Category
    from mindstore.store import MindStore

logger = logging.getLogger("mindstore.neuron")


@dataclass
class Neuron(StoreBound):
    storage_path: str
    parent_category: str | None = None
    outgoing_edges: list[str] = field(default_factory=list)
    emotion_tag: str | None = None
    morpheme: str | None = None
    destroyed: bool = field(default=False, init=False, compare=False, repr=False)

    @property
    def record_path(self) -> str:
        return self.storage_path

    @property
    def id_or_name(self) -> int | str:
        """The file stem: an allocated id, or the morpheme."""
        stem = stem_of(self.storage_path)
        return int(stem) if stem.isdigit() else stem

    @property
    def emotion(self) -> object | None:
        """The emotion tag resolved through the store's vocabulary."""
        if self.emotion_tag is None:
            return None
        return self._bound().emotions.lookup(self.emotion_tag)

    def _bound(self) -> MindStore:
        if self.destroyed:
            msg = f"neuron {self.storage_path} was destroyed"
            raise InvalidHandle(msg)
        return super()._bound()

    # ------------------------------------------------------------------
    # Record
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "parent_category": self.parent_category or NO_CATEGORY,
            "outgoing_edges": list(self.outgoing_edges),
            "storage_path": self.storage_path,
        }
        if self.emotion_tag is not None:
            d["emotion_tag"] = self.emotion_tag
        if self.morpheme is not None:
            d["morpheme"] = self.morpheme
        return d

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> Neuron:
        storage_path = req_path(d, "storage_path")
        parent = category_ref(d)
        if parent_dir(storage_path) != (parent or NEURONS_DIRNAME):
            raise MalformedRecord("parent_category", f"{storage_path} is not filed in {parent or NO_CATEGORY}")
        if not storage_path.endswith(f".{EntityKind.NEURON.value}"):
            raise MalformedRecord("storage_path", f"not a neuron file: {storage_path}")
        morpheme = opt_str(d, "morpheme")
        if morpheme is not None and stem_of(storage_path) != morpheme:
            raise MalformedRecord("morpheme", f"{morpheme!r} does not match file name {storage_path}")
        return cls(
            storage_path=storage_path,
            parent_category=parent,
            outgoing_edges=path_list(d, "outgoing_edges"),
            emotion_tag=opt_str(d, "emotion_tag"),
            morpheme=morpheme,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        store: MindStore,
        linked_neuron: Neuron | None = None,
        emotion: object | None = None,
        label: str | None = None,
        category: Category | None = None,
    ) -> Neuron:
        """Create and persist a neuron, optionally linked to an existing one.

        Steps: allocate a storage path, write the edge to ``linked_neuron``,
        write the neuron file, register with ``category``. Problems found
        before the first write (bad label, unknown category or target, path
        collision, allocator failure) raise directly; a failure after it
        undoes what was written and raises CreateFailed.
        """
        if label is not None:
            validate_name(label)
        emotion_tag = store.emotions.name_of(emotion) if emotion is not None else None

        with store.locked():
            category_path = None
            if category is not None:
                category = store.category(category.storage_path)
                category_path = category.storage_path
            edge_path = None
            if linked_neuron is not None:
                target_path_of(store, linked_neuron)
                edge_path = store.resolver.resolve(EntityKind.PATHWAY)
            path = store.resolver.resolve(EntityKind.NEURON, category_path, label)
            if store.exists(path):
                raise PathAlreadyExists(path)

            neuron = cls(
                storage_path=path,
                parent_category=category_path,
                emotion_tag=emotion_tag,
                morpheme=label,
            )
            undo: list[Callable[[], None]] = []
            try:
                if linked_neuron is not None:
                    edge = NeuralPathway.create(store, linked_neuron, path=edge_path)
                    undo.append(lambda: store.delete_record(edge.storage_path))
                    neuron.outgoing_edges.append(edge.storage_path)
                store.create_record(neuron)
                undo.append(lambda: store.delete_record(path))
                if category is not None:
                    category.add_child(neuron)
            except Exception as exc:
                errors = unwind(undo, f"create of {path}")
                raise CreateFailed(f"could not create neuron {path}: {exc}", errors) from exc

        logger.info("neuron created: %s", path)
        return neuron

    def relocate(self, new_category: Category | None) -> None:
        """Move this neuron into new_category (None = uncategorized).

        In order: detach from the old category, delete the old file, attach
        to the new category, persist under the new path. The id-or-name is
        kept, so only the directory changes. Edges elsewhere that pointed at
        the old path are then retargeted. Moving to the current category is a
        no-op.
        """
        store = self._bound()
        with store.locked():
            if new_category is not None:
                new_category = store.category(new_category.storage_path)
            new_dir = new_category.storage_path if new_category is not None else None
            if new_dir == self.parent_category:
                return

            old_path = self.storage_path
            old_dir = self.parent_category
            old_category = None
            if old_dir is not None:
                try:
                    old_category = store.category(old_dir)
                except CategoryNotFound:
                    logger.warning("moving %s out of missing category %s", old_path, old_dir)
            new_path = store.resolver.resolve(EntityKind.NEURON, new_dir, self.id_or_name)
            if store.exists(new_path):
                raise PathAlreadyExists(new_path)

            undo: list[Callable[[], None]] = []

            def restore_location() -> None:
                self.storage_path = old_path
                self.parent_category = old_dir

            try:
                if old_category is not None and old_category.remove_child(self):
                    undo.append(lambda: old_category.add_child(self))
                store.delete_record(old_path)
                undo.append(lambda: store.create_record(self))

                self.storage_path = new_path
                self.parent_category = new_dir
                undo.append(restore_location)
                if new_category is not None:
                    new_category.add_child(self)
                    undo.append(lambda: new_category.remove_child(new_path))
                store.create_record(self)
                undo.append(lambda: store.delete_record(new_path))

                for pathway in self._inbound(store, old_path):
                    pathway.retarget(new_path)
                    undo.append(lambda p=pathway: p.retarget(old_path))
            except Exception as exc:
                errors = unwind(undo, f"relocation of {old_path}")
                raise RelocateFailed(f"could not move {old_path} to {new_path}: {exc}", errors) from exc

        logger.info("neuron relocated: %s -> %s", old_path, new_path)

    @staticmethod
    def _inbound(store: MindStore, target: str) -> list[NeuralPathway]:
        inbound = []
        for rel in store.list_paths(PATHWAYS_DIRNAME, f"*.{EntityKind.PATHWAY.value}", recursive=False):
            try:
                pathway = store.pathway(rel)
            except MalformedRecord:
                logger.warning("unreadable pathway %s may still point at %s; fix it by hand", rel, target)
                continue
            if pathway.target == target:
                inbound.append(pathway)
        return inbound

    def destroy(self) -> None:
        """Delete this neuron's file and invalidate the handle.

        The neuron is dropped from its category and its own outgoing edge
        files are deleted. Edges on *other* neurons that point here are left
        in place; run ``scan_and_repair`` to remove them.
        """
        store = self._bound()
        with store.locked():
            store.delete_record(self.storage_path)
            try:
                if self.parent_category is not None:
                    try:
                        store.category(self.parent_category).remove_child(self)
                    except CategoryNotFound:
                        logger.warning("parent category of %s is missing", self.storage_path)
            finally:
                self.destroyed = True
                for edge_path in self.outgoing_edges:
                    store.delete_record(edge_path)
        logger.info("neuron destroyed: %s", self.storage_path)

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(self, target: Neuron) -> NeuralPathway:
        """Create an edge to target and append it to outgoing_edges.

        Raises NoSuchTarget if target has no resolvable storage path.
        """
        store = self._bound()
        with store.locked():
            pathway = NeuralPathway.create(store, target)
            self.outgoing_edges.append(pathway.storage_path)
            try:
                store.save(self)
            except Exception:
                self.outgoing_edges.pop()
                unwind([lambda: store.delete_record(pathway.storage_path)], f"edge on {self.storage_path}")
                raise
        return pathway

    def remove_edge(self, target: Neuron) -> NeuralPathway | None:
        """Remove the first edge whose target is target. No-op if there is none.

        Returns the removed edge (its file is already deleted) or None.
        """
        store = self._bound()
        with store.locked():
            pathway = self.edge_to(target)
            if pathway is None:
                return None
            index = self.outgoing_edges.index(pathway.storage_path)
            del self.outgoing_edges[index]
            try:
                store.save(self)
            except Exception:
                self.outgoing_edges.insert(index, pathway.storage_path)
                raise
            store.delete_record(pathway.storage_path)
        logger.info("pathway removed: %s -> %s", self.storage_path, pathway.target)
        return pathway

    def edge_to(self, target: Neuron) -> NeuralPathway | None:
        """First outgoing edge pointing at target. Dangling edge references are skipped."""
        store = self._bound()
        for edge_path in self.outgoing_edges:
            try:
                pathway = store.pathway(edge_path)
            except PathwayNotFound:
                continue
            if pathway.target == target.storage_path:
                return pathway
        return None

    def pathways(self) -> Iterator[NeuralPathway]:
        """Outgoing edges, loaded, in creation order."""
        store = self._bound()
        for edge_path in list(self.outgoing_edges):
            yield store.pathway(edge_path)

    def edges_within(self, category: Category) -> Iterator[Neuron]:
        """Targets of outgoing edges filed anywhere under category.

        Raises BrokenEdge when a matching edge's target file is gone.
        """
        for pathway in self.pathways():
            if is_under(pathway.target, category.storage_path):
                yield pathway.resolve_target()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def parent(self) -> Category | None:
        if self.parent_category is None:
            return None
        return self._bound().category(self.parent_category)
