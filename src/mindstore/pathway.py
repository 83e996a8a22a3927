"""NeuralPathway: a directed, weighted edge from one Neuron to another.

An edge file holds the target's storage path and a connection weight. The
source Neuron owns the edge and lists its path in ``outgoing_edges``; the
edge itself only points forward.

Weight starts at ``initial_weight`` and moves by ``weight_step``. It never
drops below one step, so an edge is never zero or negative.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from mindstore.codec import req_float, req_path
from mindstore.entity import StoreBound
from mindstore.errors import BrokenEdge, MalformedRecord, NoSuchTarget
from mindstore.paths import PATHWAYS_DIRNAME, EntityKind, is_under

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from mindstore.neuron import Neuron
    from mindstore.store import MindStore

logger = logging.getLogger("mindstore.pathway")

DEFAULT_WEIGHT = 0.00001
WEIGHT_STEP = 0.00001


def target_path_of(store: MindStore, target: Neuron) -> str:
    """Return target's storage path, or raise NoSuchTarget if it has none on disk."""
    path = getattr(target, "storage_path", None)
    if not path or getattr(target, "destroyed", False):
        msg = f"{target!r} has no storage path"
        raise NoSuchTarget(msg)
    if not store.exists(path):
        msg = f"neuron file missing: {path}"
        raise NoSuchTarget(msg)
    return path


@dataclass
class NeuralPathway(StoreBound):
    target: str
    storage_path: str
    weight: float = DEFAULT_WEIGHT

    @property
    def record_path(self) -> str:
        return self.storage_path

    # ------------------------------------------------------------------
    # Record
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "weight": self.weight,
            "target": self.target,
            "storage_path": self.storage_path,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> NeuralPathway:
        weight = req_float(d, "weight")
        if weight <= 0:
            raise MalformedRecord("weight", f"must be positive, got {weight}")
        storage_path = req_path(d, "storage_path")
        if not is_under(storage_path, PATHWAYS_DIRNAME):
            raise MalformedRecord("storage_path", f"not under {PATHWAYS_DIRNAME}/: {storage_path}")
        return cls(
            target=req_path(d, "target"),
            storage_path=storage_path,
            weight=weight,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, store: MindStore, target: Neuron, path: str | None = None) -> NeuralPathway:
        """Persist a new edge to target with the store's initial weight.

        path is normally allocated here; pass one already taken from the
        pathway counter to fix the edge's location before the write.
        """
        with store.locked():
            target_path = target_path_of(store, target)
            if path is None:
                path = store.resolver.resolve(EntityKind.PATHWAY)
            pathway = cls(target=target_path, storage_path=path, weight=store.initial_weight)
            store.create_record(pathway)
        logger.info("pathway created: %s -> %s", path, target_path)
        return pathway

    def retarget(self, new_target: str) -> None:
        """Point the edge at the target's new location after a relocation."""
        store = self._bound()
        with store.locked():
            old_target, self.target = self.target, new_target
            try:
                store.save(self)
            except Exception:
                self.target = old_target
                raise

    # ------------------------------------------------------------------
    # Weight
    # ------------------------------------------------------------------

    def increase_weight(self) -> float:
        store = self._bound()
        with store.locked():
            self._set_weight(store, self.weight + store.weight_step)
        return self.weight

    def decrease_weight(self) -> float:
        """Weaken by one step, clamped at the step itself."""
        store = self._bound()
        step = store.weight_step
        with store.locked():
            new_weight = max(self.weight - step, step)
            if new_weight != self.weight:
                self._set_weight(store, new_weight)
        return self.weight

    def _set_weight(self, store: MindStore, weight: float) -> None:
        old, self.weight = self.weight, weight
        try:
            store.save(self)
        except Exception:
            self.weight = old
            raise

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def resolve_target(self) -> Neuron:
        store = self._bound()
        if not store.exists(self.target):
            raise BrokenEdge(self.storage_path, self.target)
        return store.neuron(self.target)

    # Activate the link and retrieve the thought it leads to
    fire = resolve_target

    def __lt__(self, other: NeuralPathway) -> bool:
        if not isinstance(other, NeuralPathway):
            return NotImplemented
        return self.weight < other.weight


def strongest_first(pathways: Iterable[NeuralPathway]) -> list[NeuralPathway]:
    """Order edges for traversal: heaviest first, ties by creation order."""
    return sorted(pathways, key=lambda p: p.weight, reverse=True)
