"""Consistency protocol: find and repair references that no longer resolve.

Neurons are stored without back-links, so ``Neuron.destroy`` cannot reach the
edges that point at it. ``scan_and_repair`` is the sweep that closes that gap:

    report = scan_and_repair(store)
    if not report.clean:
        print(report.summary())

One pass, under the store lock:
    1. delete leftover ``*.tmp`` files from interrupted writes
    2. drop outgoing-edge references whose edge file is missing
    3. delete edge files no neuron references
    4. for every edge whose target neuron is gone (a broken edge), remove it
       from its owner's outgoing_edges and delete the edge file
    5. reconcile each category's child set with the neuron files actually
       filed in its directory

Records that cannot be decoded are reported and left alone. ``check(store)``
runs the same scan without changing anything.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mindstore.errors import MalformedRecord, PathwayNotFound
from mindstore.paths import CATEGORY_RECORD, NEURONS_DIRNAME, PATHWAYS_DIRNAME, TMP_SUFFIX, EntityKind

if TYPE_CHECKING:
    from mindstore.neuron import Neuron
    from mindstore.store import MindStore

logger = logging.getLogger("mindstore.repair")


@dataclass
class RepairReport:
    applied: bool = True
    broken_edges: list[tuple[str, str]] = field(default_factory=list)        # (edge, missing target)
    missing_edges: list[tuple[str, str]] = field(default_factory=list)       # (owner, missing edge file)
    orphan_edges: list[str] = field(default_factory=list)
    stale_children: list[tuple[str, str]] = field(default_factory=list)      # (category, missing neuron)
    unlisted_children: list[tuple[str, str]] = field(default_factory=list)   # (category, neuron)
    temp_files: list[str] = field(default_factory=list)
    unreadable: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not (
            self.broken_edges
            or self.missing_edges
            or self.orphan_edges
            or self.stale_children
            or self.unlisted_children
            or self.temp_files
            or self.unreadable
        )

    def summary(self) -> str:
        verb = "repaired" if self.applied else "found"
        parts = [
            f"{len(self.broken_edges)} broken edge(s)",
            f"{len(self.missing_edges)} missing edge file(s)",
            f"{len(self.orphan_edges)} orphan edge file(s)",
            f"{len(self.stale_children)} stale category entr(ies)",
            f"{len(self.unlisted_children)} unlisted neuron(s)",
            f"{len(self.temp_files)} temp file(s)",
        ]
        line = f"{verb}: " + ", ".join(parts)
        if self.unreadable:
            line += f"; {len(self.unreadable)} unreadable record(s) left in place"
        return line


def scan_and_repair(store: MindStore) -> RepairReport:
    """Remove every reference that no longer resolves. Returns what was done."""
    return _scan(store, apply=True)


def check(store: MindStore) -> RepairReport:
    """Report what scan_and_repair would do, without touching any file."""
    return _scan(store, apply=False)


def _scan(store: MindStore, *, apply: bool) -> RepairReport:
    report = RepairReport(applied=apply)
    with store.locked():
        _sweep_temp_files(store, report, apply)
        neurons = _load_neurons(store, report)
        # An unreadable neuron may own edges that look orphaned
        owners_known = not report.unreadable
        dirty: dict[str, Neuron] = {}

        # Outgoing references to edge files that are gone
        owners: dict[str, list[Neuron]] = defaultdict(list)
        for neuron in neurons:
            for edge_path in list(neuron.outgoing_edges):
                if store.exists(edge_path):
                    owners[edge_path].append(neuron)
                    continue
                report.missing_edges.append((neuron.storage_path, edge_path))
                if apply:
                    neuron.outgoing_edges.remove(edge_path)
                    dirty[neuron.storage_path] = neuron

        for edge_path in store.list_paths(PATHWAYS_DIRNAME, f"*.{EntityKind.PATHWAY.value}", recursive=False):
            try:
                pathway = store.pathway(edge_path)
            except MalformedRecord:
                logger.warning("unreadable pathway record: %s", edge_path)
                report.unreadable.append(edge_path)
                continue
            except PathwayNotFound:
                continue
            if edge_path not in owners:
                report.orphan_edges.append(edge_path)
                if apply and owners_known:
                    store.delete_record(edge_path)
                continue
            if store.exists(pathway.target):
                continue
            report.broken_edges.append((edge_path, pathway.target))
            if apply:
                for owner in owners[edge_path]:
                    owner.outgoing_edges = [p for p in owner.outgoing_edges if p != edge_path]
                    dirty[owner.storage_path] = owner
                store.delete_record(edge_path)

        for neuron in dirty.values():
            store.save(neuron)

        _reconcile_categories(store, report, apply)

    if apply and not report.clean:
        logger.info("repair: %s", report.summary())
    return report


def _sweep_temp_files(store: MindStore, report: RepairReport, apply: bool) -> None:
    for path in sorted(store.root.rglob(f"*{TMP_SUFFIX}")):
        if not path.is_file():
            continue
        rel = store.relpath(path)
        report.temp_files.append(rel)
        if apply:
            path.unlink(missing_ok=True)


def _load_neurons(store: MindStore, report: RepairReport) -> list[Neuron]:
    neurons: list[Neuron] = []
    for rel in store.list_paths(NEURONS_DIRNAME, f"*.{EntityKind.NEURON.value}", recursive=True):
        try:
            neurons.append(store.neuron(rel))
        except MalformedRecord:
            logger.warning("unreadable neuron record: %s", rel)
            report.unreadable.append(rel)
    return neurons


def _reconcile_categories(store: MindStore, report: RepairReport, apply: bool) -> None:
    for rel in store.list_paths(NEURONS_DIRNAME, CATEGORY_RECORD, recursive=True):
        try:
            category = store.category(rel)
        except MalformedRecord:
            logger.warning("unreadable category record: %s", rel)
            report.unreadable.append(rel)
            continue
        on_disk = set(store.list_paths(category.storage_path, f"*.{EntityKind.NEURON.value}", recursive=False))
        listed = list(category.child_neurons)
        changed = False
        for child in listed:
            if child not in on_disk:
                report.stale_children.append((category.storage_path, child))
                if apply:
                    category.child_neurons.remove(child)
                    changed = True
        for child in sorted(on_disk - set(listed)):
            report.unlisted_children.append((category.storage_path, child))
            if apply:
                category.child_neurons.append(child)
                changed = True
        if changed:
            store.save(category)
