"""Tests for scan_and_repair and check."""

from __future__ import annotations

import json
import random
from collections.abc import Callable

from mindstore.category import Category
from mindstore.errors import BrokenEdge
from mindstore.neuron import Neuron
from mindstore.repair import check, scan_and_repair
from mindstore.store import MindStore

Files = Callable[[str], list[str]]


def write_json(store: MindStore, rel: str, data: dict) -> None:
    path = store.root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


def assert_consistent(store: MindStore) -> None:
    """Every reference in every record resolves to an existing file."""
    store.forget()
    for neuron in store.iter_neurons():
        for edge in neuron.pathways():
            assert store.exists(edge.target), f"{edge.storage_path} -> {edge.target}"
    owned = {e for n in store.iter_neurons() for e in n.outgoing_edges}
    for edge in store.iter_pathways():
        assert edge.storage_path in owned
    for category in store.iter_categories():
        for child in category.child_neurons:
            assert store.exists(child)
        listed = set(category.child_neurons)
        for neuron in store.iter_neurons(under=category.storage_path, recursive=False):
            assert neuron.storage_path in listed


class TestScanAndRepair:
    """Tests for scan_and_repair."""

    def test_clean_store(self, store: MindStore, dog: Neuron, cat: Neuron) -> None:
        report = scan_and_repair(store)

        assert report.clean
        assert report.applied

    def test_removes_broken_edge(self, store: MindStore, dog: Neuron, cat: Neuron, files: Files) -> None:
        """Test the destroy-then-repair sequence."""
        dog.destroy()

        report = scan_and_repair(store)

        assert report.broken_edges == [("pathways/0.tlink", "neurons/animals/dog.nrn")]
        assert cat.outgoing_edges == []
        assert files("*.tlink") == []
        assert json.loads((store.root / cat.storage_path).read_text())["outgoing_edges"] == []
        assert scan_and_repair(store).clean

    def test_broken_edge_on_reopened_store(self, store: MindStore, dog: Neuron, cat: Neuron) -> None:
        dog.destroy()
        fresh = MindStore(store.root)

        report = scan_and_repair(fresh)

        assert len(report.broken_edges) == 1
        assert fresh.neuron(cat.storage_path).outgoing_edges == []

    def test_keeps_other_edges(self, store: MindStore, animals: Category, dog: Neuron, cat: Neuron) -> None:
        cow = Neuron.create(store, label="cow", category=animals)
        keep = cat.add_edge(cow)
        dog.destroy()

        scan_and_repair(store)

        assert cat.outgoing_edges == [keep.storage_path]
        assert [n.storage_path for n in cat.edges_within(animals)] == [cow.storage_path]

    def test_drops_missing_edge_reference(self, store: MindStore, dog: Neuron, cat: Neuron) -> None:
        (store.root / "pathways/0.tlink").unlink()

        report = scan_and_repair(store)

        assert report.missing_edges == [(cat.storage_path, "pathways/0.tlink")]
        assert cat.outgoing_edges == []

    def test_deletes_orphan_edge(self, store: MindStore, dog: Neuron, files: Files) -> None:
        write_json(
            store,
            "pathways/9.tlink",
            {"v": 1, "weight": 1, "target": dog.storage_path, "storage_path": "pathways/9.tlink"},
        )

        report = scan_and_repair(store)

        assert report.orphan_edges == ["pathways/9.tlink"]
        assert files("*.tlink") == []

    def test_orphans_kept_while_a_neuron_is_unreadable(
        self, store: MindStore, dog: Neuron, cat: Neuron, files: Files
    ) -> None:
        """Test that edges are not deleted when their owner might be the unreadable record."""
        (store.root / cat.storage_path).write_text("{ truncated")
        store.forget()

        report = scan_and_repair(store)

        assert report.unreadable == [cat.storage_path]
        assert report.orphan_edges == ["pathways/0.tlink"]
        assert files("*.tlink") == ["pathways/0.tlink"]
        assert (store.root / cat.storage_path).read_text() == "{ truncated"

    def test_undecodable_records_are_reported(
        self, store: MindStore, animals: Category, dog: Neuron
    ) -> None:
        (store.root / "neurons/bad.nrn").write_bytes(b"\xff\xfe{garbage")
        (store.root / "neurons/animals/.category").write_bytes(b"\x80\x81")
        store.forget()

        report = scan_and_repair(store)

        assert sorted(report.unreadable) == ["neurons/animals/.category", "neurons/bad.nrn"]
        assert (store.root / "neurons/bad.nrn").read_bytes() == b"\xff\xfe{garbage"

    def test_reconciles_category_children(self, store: MindStore, animals: Category, dog: Neuron) -> None:
        (store.root / dog.storage_path).unlink()
        write_json(
            store,
            "neurons/animals/stray.nrn",
            {
                "v": 1,
                "parent_category": "neurons/animals",
                "outgoing_edges": [],
                "storage_path": "neurons/animals/stray.nrn",
            },
        )

        report = scan_and_repair(store)

        assert report.stale_children == [("neurons/animals", "neurons/animals/dog.nrn")]
        assert report.unlisted_children == [("neurons/animals", "neurons/animals/stray.nrn")]
        assert animals.child_neurons == ["neurons/animals/stray.nrn"]

    def test_sweeps_temp_files(self, store: MindStore, dog: Neuron, files: Files) -> None:
        (store.root / "neurons/animals/dog.nrn.tmp").write_text("half a rec")

        report = scan_and_repair(store)

        assert report.temp_files == ["neurons/animals/dog.nrn.tmp"]
        assert files("*.tmp") == []

    def test_summary(self, store: MindStore, dog: Neuron, cat: Neuron) -> None:
        dog.destroy()

        summary = scan_and_repair(store).summary()

        assert summary.startswith("repaired: 1 broken edge(s)")


class TestCheck:
    """check() reports without changing anything."""

    def test_check_is_read_only(self, store: MindStore, dog: Neuron, cat: Neuron, files: Files) -> None:
        dog.destroy()
        before = (store.root / cat.storage_path).read_text()

        report = check(store)

        assert not report.applied
        assert report.broken_edges == [("pathways/0.tlink", "neurons/animals/dog.nrn")]
        assert cat.outgoing_edges == ["pathways/0.tlink"]
        assert files("*.tlink") == ["pathways/0.tlink"]
        assert (store.root / cat.storage_path).read_text() == before
        assert check(store).summary().startswith("found:")


class TestReferentialIntegrity:
    """Random sequences of operations followed by repair leave no dangling reference."""

    def test_random_operations(self, store: MindStore) -> None:
        rng = random.Random(1234)
        categories: list[Category | None] = [None]
        for name in ("animals", "plants", "minerals"):
            categories.append(Category.create(store, name))
        categories.append(Category.create(store, "pets", categories[1]))
        neurons: list[Neuron] = []

        for step in range(150):
            live = [n for n in neurons if not n.destroyed]
            op = rng.choice(["create", "create", "link", "move", "destroy", "unlink", "weigh"])
            if op == "create" or len(live) < 2:
                link = rng.choice(live) if live and rng.random() < 0.5 else None
                label = f"n{step}" if rng.random() < 0.5 else None
                neurons.append(Neuron.create(store, linked_neuron=link, label=label, category=rng.choice(categories)))
            elif op == "link":
                a, b = rng.sample(live, 2)
                a.add_edge(b)
            elif op == "move":
                rng.choice(live).relocate(rng.choice(categories))
            elif op == "destroy":
                rng.choice(live).destroy()
            elif op == "unlink":
                a, b = rng.sample(live, 2)
                a.remove_edge(b)
            else:
                source = rng.choice(live)
                for edge in source.pathways():
                    if rng.random() < 0.5:
                        edge.increase_weight()
                    else:
                        edge.decrease_weight()
                    assert edge.weight > 0

        scan_and_repair(store)

        assert_consistent(store)
        assert check(store).clean

    def test_traversal_after_repair(self, store: MindStore, animals: Category, dog: Neuron, cat: Neuron) -> None:
        dog.destroy()
        try:
            list(cat.edges_within(animals))
        except BrokenEdge:
            scan_and_repair(store)

        assert list(cat.edges_within(animals)) == []
