"""Shared fixtures: a bootstrapped store in a temp directory."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from mindstore.category import Category
from mindstore.neuron import Neuron
from mindstore.store import MindStore

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


@pytest.fixture
def store(tmp_path: Path) -> MindStore:
    s = MindStore(tmp_path / "mind")
    s.bootstrap()
    return s


@pytest.fixture
def animals(store: MindStore) -> Category:
    return Category.create(store, "animals")


@pytest.fixture
def dog(store: MindStore, animals: Category) -> Neuron:
    return Neuron.create(store, label="dog", category=animals)


@pytest.fixture
def cat(store: MindStore, animals: Category, dog: Neuron) -> Neuron:
    return Neuron.create(store, linked_neuron=dog, label="cat", category=animals)


@pytest.fixture
def files(store: MindStore) -> Callable[[str], list[str]]:
    """Root-relative paths of files matching a glob, sorted."""

    def _files(pattern: str) -> list[str]:
        return sorted(p.relative_to(store.root).as_posix() for p in store.root.rglob(pattern) if p.is_file())

    return _files
