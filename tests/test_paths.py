"""Tests for name validation and the storage path resolver."""

from __future__ import annotations

import pytest

from mindstore.errors import InvalidName
from mindstore.ids import IdScope
from mindstore.paths import EntityKind, PathResolver, is_under, parent_dir, stem_of, validate_name
from mindstore.store import MindStore


class TestValidateName:
    """Tests for validate_name."""

    @pytest.mark.parametrize("name", ["dog", "big dog", "dog-2", "Émile", "a.b"])
    def test_accepts_plain_names(self, name: str) -> None:
        assert validate_name(name) == name

    @pytest.mark.parametrize(
        "name",
        ["", ".", "..", ".hidden", "a/b", "a\\b", "123", "dog.nrn", "edge.tlink", "x.tmp"],
    )
    def test_rejects(self, name: str) -> None:
        with pytest.raises(InvalidName):
            validate_name(name)

    def test_invalid_name_is_a_value_error(self) -> None:
        """Test that callers catching ValueError also catch InvalidName."""
        with pytest.raises(ValueError):
            validate_name("a/b")


class TestPathHelpers:
    def test_is_under_is_strict(self) -> None:
        assert is_under("neurons/animals/dog.nrn", "neurons/animals")
        assert is_under("neurons/animals/pets/dog.nrn", "neurons/animals")
        assert not is_under("neurons/animals", "neurons/animals")
        assert not is_under("neurons/animalsx/dog.nrn", "neurons/animals")

    def test_stem_and_parent(self) -> None:
        assert stem_of("neurons/animals/dog.nrn") == "dog"
        assert parent_dir("neurons/animals/dog.nrn") == "neurons/animals"
        assert parent_dir("neurons/7.nrn") == "neurons"


class TestPathResolver:
    """Tests for PathResolver.resolve."""

    def test_labelled_neuron_in_category(self, store: MindStore) -> None:
        path = store.resolver.resolve(EntityKind.NEURON, "neurons/animals", "dog")

        assert path == "neurons/animals/dog.nrn"
        assert store.allocator.peek(IdScope.NEURON) == 0

    def test_unlabelled_neuron_allocates(self, store: MindStore) -> None:
        """Test that an id is drawn only when no name is given."""
        first = store.resolver.resolve(EntityKind.NEURON)
        second = store.resolver.resolve(EntityKind.NEURON)

        assert first == "neurons/0.nrn"
        assert second == "neurons/1.nrn"

    def test_pathway_paths(self, store: MindStore) -> None:
        assert store.resolver.resolve(EntityKind.PATHWAY) == "pathways/0.tlink"
        assert store.resolver.resolve(EntityKind.PATHWAY) == "pathways/1.tlink"

    def test_pathway_cannot_have_category(self, store: MindStore) -> None:
        with pytest.raises(ValueError):
            store.resolver.resolve(EntityKind.PATHWAY, "neurons/animals")

    def test_explicit_id_keeps_number(self, store: MindStore) -> None:
        """Test that an existing id is reused, e.g. when relocating."""
        assert store.resolver.resolve(EntityKind.NEURON, "neurons/pets", 12) == "neurons/pets/12.nrn"
        assert store.allocator.peek(IdScope.NEURON) == 0

    def test_bad_label(self, store: MindStore) -> None:
        with pytest.raises(InvalidName):
            store.resolver.resolve(EntityKind.NEURON, None, "../escape")

    def test_category_paths(self) -> None:
        assert PathResolver.category_path(None, "animals") == "neurons/animals"
        assert PathResolver.category_path("neurons/animals", "pets") == "neurons/animals/pets"
        assert PathResolver.category_record("neurons/animals") == "neurons/animals/.category"
