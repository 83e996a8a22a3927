"""Tests for mind.toml loading."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from mindstore.config import init_config, load_config
from mindstore.pathway import DEFAULT_WEIGHT, WEIGHT_STEP

if TYPE_CHECKING:
    from pathlib import Path


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self, tmp_path: Path) -> None:
        cfg = load_config(tmp_path)

        assert cfg.root == tmp_path
        assert cfg.name == tmp_path.name
        assert cfg.storage_dir == tmp_path / ".mind"
        assert cfg.pathways.initial_weight == DEFAULT_WEIGHT
        assert cfg.pathways.weight_step == WEIGHT_STEP
        assert cfg.log.level == "WARNING"

    def test_reads_sections(self, tmp_path: Path) -> None:
        (tmp_path / "mind.toml").write_text(
            """\
[mind]
name = "zoo"
storage_dir = "data/graph"

[pathways]
initial_weight = 0.5
weight_step = 0.25

[logging]
level = "info"
"""
        )

        cfg = load_config(tmp_path)

        assert cfg.name == "zoo"
        assert cfg.storage_dir == tmp_path / "data" / "graph"
        assert cfg.pathways.initial_weight == 0.5
        assert cfg.pathways.weight_step == 0.25
        assert cfg.log.level == "info"

    def test_finds_root_upward(self, tmp_path: Path) -> None:
        init_config(tmp_path, name="zoo")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        cfg = load_config(nested)

        assert cfg.root == tmp_path
        assert cfg.name == "zoo"

    def test_rejects_non_positive_weights(self, tmp_path: Path) -> None:
        (tmp_path / "mind.toml").write_text("[pathways]\nweight_step = 0\n")

        with pytest.raises(ValueError):
            load_config(tmp_path)

    def test_open_store_bootstraps(self, tmp_path: Path) -> None:
        (tmp_path / "mind.toml").write_text("[pathways]\ninitial_weight = 0.5\nweight_step = 0.1\n")

        store = load_config(tmp_path).open_store()

        assert (store.root / "neurons").is_dir()
        assert (store.root / "pathways").is_dir()
        assert (store.root / "ids" / "neuron").read_text() == "0"
        assert store.initial_weight == 0.5
        assert store.weight_step == 0.1


class TestInitConfig:
    def test_writes_loadable_file(self, tmp_path: Path) -> None:
        path = init_config(tmp_path, name="zoo")

        assert path == tmp_path / "mind.toml"
        assert load_config(tmp_path).name == "zoo"

    def test_refuses_to_overwrite(self, tmp_path: Path) -> None:
        init_config(tmp_path)

        with pytest.raises(FileExistsError):
            init_config(tmp_path)
