"""MindConfig: project-local config for a thought graph.

Default layout (all relative to the project root):

    mind.toml             # project config
    .mind/                # storage root
        ids/
        neurons/
        pathways/

mind.toml example:

    [mind]
    name = "my-mind"
    # storage_dir = ".mind"        # default

    [pathways]
    initial_weight = 0.00001
    weight_step = 0.00001

    [logging]
    level = "WARNING"
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mindstore.pathway import DEFAULT_WEIGHT, WEIGHT_STEP
from mindstore.store import MindStore

_CONFIG_FILENAME = "mind.toml"
_DEFAULT_STORAGE_DIR = ".mind"
_LOG_FORMAT = "%(asctime)s %(name)s %(message)s"


@dataclass
class PathwayConfig:
    initial_weight: float = DEFAULT_WEIGHT
    weight_step: float = WEIGHT_STEP


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class MindConfig:
    """Resolved configuration for a thought-graph project."""

    root: Path                      # directory that contains mind.toml
    name: str = ""
    storage_dir: Path = field(default_factory=Path)
    pathways: PathwayConfig = field(default_factory=PathwayConfig)
    log: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME

    def open_store(self) -> MindStore:
        """Return a bootstrapped store for storage_dir."""
        store = MindStore(
            self.storage_dir,
            initial_weight=self.pathways.initial_weight,
            weight_step=self.pathways.weight_step,
        )
        store.bootstrap()
        return store

    def configure_logging(self, verbose: bool = False) -> None:
        level = logging.DEBUG if verbose else logging.getLevelName(self.log.level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
        logging.basicConfig(level=level, format=_LOG_FORMAT)


def load_config(root: Path | str | None = None) -> MindConfig:
    """Load mind.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    mind_section = raw.get("mind", {})
    pw_section = raw.get("pathways", {})
    log_section = raw.get("logging", {})

    pathways = PathwayConfig(
        initial_weight=float(pw_section.get("initial_weight", DEFAULT_WEIGHT)),
        weight_step=float(pw_section.get("weight_step", WEIGHT_STEP)),
    )
    if pathways.initial_weight <= 0 or pathways.weight_step <= 0:
        msg = f"{config_path}: [pathways] weights must be positive"
        raise ValueError(msg)

    return MindConfig(
        root=root_path,
        name=mind_section.get("name", root_path.name),
        storage_dir=root_path / mind_section.get("storage_dir", _DEFAULT_STORAGE_DIR),
        pathways=pathways,
        log=LoggingConfig(level=str(log_section.get("level", "WARNING"))),
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for mind.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, name: str | None = None) -> Path:
    """Write a default mind.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"mind.toml already exists at {config_path}"
        raise FileExistsError(msg)

    project_name = name or root.name
    content = f"""\
[mind]
name = "{project_name}"
# storage_dir = ".mind"   # default

# [pathways]
# initial_weight = {DEFAULT_WEIGHT}
# weight_step = {WEIGHT_STEP}   # increase/decrease step; weight never drops below it

# [logging]
# level = "WARNING"
"""
    config_path.write_text(content)
    return config_path
