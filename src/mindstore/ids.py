"""Identity allocator: file-persisted, monotonically increasing integer ids.

One counter file per scope under ``<root>/ids/``. Each file holds the next id
to hand out as decimal text. Allocation reads, increments and rewrites the
counter under the root lock, so two allocations in one scope never return the
same value.
"""

from __future__ import annotations

import logging
import os
from enum import StrEnum
from typing import TYPE_CHECKING

from mindstore.errors import AllocatorUnavailable

if TYPE_CHECKING:
    from pathlib import Path

    from mindstore.locking import RootLock

logger = logging.getLogger("mindstore.ids")

IDS_DIRNAME = "ids"


class IdScope(StrEnum):
    NEURON = "neuron"
    PATHWAY = "pathway"


class IdAllocator:
    def __init__(self, root: Path, lock: RootLock) -> None:
        self.ids_dir = root / IDS_DIRNAME
        self._lock = lock

    def counter_path(self, scope: IdScope) -> Path:
        return self.ids_dir / str(scope)

    def initialize(self, scope: IdScope, start: int = 0) -> bool:
        """Create the counter file for scope if missing. Returns True if created."""
        path = self.counter_path(scope)
        with self._lock.hold():
            if path.exists():
                return False
            self.ids_dir.mkdir(parents=True, exist_ok=True)
            self._write(path, start)
        logger.info("initialized %s counter at %d", scope, start)
        return True

    def peek(self, scope: IdScope) -> int:
        """Return the id the next allocation in scope would return."""
        return self._read(scope, self.counter_path(scope))

    def next_id(self, scope: IdScope) -> int:
        path = self.counter_path(scope)
        with self._lock.hold():
            current = self._read(scope, path)
            try:
                self._write(path, current + 1)
            except OSError as exc:
                raise AllocatorUnavailable(str(scope), f"cannot persist counter: {exc}") from exc
        return current

    @staticmethod
    def _read(scope: IdScope, path: Path) -> int:
        try:
            text = path.read_text().strip()
        except OSError as exc:
            raise AllocatorUnavailable(str(scope), f"cannot read {path}: {exc}") from exc
        try:
            value = int(text)
        except ValueError as exc:
            raise AllocatorUnavailable(str(scope), f"counter {path} holds {text!r}") from exc
        if value < 0:
            raise AllocatorUnavailable(str(scope), f"counter {path} is negative")
        return value

    @staticmethod
    def _write(path: Path, value: int) -> None:
        # Write to tmp then rename so a crash never leaves an empty counter
        tmp = path.with_name(path.name + ".tmp")
        with tmp.open("w") as f:
            f.write(str(value))
            f.flush()
            os.fsync(f.fileno())
        tmp.replace(path)
