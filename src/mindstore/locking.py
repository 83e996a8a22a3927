"""Exclusive lock scoped to a storage root.

Multi-file sequences (create, relocate, destroy, repair) and the allocator's
read-increment-write hold this lock for their whole duration. It is
re-entrant for the owning thread, so a create that allocates an id and writes
an edge takes the flock once. Across processes (and across separate store
handles on the same root) exclusion comes from ``flock(LOCK_EX)`` on
``<root>/.lock``.
"""

from __future__ import annotations

import fcntl
import threading
from contextlib import contextmanager
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

LOCK_FILENAME = ".lock"


class RootLock:
    def __init__(self, root: Path) -> None:
        self.path = root / LOCK_FILENAME
        self._mutex = threading.RLock()
        self._depth = 0
        self._fh: IO[str] | None = None

    @property
    def held(self) -> bool:
        return self._depth > 0

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Hold the lock for the duration of the block; released on every exit path."""
        with self._mutex:
            if self._depth == 0:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fh = self.path.open("a")
                try:
                    fcntl.flock(fh, fcntl.LOCK_EX)
                except OSError:
                    fh.close()
                    raise
                self._fh = fh
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
                if self._depth == 0 and self._fh is not None:
                    try:
                        fcntl.flock(self._fh, fcntl.LOCK_UN)
                    finally:
                        self._fh.close()
                        self._fh = None
