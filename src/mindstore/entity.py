"""Base for records that live in a MindStore."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mindstore.errors import MindStoreError

if TYPE_CHECKING:
    from collections.abc import Callable

    from mindstore.store import MindStore

logger = logging.getLogger("mindstore.entity")


@dataclass
class StoreBound:
    """Mixin giving an entity a back-reference to the store that loaded it.

    The reference is excluded from equality and repr, so a decoded record
    compares equal to the live entity it was written from.
    """

    store: MindStore | None = field(default=None, kw_only=True, compare=False, repr=False)

    def _bound(self) -> MindStore:
        if self.store is None:
            msg = f"{type(self).__name__} is not attached to a store"
            raise MindStoreError(msg)
        return self.store


def unwind(undo: list[Callable[[], None]], what: str) -> list[BaseException]:
    """Run undo steps newest-first. Failures are logged and returned, never raised."""
    errors: list[BaseException] = []
    while undo:
        step = undo.pop()
        try:
            step()
        except Exception as exc:
            logger.exception("cleanup step failed while rolling back %s", what)
            errors.append(exc)
    return errors
