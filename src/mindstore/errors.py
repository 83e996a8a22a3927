"""Typed errors raised by the store.

Every failure a caller can act on has its own class. Reads never hand back a
null entity for a missing or corrupt file; they raise one of these instead.
"""

from __future__ import annotations


class MindStoreError(Exception):
    """Base class for every error raised by mindstore."""


class AllocatorUnavailable(MindStoreError):
    """The id counter file for a scope is missing or unreadable."""

    def __init__(self, scope: str, reason: str) -> None:
        self.scope = scope
        super().__init__(f"id allocator for {scope!r} unavailable: {reason}")


class PathAlreadyExists(MindStoreError, FileExistsError):
    """Creating an entity would overwrite an existing file."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"path already exists: {path}")


class MalformedRecord(MindStoreError):
    """A record file could not be decoded.

    ``field`` names the missing or invalid field, or is None when the text
    is not a record at all.
    """

    def __init__(self, field: str | None, detail: str, path: str | None = None) -> None:
        self.field = field
        self.path = path
        self.detail = detail
        where = f" in {path}" if path else ""
        what = f"field {field!r}: " if field else ""
        super().__init__(f"malformed record{where}: {what}{detail}")


class CategoryNotFound(MindStoreError, LookupError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"category not found: {path}")


class NeuronNotFound(MindStoreError, LookupError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"neuron not found: {path}")


class PathwayNotFound(MindStoreError, LookupError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"pathway not found: {path}")


class NoSuchTarget(MindStoreError):
    """An edge was requested to a Neuron with no resolvable storage path."""


class BrokenEdge(MindStoreError):
    """An edge's target file no longer exists."""

    def __init__(self, edge_path: str, target_path: str) -> None:
        self.edge_path = edge_path
        self.target_path = target_path
        super().__init__(f"edge {edge_path} points at missing neuron {target_path}")


class _RolledBackError(MindStoreError):
    """Shared shape of CreateFailed / RelocateFailed."""

    def __init__(self, message: str, cleanup_errors: list[BaseException] | None = None) -> None:
        self.cleanup_errors = list(cleanup_errors or [])
        if self.cleanup_errors:
            message += (
                f" ({len(self.cleanup_errors)} cleanup step(s) failed;"
                " run scan_and_repair to restore consistency)"
            )
        super().__init__(message)


class CreateFailed(_RolledBackError):
    """A multi-file create failed after its first write."""


class RelocateFailed(_RolledBackError):
    """A relocation failed part-way; the neuron was moved back where possible."""


class InvalidName(MindStoreError, ValueError):
    """A label or category name cannot be used as a file name."""


class InvalidHandle(MindStoreError):
    """The Neuron was destroyed; the in-memory handle can no longer be used."""


class UnknownEmotion(MindStoreError, KeyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"unknown emotion: {self.name!r}"
