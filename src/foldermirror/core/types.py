"""Shared types and dataclasses for folder mirroring.

This module provides:
- MirrorError and subclasses: Exception classes for watch and remote failures
- EventKind, ChangeEvent: Change notifications delivered by a directory notifier
- RemoteEntry: One entry of a remote directory listing
- EngineState, EngineStats: Watch engine state and counters
- remote_join: Remote path normalization
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, auto


class MirrorError(Exception):
    """Base exception for mirror errors."""


class RemoteStoreError(MirrorError):
    """A remote store operation failed."""


class RemoteConnectionError(RemoteStoreError):
    """Failed to connect or log in to the remote store."""


class RemoteOperationError(RemoteStoreError):
    """A command on an open remote session failed."""


class WatchError(MirrorError, OSError):
    """Failed to subscribe a local directory for change notifications."""


class NotifierClosedError(MirrorError):
    """Raised by a blocking retrieval once the notifier has been closed."""


# =============================================================================
# Change Events
# =============================================================================


class EventKind(IntEnum):
    """Kind of change reported for a directory entry."""

    CREATED = auto()
    MODIFIED = auto()
    DELETED = auto()
    OVERFLOW = auto()  # Notifier dropped events, name is empty


@dataclass(frozen=True)
class ChangeEvent:
    """A change to one entry of a watched directory.

    Attributes:
        kind: What happened to the entry.
        name: Entry name, a single path segment relative to the watched directory.
        is_hidden: Whether the entry is hidden.
        is_directory: Whether the entry is (or was) a directory.
    """

    kind: EventKind
    name: str = ""
    is_hidden: bool = False
    is_directory: bool = False

    @classmethod
    def overflow(cls) -> ChangeEvent:
        """Create an overflow marker event."""
        return cls(kind=EventKind.OVERFLOW)

    def __repr__(self) -> str:
        """Human-readable representation."""
        flags = "".join(
            flag for flag, on in (("d", self.is_directory), ("h", self.is_hidden)) if on
        )
        return f"ChangeEvent({self.kind.name}, name={self.name!r}, flags={flags!r})"


@dataclass(frozen=True)
class RemoteEntry:
    """An entry returned by a remote directory listing."""

    name: str
    is_directory: bool = False


# =============================================================================
# Engine Types
# =============================================================================


class EngineState(IntEnum):
    """Lifecycle state of the watch engine."""

    IDLE = auto()
    RUNNING = auto()
    DISPOSING = auto()
    STOPPED = auto()


@dataclass
class EngineStats:
    """Statistics for the watch engine."""

    batches_processed: int = 0
    uploads: int = 0
    deletes: int = 0
    skipped_hidden: int = 0
    skipped_ignored: int = 0
    overflows: int = 0
    subscription_failures: int = 0
    mirror_failures: int = 0


def remote_join(*parts: str) -> str:
    """Join remote path fragments into a normalized absolute POSIX path.

    Backslashes are treated as separators. Empty and "." segments are dropped,
    so ``remote_join("", "")`` is ``"/"``.

    Args:
        parts: Path fragments, each possibly containing several segments.

    Returns:
        Absolute remote path.
    """
    segments: list[str] = []
    for part in parts:
        for segment in part.replace("\\", "/").split("/"):
            if segment in ("", "."):
                continue
            if segment == "..":
                if segments:
                    segments.pop()
                continue
            segments.append(segment)
    return "/" + "/".join(segments)
