"""Core module - Shared configuration and types."""

from foldermirror.core.config import (
    DEFAULT_PORT,
    DEFAULT_SESSION_TTL,
    DEFAULT_SETTLE_DELAY,
    MirrorConfig,
)
from foldermirror.core.types import (
    ChangeEvent,
    EngineState,
    EngineStats,
    EventKind,
    MirrorError,
    NotifierClosedError,
    RemoteConnectionError,
    RemoteEntry,
    RemoteOperationError,
    RemoteStoreError,
    WatchError,
    remote_join,
)

__all__ = [
    # Config
    "DEFAULT_PORT",
    "DEFAULT_SESSION_TTL",
    "DEFAULT_SETTLE_DELAY",
    "MirrorConfig",
    # Errors
    "MirrorError",
    "NotifierClosedError",
    "RemoteConnectionError",
    "RemoteOperationError",
    "RemoteStoreError",
    "WatchError",
    # Types
    "ChangeEvent",
    "EngineState",
    "EngineStats",
    "EventKind",
    "RemoteEntry",
    "remote_join",
]
