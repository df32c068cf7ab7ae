"""Per-directory change notifier built on watchdog.

This module provides:
- DirectoryNotifier: Protocol the watch engine consumes
- WatchKey: Opaque subscription handle for one watched directory
- WatchdogNotifier: Notifier backed by a watchdog Observer

Each subscribed directory gets its own non-recursive watchdog watch. Events
are translated to ChangeEvent objects, buffered on the directory's key, and
the key is queued once ("signalled"). A consumer takes the key with all of
its buffered events, processes them, then re-arms the key. Events arriving
in between keep accumulating on the key and are delivered on the next take.

Usage:
    notifier = WatchdogNotifier()
    key = notifier.subscribe(Path("/data"))
    key, events = notifier.take_next_batch()  # blocks
    ...
    notifier.rearm(key)
    notifier.close()
"""

from __future__ import annotations

import contextlib
import logging
import queue
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from foldermirror.core.types import ChangeEvent, EventKind, NotifierClosedError
from foldermirror.watch.ignore import is_hidden

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver, ObservedWatch

logger = logging.getLogger(__name__)

# Buffered events per key before the batch collapses into an overflow marker
MAX_PENDING_EVENTS = 512


class DirectoryNotifier(Protocol):
    """Batched, per-directory change notifications."""

    def subscribe(self, path: Path) -> WatchKey: ...

    def cancel(self, key: WatchKey) -> None: ...

    def take_next_batch(self) -> tuple[WatchKey, list[ChangeEvent]]: ...

    def rearm(self, key: WatchKey) -> None: ...

    def close(self) -> None: ...


class WatchKey:
    """Subscription handle for one watched directory.

    Keys compare by identity, so they can be used as dictionary keys even
    when two subscriptions point to the same path over time.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.watch: ObservedWatch | None = None
        self.valid = True
        self.signalled = False
        self.pending: list[ChangeEvent] = []

    def __repr__(self) -> str:
        state = "valid" if self.valid else "cancelled"
        return f"WatchKey({str(self.path)!r}, {state})"


def _decode(path: str | bytes) -> str:
    if isinstance(path, bytes):
        return path.decode("utf-8", errors="replace")
    return path


class _KeyEventHandler(FileSystemEventHandler):
    """Translates watchdog events for one directory into ChangeEvents."""

    def __init__(self, notifier: WatchdogNotifier, key: WatchKey) -> None:
        super().__init__()
        self._notifier = notifier
        self._key = key

    def _child(self, raw_path: str | bytes) -> Path | None:
        """Return the path if it is a direct child of the key's directory."""
        path = Path(_decode(raw_path))
        if path.parent != self._key.path or not path.name:
            return None
        return path

    def _emit(self, kind: EventKind, path: Path, is_directory: bool) -> None:
        event = ChangeEvent(
            kind=kind,
            name=path.name,
            is_hidden=is_hidden(path),
            is_directory=is_directory,
        )
        self._notifier._post(self._key, event)

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Handle any watchdog event for this directory."""
        is_directory = event.is_directory

        if isinstance(event, FileMovedEvent | DirMovedEvent):
            src = self._child(event.src_path)
            dest = self._child(event.dest_path)
            if src is not None:
                self._emit(EventKind.DELETED, src, is_directory)
            if dest is not None:
                self._emit(EventKind.CREATED, dest, is_directory)
            return

        if isinstance(event, FileCreatedEvent | DirCreatedEvent):
            kind = EventKind.CREATED
        elif isinstance(event, FileModifiedEvent | DirModifiedEvent):
            kind = EventKind.MODIFIED
        elif isinstance(event, FileDeletedEvent | DirDeletedEvent):
            kind = EventKind.DELETED
        else:
            # Opened/closed notifications carry nothing to mirror
            return

        path = self._child(event.src_path)
        if path is not None:
            self._emit(kind, path, is_directory)


class WatchdogNotifier:
    """Directory notifier backed by a watchdog Observer.

    Thread-safe: watchdog emitter threads post events while a single
    consumer thread takes batches.
    """

    def __init__(
        self,
        max_pending_events: int = MAX_PENDING_EVENTS,
        observer: BaseObserver | None = None,
    ) -> None:
        """Initialize and start the underlying observer.

        Args:
            max_pending_events: Buffered events per key before overflow.
            observer: Observer to use (default: platform watchdog Observer).
        """
        self._max_pending = max_pending_events
        self._lock = threading.Lock()
        self._ready: queue.Queue[WatchKey | None] = queue.Queue()
        self._keys: set[WatchKey] = set()
        self._closed = False

        self._observer: BaseObserver = observer or Observer()
        self._observer.daemon = True
        self._observer.start()

    @property
    def is_closed(self) -> bool:
        """Check if the notifier is closed."""
        return self._closed

    def subscribe(self, path: Path) -> WatchKey:
        """Start watching the direct children of a directory.

        Args:
            path: Directory to watch.

        Returns:
            New key for the directory.

        Raises:
            NotifierClosedError: If the notifier is closed.
            NotADirectoryError: If path is not a directory.
            OSError: If the platform watch cannot be created.
        """
        if self._closed:
            raise NotifierClosedError("Notifier is closed")

        path = Path(path)
        if not path.is_dir():
            raise NotADirectoryError(f"Not a directory: {path}")

        key = WatchKey(path)
        handler = _KeyEventHandler(self, key)
        key.watch = self._observer.schedule(handler, str(path), recursive=False)

        with self._lock:
            self._keys.add(key)

        logger.debug("Subscribed %s", path)
        return key

    def cancel(self, key: WatchKey) -> None:
        """Stop watching a directory. Pending events of the key are discarded."""
        with self._lock:
            if not key.valid:
                return
            key.valid = False
            key.pending.clear()
            self._keys.discard(key)
            watch = key.watch

        if watch is not None:
            # KeyError: already removed by watchdog (directory vanished)
            with contextlib.suppress(KeyError):
                self._observer.unschedule(watch)
        logger.debug("Cancelled %s", key.path)

    def take_next_batch(self) -> tuple[WatchKey, list[ChangeEvent]]:
        """Block until a key is signalled and take its buffered events.

        Returns:
            The signalled key and its events in arrival order.

        Raises:
            NotifierClosedError: If the notifier is (or gets) closed.
        """
        while True:
            key = self._ready.get()
            if key is None or self._closed:
                # Let any other waiter see the shutdown too
                self._ready.put(None)
                raise NotifierClosedError("Notifier is closed")

            with self._lock:
                if not key.valid:
                    continue
                events = key.pending
                key.pending = []
            return key, events

    def rearm(self, key: WatchKey) -> None:
        """Allow a taken key to be signalled again.

        If events arrived while the key was being processed, the key is
        queued again immediately.
        """
        with self._lock:
            if not key.valid or self._closed:
                return
            if key.pending:
                self._ready.put(key)
            else:
                key.signalled = False

    def close(self) -> None:
        """Stop the observer and wake up any blocked consumer."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for key in self._keys:
                key.valid = False
            self._keys.clear()

        self._ready.put(None)
        self._observer.stop()
        if self._observer.is_alive() and self._observer is not threading.current_thread():
            self._observer.join(timeout=5.0)
        logger.debug("Notifier closed")

    def _post(self, key: WatchKey, event: ChangeEvent) -> None:
        """Buffer an event on its key and signal the key if needed."""
        with self._lock:
            if not key.valid or self._closed:
                return

            if len(key.pending) >= self._max_pending:
                if key.pending[-1].kind != EventKind.OVERFLOW:
                    key.pending.append(ChangeEvent.overflow())
                    logger.warning("Event buffer full for %s, dropping events", key.path)
                return

            key.pending.append(event)
            if not key.signalled:
                key.signalled = True
                self._ready.put(key)

    def __enter__(self) -> WatchdogNotifier:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()
