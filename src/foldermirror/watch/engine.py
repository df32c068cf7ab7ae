"""Recursive directory watch engine.

This module provides:
- DirectoryWatchEngine: Keeps one subscription per local directory and turns
  change batches into RemoteMirror calls on a single background thread
- Mirror: Protocol for the upload/delete sink the engine drives

Flow:
    DirectoryNotifier → DirectoryWatchEngine → RemoteMirror → RemoteStore

Batches are processed strictly one at a time, in the order the notifier
hands them out. Mirror calls block the loop, so the subscription map and the
mirror's remote state are only ever touched from one thread.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from foldermirror.core.config import DEFAULT_SETTLE_DELAY
from foldermirror.core.types import (
    ChangeEvent,
    EngineState,
    EngineStats,
    EventKind,
    NotifierClosedError,
    WatchError,
)

if TYPE_CHECKING:
    from foldermirror.watch.ignore import IgnorePatterns
    from foldermirror.watch.notifier import DirectoryNotifier, WatchKey

logger = logging.getLogger(__name__)

# Seconds dispose() waits for the watch loop to finish its current batch
DISPOSE_TIMEOUT = 30.0


class Mirror(Protocol):
    """Sink for mirror operations."""

    def upload(self, entry: Path, remote_path: str) -> bool: ...

    def delete(self, name: str, remote_path: str) -> bool: ...


class DirectoryWatchEngine:
    """Watches a folder and all of its subfolders and mirrors changes.

    Usage:
        engine = DirectoryWatchEngine(root, mirror)
        engine.initialize()   # raises WatchError on failure
        engine.start()
        ...
        engine.dispose()
    """

    def __init__(
        self,
        root: Path,
        mirror: Mirror,
        notifier: DirectoryNotifier | None = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        ignore_patterns: IgnorePatterns | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            root: Local folder to watch.
            mirror: Mirror receiving upload/delete calls.
            notifier: Directory notifier (default: WatchdogNotifier).
            settle_delay: Seconds to wait after taking a batch before processing it.
            ignore_patterns: Extra patterns to skip besides hidden entries.
        """
        self._root = Path(root).resolve()
        self._mirror = mirror
        if notifier is None:
            from foldermirror.watch.notifier import WatchdogNotifier

            notifier = WatchdogNotifier()
        self._notifier = notifier
        self._settle_delay = settle_delay
        self._ignore = ignore_patterns

        self._subscriptions: dict[WatchKey, Path] = {}
        self._stats = EngineStats()
        self._state = EngineState.IDLE
        self._initialized = False
        self._running = False
        self._stopping = threading.Event()
        self._state_lock = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def root(self) -> Path:
        """Get the watch root."""
        return self._root

    @property
    def state(self) -> EngineState:
        """Get the engine state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Check if the watch loop is running."""
        return self._state == EngineState.RUNNING

    @property
    def stats(self) -> EngineStats:
        """Get engine statistics."""
        return self._stats

    @property
    def subscriptions(self) -> dict[WatchKey, Path]:
        """Get a copy of the subscription map."""
        return dict(self._subscriptions)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(self) -> None:
        """Subscribe the root and every existing subdirectory, depth-first.

        Raises:
            WatchError: If the root or any subdirectory cannot be subscribed
                or listed. Subscriptions made so far are cancelled.
        """
        if self._initialized:
            return
        if not self._root.is_dir():
            raise WatchError(f"Watch path must be a directory: {self._root}")

        try:
            self._watch_tree(self._root)
        except OSError as e:
            for key in list(self._subscriptions):
                self._notifier.cancel(key)
            self._subscriptions.clear()
            raise WatchError(f"Failed to watch {self._root}: {e}") from e

        self._initialized = True
        logger.info(
            "Watching %s (%d directories)", self._root, len(self._subscriptions)
        )

    def _watch_tree(self, folder: Path) -> None:
        """Subscribe a folder, then recurse into its subfolders.

        Ignored folders are not descended into, matching how a newly created
        ignored folder is never subscribed.
        """
        self._subscribe(folder)
        for child in sorted(folder.iterdir()):
            if not child.is_dir() or child.is_symlink():
                continue
            if self._ignore is not None and self._ignore.should_ignore(
                child, self._root, is_directory=True
            ):
                logger.debug("Not watching ignored folder %s", child)
                continue
            self._watch_tree(child)

    def _subscribe(self, folder: Path) -> WatchKey:
        key = self._notifier.subscribe(folder)
        self._subscriptions[key] = folder
        return key

    def start(self) -> None:
        """Start the watch loop on a background thread.

        Raises:
            RuntimeError: If initialize() has not succeeded or the engine
                was already started.
        """
        with self._state_lock:
            if not self._initialized:
                raise RuntimeError("Engine must be initialized before starting")
            if self._state != EngineState.IDLE:
                raise RuntimeError(f"Engine cannot start from state {self._state.name}")

            self._running = True
            self._state = EngineState.RUNNING
            self._thread = threading.Thread(
                target=self.run, name="foldermirror-watch", daemon=True
            )
            self._thread.start()

    def dispose(self) -> None:
        """Stop the watch loop and release the notifier.

        A batch being processed is allowed to finish. Calling dispose more
        than once is a no-op.
        """
        with self._state_lock:
            if self._state in (EngineState.DISPOSING, EngineState.STOPPED):
                return
            self._running = False
            self._state = EngineState.DISPOSING

        self._stopping.set()
        self._notifier.close()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=DISPOSE_TIMEOUT)
            if thread.is_alive():
                # The loop marks the engine stopped once its batch completes
                logger.warning(
                    "Watch loop still busy after %.0fs, leaving it to finish",
                    DISPOSE_TIMEOUT,
                )
                return

        self._mark_stopped()

    def _mark_stopped(self) -> None:
        """Finish disposal: drop the subscription map and enter STOPPED."""
        with self._state_lock:
            if self._state != EngineState.DISPOSING:
                return
            self._subscriptions.clear()
            self._state = EngineState.STOPPED
        logger.info("Stopped watching %s", self._root)

    def __enter__(self) -> DirectoryWatchEngine:
        """Context manager entry."""
        self.initialize()
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.dispose()

    # =========================================================================
    # Watch loop
    # =========================================================================

    def run(self) -> None:
        """Take and process change batches until disposed."""
        while self._running:
            try:
                key, events = self._notifier.take_next_batch()
            except NotifierClosedError:
                break

            # Let the filesystem finish writing before mirroring
            if self._settle_delay > 0:
                self._stopping.wait(self._settle_delay)

            try:
                self.process_batch(key, events)
            except Exception:
                logger.exception("Unexpected error while processing %s", key)

        logger.debug("Watch loop exited")
        self._mark_stopped()

    def process_batch(self, key: WatchKey, events: list[ChangeEvent]) -> None:
        """Apply one batch of change events.

        Args:
            key: Subscription the batch belongs to.
            events: Events in arrival order.
        """
        folder = self._subscriptions.get(key)
        if folder is None:
            logger.warning("Received events for unknown subscription %s", key)
            return

        self._stats.batches_processed += 1
        remote_path = self.remote_path_for(folder)

        for event in events:
            self._process_event(key, folder, remote_path, event)

        # Reset key to receive more events, unless it was cancelled meanwhile
        if key in self._subscriptions:
            self._notifier.rearm(key)

    def remote_path_for(self, folder: Path) -> str:
        """Get a watched folder's path relative to the root, POSIX-style."""
        relative = folder.relative_to(self._root).as_posix()
        return "" if relative == "." else relative

    def _process_event(
        self, key: WatchKey, folder: Path, remote_path: str, event: ChangeEvent
    ) -> None:
        if event.kind == EventKind.OVERFLOW:
            self._stats.overflows += 1
            logger.warning(
                "Change events were lost in %s; remote copy may be out of date", folder
            )
            return

        entry = folder / event.name

        # A deleted folder loses its subscription whether or not it is mirrored
        if event.kind == EventKind.DELETED and event.is_directory:
            self._unwatch_directory(entry)

        if event.is_hidden:
            self._stats.skipped_hidden += 1
            return

        if self._ignore is not None and self._ignore.should_ignore(
            entry, self._root, event.is_directory
        ):
            self._stats.skipped_ignored += 1
            logger.debug("Ignoring %s", entry)
            return

        if event.kind in (EventKind.CREATED, EventKind.MODIFIED):
            if event.kind == EventKind.CREATED and event.is_directory:
                self._watch_new_directory(entry)

            self._stats.uploads += 1
            if not self._mirror.upload(entry, remote_path):
                self._stats.mirror_failures += 1

        elif event.kind == EventKind.DELETED:
            self._stats.deletes += 1
            if not self._mirror.delete(event.name, remote_path):
                self._stats.mirror_failures += 1

    def _watch_new_directory(self, folder: Path) -> None:
        """Subscribe a newly created directory. Failures leave it unwatched."""
        if folder in self._subscriptions.values():
            return
        try:
            self._subscribe(folder)
            logger.debug("Now watching %s", folder)
        except NotifierClosedError:
            # Shutting down; the folder is still mirrored below
            logger.debug("Not watching %s: notifier closed", folder)
        except OSError as e:
            self._stats.subscription_failures += 1
            logger.error("Failed to watch new directory %s: %s", folder, e)

    def _unwatch_directory(self, folder: Path) -> None:
        """Cancel the subscription of a deleted directory (not its descendants)."""
        for key, path in list(self._subscriptions.items()):
            if path == folder:
                self._notifier.cancel(key)
                del self._subscriptions[key]
                logger.debug("Stopped watching %s", folder)
                return
