"""Shared fixtures: in-memory remote store and scripted directory notifier."""

from __future__ import annotations

import posixpath
import queue
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

import pytest

from foldermirror.core.types import (
    ChangeEvent,
    NotifierClosedError,
    RemoteConnectionError,
    RemoteEntry,
    RemoteOperationError,
)

Node = dict[str, "Node"] | bytes


class FakeRemoteStore:
    """Remote store keeping a directory tree in memory.

    Every session command is recorded in ``calls`` as ``(operation, path)``,
    where path is the absolute remote path the command acted on. Commands can
    be made to fail by adding ``(operation, path)`` to ``failures``.
    """

    def __init__(self) -> None:
        self.root: dict[str, Node] = {}
        self.cwd = "/"
        self.calls: list[tuple[str, str]] = []
        self.failures: set[tuple[str, str]] = set()
        self.connect_error = False
        self.sessions_opened = 0

    @contextmanager
    def session(self) -> Iterator[FakeRemoteSession]:
        if self.connect_error:
            raise RemoteConnectionError("connection refused")
        self.sessions_opened += 1
        yield FakeRemoteSession(self)

    # Helpers for tests

    def resolve(self, path: str) -> str:
        if not path.startswith("/"):
            path = posixpath.join(self.cwd, path)
        return posixpath.normpath(path).replace("//", "/")

    def node(self, path: str) -> Node | None:
        current: Node = self.root
        for segment in [s for s in self.resolve(path).split("/") if s]:
            if not isinstance(current, dict) or segment not in current:
                return None
            current = current[segment]
        return current

    def add_dir(self, path: str) -> None:
        current = self.root
        for segment in [s for s in path.split("/") if s]:
            current = current.setdefault(segment, {})  # type: ignore[assignment]

    def add_file(self, path: str, data: bytes = b"") -> None:
        parent, name = posixpath.split(path)
        self.add_dir(parent)
        folder = self.node(parent)
        assert isinstance(folder, dict)
        folder[name] = data

    def exists(self, path: str) -> bool:
        return self.node(path) is not None

    def ops(self, operation: str) -> list[str]:
        return [path for op, path in self.calls if op == operation]


class FakeRemoteSession:
    """Session over a FakeRemoteStore."""

    def __init__(self, store: FakeRemoteStore) -> None:
        self._store = store

    def _record(self, operation: str, path: str) -> None:
        self._store.calls.append((operation, path))
        if (operation, path) in self._store.failures:
            raise RemoteOperationError(f"{operation} {path} failed")

    def _parent_and_name(self, name: str) -> tuple[dict[str, Node], str]:
        folder = self._store.node(self._store.cwd)
        assert isinstance(folder, dict)
        return folder, self._store.resolve(name)

    def change_directory(self, path: str) -> None:
        target = self._store.resolve(path)
        self._record("cwd", target)
        if not isinstance(self._store.node(target), dict):
            raise RemoteOperationError(f"550 {target}: No such directory")
        self._store.cwd = target

    def list_entries(self) -> list[RemoteEntry]:
        self._record("list", self._store.cwd)
        folder = self._store.node(self._store.cwd)
        assert isinstance(folder, dict)
        return [
            RemoteEntry(name=name, is_directory=isinstance(child, dict))
            for name, child in sorted(folder.items())
        ]

    def make_directory(self, name: str) -> None:
        folder, path = self._parent_and_name(name)
        self._record("mkd", path)
        if name in folder:
            raise RemoteOperationError(f"550 {name}: File exists")
        folder[name] = {}

    def remove_directory(self, name: str) -> None:
        folder, path = self._parent_and_name(name)
        self._record("rmd", path)
        child = folder.get(name)
        if not isinstance(child, dict):
            raise RemoteOperationError(f"550 {name}: No such directory")
        if child:
            raise RemoteOperationError(f"550 {name}: Directory not empty")
        del folder[name]

    def delete_file(self, name: str) -> None:
        folder, path = self._parent_and_name(name)
        self._record("dele", path)
        if not isinstance(folder.get(name), bytes):
            raise RemoteOperationError(f"550 {name}: No such file")
        del folder[name]

    def store_file(self, name: str, stream: BinaryIO) -> None:
        folder, path = self._parent_and_name(name)
        self._record("stor", path)
        folder[name] = stream.read()


class FakeKey:
    """Opaque handle handed out by FakeNotifier."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def __repr__(self) -> str:
        return f"FakeKey({str(self.path)!r})"


class FakeNotifier:
    """Directory notifier driven by the test.

    Batches pushed with ``push`` are returned by ``take_next_batch`` in order.
    Subscribing a path listed in ``failing_paths`` raises OSError.
    """

    def __init__(self) -> None:
        self.subscribed: list[FakeKey] = []
        self.cancelled: list[FakeKey] = []
        self.rearmed: list[FakeKey] = []
        self.failing_paths: set[Path] = set()
        self.closed = False
        self.log: list[tuple[str, object]] = []
        self._batches: queue.Queue[tuple[FakeKey, list[ChangeEvent]] | None] = queue.Queue()

    def subscribe(self, path: Path) -> FakeKey:
        if path in self.failing_paths:
            raise PermissionError(f"Permission denied: {path}")
        key = FakeKey(path)
        self.subscribed.append(key)
        self.log.append(("subscribe", path))
        return key

    def cancel(self, key: FakeKey) -> None:
        self.cancelled.append(key)
        self.log.append(("cancel", key.path))

    def take_next_batch(self) -> tuple[FakeKey, list[ChangeEvent]]:
        item = self._batches.get()
        if item is None:
            self._batches.put(None)
            raise NotifierClosedError("closed")
        return item

    def rearm(self, key: FakeKey) -> None:
        self.rearmed.append(key)

    def close(self) -> None:
        self.closed = True
        self._batches.put(None)

    def push(self, key: FakeKey, events: list[ChangeEvent]) -> None:
        self._batches.put((key, events))


class RecordingMirror:
    """Mirror that records calls instead of talking to a remote store."""

    def __init__(self, log: list[tuple[str, object]] | None = None) -> None:
        self.calls: list[tuple[str, object, str]] = []
        self.log = log if log is not None else []

    def upload(self, entry: Path, remote_path: str) -> bool:
        self.calls.append(("upload", entry, remote_path))
        self.log.append(("upload", entry))
        return True

    def delete(self, name: str, remote_path: str) -> bool:
        self.calls.append(("delete", name, remote_path))
        self.log.append(("delete", name))
        return True


@pytest.fixture
def remote_store() -> FakeRemoteStore:
    """Create an empty in-memory remote store."""
    return FakeRemoteStore()


@pytest.fixture
def notifier() -> FakeNotifier:
    """Create a scripted notifier."""
    return FakeNotifier()


@pytest.fixture
def watch_root(tmp_path: Path) -> Path:
    """Create an empty watch root directory."""
    root = tmp_path / "a"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def recording_mirror(notifier: FakeNotifier) -> RecordingMirror:
    """Create a mirror that shares its call log with the notifier."""
    return RecordingMirror(log=notifier.log)
