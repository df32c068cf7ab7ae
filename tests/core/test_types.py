"""Tests for shared types."""

from __future__ import annotations

import pytest

from foldermirror.core.types import (
    ChangeEvent,
    EngineStats,
    EventKind,
    MirrorError,
    NotifierClosedError,
    RemoteConnectionError,
    RemoteOperationError,
    RemoteStoreError,
    WatchError,
    remote_join,
)


class TestRemoteJoin:
    """Tests for remote path normalization."""

    @pytest.mark.parametrize(
        ("parts", "expected"),
        [
            (("", ""), "/"),
            (("",), "/"),
            (("site", ""), "/site"),
            (("", "a/b"), "/a/b"),
            (("/site/", "a"), "/site/a"),
            (("site\\www", "a\\b"), "/site/www/a/b"),
            (("site", "./a//b/"), "/site/a/b"),
            (("site", "a/../b"), "/site/b"),
            (("..", "a"), "/a"),
        ],
    )
    def test_join(self, parts: tuple[str, ...], expected: str) -> None:
        assert remote_join(*parts) == expected


class TestChangeEvent:
    """Tests for ChangeEvent."""

    def test_defaults(self) -> None:
        """Should default to a visible file."""
        event = ChangeEvent(EventKind.CREATED, "x.txt")
        assert event.is_hidden is False
        assert event.is_directory is False

    def test_overflow(self) -> None:
        """Overflow markers should carry no name."""
        event = ChangeEvent.overflow()
        assert event.kind == EventKind.OVERFLOW
        assert event.name == ""

    def test_frozen(self) -> None:
        """Events should be immutable."""
        event = ChangeEvent(EventKind.DELETED, "x")
        with pytest.raises(AttributeError):
            event.name = "y"  # type: ignore[misc]

    def test_repr(self) -> None:
        event = ChangeEvent(EventKind.CREATED, "sub", is_directory=True, is_hidden=True)
        assert repr(event) == "ChangeEvent(CREATED, name='sub', flags='dh')"


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_remote_errors(self) -> None:
        assert issubclass(RemoteConnectionError, RemoteStoreError)
        assert issubclass(RemoteOperationError, RemoteStoreError)
        assert issubclass(RemoteStoreError, MirrorError)

    def test_watch_error_is_os_error(self) -> None:
        assert issubclass(WatchError, OSError)
        assert issubclass(WatchError, MirrorError)

    def test_notifier_closed(self) -> None:
        assert issubclass(NotifierClosedError, MirrorError)


def test_engine_stats_start_at_zero() -> None:
    stats = EngineStats()
    assert stats.uploads == stats.deletes == stats.overflows == 0
