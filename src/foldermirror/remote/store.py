"""Remote store capability consumed by the mirror.

A RemoteStore hands out sessions; a session is a live, logged-in connection
with a current working directory. Every failing session command raises a
RemoteOperationError, and failing to open a session raises a
RemoteConnectionError.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import BinaryIO, Protocol

from foldermirror.core.types import RemoteEntry


class RemoteSession(Protocol):
    """Operations available on an open remote session."""

    def change_directory(self, path: str) -> None: ...

    def list_entries(self) -> list[RemoteEntry]: ...

    def make_directory(self, name: str) -> None: ...

    def remove_directory(self, name: str) -> None: ...

    def delete_file(self, name: str) -> None: ...

    def store_file(self, name: str, stream: BinaryIO) -> None: ...


class RemoteStore(Protocol):
    """Source of remote sessions."""

    def session(self) -> AbstractContextManager[RemoteSession]: ...
