"""Remote mirror of a local folder.

This module provides:
- RemoteMirror: Turns upload/delete requests into remote store commands

Guarantees:
- Remote directories are created root-to-leaf, and only after a listing
  shows they are missing
- A remote path is prepared at most once per process (path cache)
- Directories are deleted post-order: every child before its parent
- Failures are logged and abort only the current call; nothing is retried
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import TYPE_CHECKING

from foldermirror.core.types import (
    RemoteConnectionError,
    RemoteEntry,
    RemoteOperationError,
    remote_join,
)

if TYPE_CHECKING:
    from foldermirror.remote.store import RemoteSession, RemoteStore

logger = logging.getLogger(__name__)


class RemoteMirror:
    """Remote site that mirrors a local folder.

    Not thread-safe: the current remote directory is shared state, so calls
    must come from a single thread (the watch loop).
    """

    def __init__(self, store: RemoteStore, mirror_root: str = "") -> None:
        """Initialize the mirror.

        Args:
            store: Remote store to open sessions on.
            mirror_root: Remote folder acting as the mirror's root ("" = server root).
        """
        self._store = store
        self._mirror_root = mirror_root
        self._working_directory: str | None = None
        self._created_paths: set[str] = set()

    @property
    def mirror_root(self) -> str:
        """Get the mirror root."""
        return self._mirror_root

    @property
    def current_directory(self) -> str | None:
        """Get the remote directory the session last navigated to."""
        return self._working_directory

    @property
    def cached_paths(self) -> frozenset[str]:
        """Get the remote paths already verified or created."""
        return frozenset(self._created_paths)

    # =========================================================================
    # Public operations
    # =========================================================================

    def upload(self, entry: Path, remote_path: str) -> bool:
        """Upload a file, or create a folder, at the mirror.

        A folder's contents are not uploaded, only the folder itself. Missing
        remote parent folders are created first.

        Args:
            entry: Local file or folder.
            remote_path: Folder of the entry, relative to the mirror root.

        Returns:
            True if the file was stored or the folder created.
        """
        path = remote_join(self._mirror_root, remote_path)
        name = entry.name

        logger.info("Preparing to upload '%s' to '%s'", name, remote_path)

        try:
            with self._store.session() as session:
                if path not in self._created_paths:
                    self._create_remote_path(session, path)
                    self._created_paths.add(path)

                if not self._change_directory(session, path):
                    return False

                if entry.is_file():
                    return self._store_file(session, entry, name)
                if entry.is_dir():
                    return self._make_directory(session, name)

                logger.warning("Skipping upload of '%s': no longer exists locally", entry)
                return False
        except RemoteConnectionError as e:
            logger.error("Upload of '%s' aborted: %s", name, e)
            return False

    def delete(self, name: str, remote_path: str) -> bool:
        """Delete a file or folder from the mirror.

        A folder's files and subfolders are deleted before the folder itself.

        Args:
            name: Name of the file or folder.
            remote_path: Folder of the entry, relative to the mirror root.

        Returns:
            True if the entry was found and fully deleted.
        """
        path = remote_join(self._mirror_root, remote_path)

        logger.info("Preparing to delete '%s' from '%s'", name, remote_path)

        try:
            with self._store.session() as session:
                if not self._change_directory(session, path):
                    return False

                entries = self._list(session)
                if entries is None:
                    logger.error("Delete failed. Could not list '%s'", path)
                    return False

                for entry in entries:
                    if entry.name == name:
                        if entry.is_directory:
                            return self._delete_folder(session, path, name)
                        return self._delete_file(session, name)

                logger.error("Failed to delete file or folder: %s, File not found.", name)
                return False
        except RemoteConnectionError as e:
            logger.error("Delete of '%s' aborted: %s", name, e)
            return False

    # =========================================================================
    # Session helpers
    # =========================================================================

    def _change_directory(self, session: RemoteSession, path: str) -> bool:
        """Change the current working directory and remember it."""
        try:
            session.change_directory(path)
        except RemoteOperationError as e:
            logger.error("Failed to change working directory to: %s (%s). Aborting.", path, e)
            return False

        logger.debug("Changed working directory to: %s", path)
        self._working_directory = path
        return True

    def _list(self, session: RemoteSession) -> list[RemoteEntry] | None:
        try:
            return session.list_entries()
        except RemoteOperationError as e:
            logger.error("Failed to list %s: %s", self._working_directory, e)
            return None

    def _store_file(self, session: RemoteSession, entry: Path, name: str) -> bool:
        try:
            with open(entry, "rb") as stream:
                session.store_file(name, stream)
        except OSError as e:
            logger.error("Failed to read '%s' for upload: %s", entry, e)
            return False
        except RemoteOperationError as e:
            logger.error("Failed to upload: %s (%s)", name, e)
            return False

        logger.info("Uploaded: %s", name)
        return True

    def _make_directory(self, session: RemoteSession, name: str) -> bool:
        try:
            session.make_directory(name)
        except RemoteOperationError as e:
            logger.warning("Failed to make directory: %s (%s)", name, e)
            return False

        logger.info("Made directory: %s", name)
        return True

    def _delete_file(self, session: RemoteSession, name: str) -> bool:
        """Delete a remote file from the current working directory."""
        try:
            session.delete_file(name)
        except RemoteOperationError as e:
            logger.error("Failed to delete file: %s (%s)", name, e)
            return False

        logger.info("Deleted file: %s", name)
        return True

    def _remove_directory(self, session: RemoteSession, name: str) -> bool:
        """Remove an empty remote folder from the current working directory."""
        try:
            session.remove_directory(name)
        except RemoteOperationError as e:
            logger.error("Failed to delete folder: %s (%s)", name, e)
            return False

        logger.info("Deleted folder: %s", name)
        return True

    # =========================================================================
    # Recursive operations
    # =========================================================================

    def _delete_folder(self, session: RemoteSession, parent: str, name: str) -> bool:
        """Delete a folder of ``parent``, contents first.

        The session returns to ``parent`` before the folder is removed.

        Returns:
            True if every child and the folder itself were deleted.
        """
        folder = posixpath.join(parent, name)
        if not self._change_directory(session, folder):
            logger.error("Not deleting folder '%s': cannot enter it", name)
            return False

        entries = self._list(session)
        ok = entries is not None
        for entry in entries or []:
            if entry.name in (".", ".."):
                continue
            if entry.is_directory:
                ok = self._delete_folder(session, folder, entry.name) and ok
            else:
                ok = self._delete_file(session, entry.name) and ok

        if not self._change_directory(session, parent):
            return False

        if not ok:
            logger.error("Not deleting folder '%s': some of its contents remain", name)
            return False

        return self._remove_directory(session, name)

    def _create_remote_path(self, session: RemoteSession, remote_path: str) -> None:
        """Ensure a remote path exists, creating missing folders root-to-leaf.

        Failures are logged; the caller's next change of directory decides
        whether the upload can go ahead.
        """
        segments = [segment for segment in remote_path.split("/") if segment]
        if not segments:
            return

        if not self._change_directory(session, "/"):
            return

        current = "/"
        for segment in segments:
            entries = self._list(session)
            existing = {entry.name for entry in entries or [] if entry.is_directory}

            if segment not in existing:
                try:
                    session.make_directory(segment)
                    logger.info("Created remote folder: %s", posixpath.join(current, segment))
                except RemoteOperationError as e:
                    logger.error(
                        "Failed to create remote path: %s (%s at %s)", remote_path, e, segment
                    )
                    return

            current = posixpath.join(current, segment)
            if not self._change_directory(session, current):
                return
