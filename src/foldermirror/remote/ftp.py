"""FTP remote store.

This module provides:
- FTPStore: RemoteStore over ftplib with short-lived connection reuse
- FTPSession: RemoteSession wrapping one logged-in ftplib client
- parse_list_line: Parser for Unix and DOS style LIST output

A connected client is reused for ``session_ttl`` seconds after it was
opened, so a burst of mirror calls shares one login. Once the TTL has
passed, the client is logged out when its session ends.
"""

from __future__ import annotations

import ftplib
import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager, suppress
from typing import BinaryIO, TypeVar

from foldermirror.core.config import MirrorConfig
from foldermirror.core.types import (
    RemoteConnectionError,
    RemoteEntry,
    RemoteOperationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors that mean the control connection itself is gone
_CONNECTION_ERRORS = (OSError, EOFError)


def parse_list_line(line: str) -> RemoteEntry | None:
    """Parse one line of LIST output.

    Supports Unix ("drwxr-xr-x 2 user group 4096 Jan 1 12:00 name") and
    DOS ("01-01-24  12:00PM  <DIR>  name") formats.

    Args:
        line: Raw LIST line.

    Returns:
        The entry, or None for headers ("total 12") and unparseable lines.
    """
    line = line.rstrip("\r\n")
    if not line or line.startswith("total "):
        return None

    if line[0] in "-dlbcps":
        parts = line.split(None, 8)
        if len(parts) < 9:
            return None
        name = parts[8]
        if line[0] == "l" and " -> " in name:
            name = name.split(" -> ", 1)[0]
        return RemoteEntry(name=name, is_directory=line[0] == "d")

    parts = line.split(None, 3)
    if len(parts) == 4 and parts[0][:1].isdigit():
        return RemoteEntry(name=parts[3], is_directory=parts[2].upper() == "<DIR>")

    return None


class FTPSession:
    """RemoteSession over an ftplib client."""

    def __init__(self, ftp: ftplib.FTP, on_connection_lost: Callable[[], None]) -> None:
        """Initialize the session.

        Args:
            ftp: Connected and logged-in client.
            on_connection_lost: Called when the control connection breaks.
        """
        self._ftp = ftp
        self._on_connection_lost = on_connection_lost
        self._mlsd_supported = True

    def _call(self, description: str, func: Callable[[], T]) -> T:
        """Run an ftplib call, translating its errors."""
        try:
            return func()
        except ftplib.all_errors as e:
            if isinstance(e, _CONNECTION_ERRORS):
                self._on_connection_lost()
            raise RemoteOperationError(f"{description} failed: {e}") from e

    def change_directory(self, path: str) -> None:
        self._call(f"CWD {path}", lambda: self._ftp.cwd(path))

    def list_entries(self) -> list[RemoteEntry]:
        """List the current directory, preferring MLSD over LIST."""
        if self._mlsd_supported:
            try:
                facts = list(self._ftp.mlsd(facts=["type"]))
            except ftplib.error_perm as e:
                # 500/502: command not understood or not implemented
                if not str(e).startswith(("500", "502")):
                    raise RemoteOperationError(f"MLSD failed: {e}") from e
                logger.debug("Server does not support MLSD, falling back to LIST")
                self._mlsd_supported = False
            except ftplib.all_errors as e:
                if isinstance(e, _CONNECTION_ERRORS):
                    self._on_connection_lost()
                raise RemoteOperationError(f"MLSD failed: {e}") from e
            else:
                return [
                    RemoteEntry(name=name, is_directory=entry.get("type") == "dir")
                    for name, entry in facts
                    if entry.get("type") not in ("cdir", "pdir")
                ]

        lines: list[str] = []
        self._call("LIST", lambda: self._ftp.retrlines("LIST", lines.append))
        entries = []
        for line in lines:
            entry = parse_list_line(line)
            if entry is not None and entry.name not in (".", ".."):
                entries.append(entry)
        return entries

    def make_directory(self, name: str) -> None:
        self._call(f"MKD {name}", lambda: self._ftp.mkd(name))

    def remove_directory(self, name: str) -> None:
        self._call(f"RMD {name}", lambda: self._ftp.rmd(name))

    def delete_file(self, name: str) -> None:
        self._call(f"DELE {name}", lambda: self._ftp.delete(name))

    def store_file(self, name: str, stream: BinaryIO) -> None:
        self._call(f"STOR {name}", lambda: self._ftp.storbinary(f"STOR {name}", stream))


class FTPStore:
    """RemoteStore for a plain or TLS FTP site."""

    def __init__(
        self,
        config: MirrorConfig,
        ftp_factory: Callable[..., ftplib.FTP] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            config: Connection settings.
            ftp_factory: Client factory (default: ftplib.FTP or ftplib.FTP_TLS).
        """
        self._config = config
        if ftp_factory is None:
            ftp_factory = ftplib.FTP_TLS if config.use_tls else ftplib.FTP
        self._ftp_factory = ftp_factory
        self._client: ftplib.FTP | None = None
        self._expires = 0.0

    @property
    def address(self) -> str:
        """Get the remote address."""
        return self._config.address

    @property
    def port(self) -> int:
        """Get the remote port."""
        return self._config.port

    @property
    def username(self) -> str:
        """Get the login user name."""
        return self._config.username

    @property
    def is_connected(self) -> bool:
        """Check if a client is currently connected."""
        return self._client is not None and self._client.sock is not None

    @contextmanager
    def session(self) -> Iterator[FTPSession]:
        """Open (or reuse) a logged-in session.

        Raises:
            RemoteConnectionError: If connecting or logging in fails.
        """
        ftp = self._connect()
        try:
            yield FTPSession(ftp, on_connection_lost=self._discard)
        finally:
            self._disconnect()

    def validate(self) -> bool:
        """Validate address, user name and password by connecting.

        Returns:
            True if a session could be opened.
        """
        try:
            with self.session():
                return True
        except RemoteConnectionError as e:
            logger.error("Connection to %s failed: %s", self._config.display_address, e)
            return False

    def close(self) -> None:
        """Log out immediately, regardless of the session TTL."""
        self._expires = 0.0
        self._disconnect()

    def _connect(self) -> ftplib.FTP:
        # Reuse the current client while it is connected and not expired
        client = self._client
        if client is not None and client.sock is not None and time.monotonic() < self._expires:
            return client

        if self._client is not None:
            self._expires = 0.0
            self._disconnect()

        self._expires = time.monotonic() + self._config.session_ttl

        ftp = self._ftp_factory()
        try:
            ftp.connect(self._config.address, self._config.port, timeout=self._config.timeout)
            ftp.login(self._config.username, self._config.password)
            if isinstance(ftp, ftplib.FTP_TLS):
                ftp.prot_p()
        except ftplib.all_errors as e:
            with suppress(OSError):
                ftp.close()
            raise RemoteConnectionError(
                f"Could not connect to {self._config.display_address}: {e}"
            ) from e

        logger.info("Connected to %s.", self._config.address)
        logger.debug("Server welcome: %s", ftp.getwelcome())
        self._client = ftp
        return ftp

    def _disconnect(self) -> None:
        """Log out once the session TTL has passed."""
        if self._client is None:
            return

        if self._client.sock is None:
            self._client = None
            return

        if time.monotonic() <= self._expires:
            return

        try:
            self._client.quit()
        except ftplib.all_errors as e:
            logger.debug("Error during logout: %s", e)
            self._client.close()
        self._client = None

    def _discard(self) -> None:
        """Drop a client whose control connection broke."""
        if self._client is not None:
            self._client.close()
            self._client = None
