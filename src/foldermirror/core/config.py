"""Shared configuration classes for foldermirror.

This module defines the configuration used by the remote store adapter,
the watch engine and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_PORT = 21
DEFAULT_SETTLE_DELAY = 0.05
DEFAULT_SESSION_TTL = 10.0


@dataclass
class MirrorConfig:
    """Configuration for mirroring a local folder onto an FTP site.

    Attributes:
        address: Host name or IP address of the remote FTP site.
        username: User name to log in with.
        password: Password to log in with.
        port: Port number of the remote site (default 21).
        local_folder: Local folder to watch (default: current directory).
        remote_folder: Remote folder acting as the mirror root ("" = server root).
        use_tls: Whether to use explicit FTPS (AUTH TLS) with a protected data channel.
        timeout: Socket timeout in seconds.
        session_ttl: Seconds a connected session is reused before logging out.
        settle_delay: Seconds to wait after a change batch before processing it.
    """

    address: str
    username: str
    password: str = ""
    port: int = DEFAULT_PORT
    local_folder: Path = Path(".")
    remote_folder: str = ""
    use_tls: bool = False
    timeout: float = 30.0
    session_ttl: float = DEFAULT_SESSION_TTL
    settle_delay: float = DEFAULT_SETTLE_DELAY

    def __post_init__(self) -> None:
        """Normalize paths and validate numeric settings."""
        self.address = self.address.strip()
        self.local_folder = Path(self.local_folder).expanduser().resolve()
        self.remote_folder = self.remote_folder.replace("\\", "/").strip()

        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port number: {self.port}")
        if self.settle_delay < 0:
            raise ValueError("settle_delay must not be negative")

    @property
    def display_address(self) -> str:
        """Get a printable address for log and console messages.

        Returns:
            "user@host:port" string.
        """
        return f"{self.username}@{self.address}:{self.port}"
