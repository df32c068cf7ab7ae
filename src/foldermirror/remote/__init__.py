"""Remote side of the mirror.

Components:
- **RemoteMirror**: Upload/delete reconciliation against a remote store
- **RemoteStore / RemoteSession**: Capability the mirror consumes
- **FTPStore**: ftplib implementation of the remote store
"""

from foldermirror.remote.ftp import FTPSession, FTPStore, parse_list_line
from foldermirror.remote.mirror import RemoteMirror
from foldermirror.remote.store import RemoteSession, RemoteStore

__all__ = [
    "FTPSession",
    "FTPStore",
    "RemoteMirror",
    "RemoteSession",
    "RemoteStore",
    "parse_list_line",
]
