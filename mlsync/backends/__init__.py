"""Backend transports — the two ways a masterlist can be fetched.

- ``svn``: the Subversion command-line client, run as a child process.
- ``git``: a Git repository driven through GitPython.

Both satisfy the ``Backend`` protocol and are picked once per
synchronization by ``select_backend``.
"""

from __future__ import annotations

from typing import Protocol

from mlsync.config import SyncConfig
from mlsync.models import Target

GIT_SUFFIX = ".git"

SVN = "svn"
GIT = "git"


class Backend(Protocol):
    """Capabilities the synchronizer needs from a transport."""

    name: str

    def local_revision(self) -> str:
        """Revision of the masterlist on disk without touching the network, or ''."""
        ...

    def ensure_working_copy(self) -> None:
        """Create the working copy if absent, correcting the remote if it drifted."""
        ...

    def update(self) -> None:
        """Advance the masterlist to the remote's latest revision."""
        ...

    def rollback_one(self) -> None:
        """Move the masterlist one revision further back in its history."""
        ...

    def current_revision(self) -> str:
        """Revision identifier of the masterlist as it is now on disk."""
        ...


def select_backend(url: str) -> str:
    """Return ``"git"`` for addresses ending in ``.git``, else ``"svn"``."""
    if url.lower().endswith(GIT_SUFFIX):
        return GIT
    return SVN


def create_backend(kind: str, target: Target, config: SyncConfig) -> Backend:
    """Instantiate the backend named by ``kind`` for ``target``."""
    if kind == GIT:
        from mlsync.backends.git import GitBackend

        return GitBackend(target, config)
    if kind == SVN:
        from mlsync.backends.svn import SvnBackend

        return SvnBackend(target, config)
    raise ValueError(f"Unknown backend: {kind}")
