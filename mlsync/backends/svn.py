"""Subversion backend — drives the ``svn`` client as a child process.

Every operation runs one command with stdout and stderr merged, waits for
it to exit, and reads all of its output. Exit code zero is success.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path

from mlsync.backends import SVN
from mlsync.config import SyncConfig
from mlsync.errors import HistoryExhaustedError, TransportError, TransportSetupError
from mlsync.models import CommandResult, Target

logger = logging.getLogger(__name__)

_REVISION_LABEL = "Revision: "
_DATE_LABEL = "Last Changed Date: "
_URL_LABEL = "URL: "
_LOG_ENTRY = re.compile(r"^r\d+ \|", re.MULTILINE)


def get_revision(output: str) -> str:
    """Extract ``"<revision> (<date>)"`` from ``svn info`` output.

    Returns an empty string when the output has no ``Revision:`` field,
    which callers treat as "no revision information available".
    """
    start = output.rfind(_REVISION_LABEL)
    if start == -1:
        return ""

    end = output.find("\n", start)
    if end == -1:
        end = len(output)
    revision = output[start + len(_REVISION_LABEL):end].strip()

    date_start = output.find(_DATE_LABEL, end)
    if date_start == -1:
        return revision

    date_start += len(_DATE_LABEL)
    date = output[date_start:].split(None, 1)
    if not date:
        return revision
    return f"{revision} ({date[0]})"


def get_url(output: str) -> str:
    """Extract the ``URL:`` field from ``svn info`` output, or ''."""
    for line in output.splitlines():
        if line.startswith(_URL_LABEL):
            return line[len(_URL_LABEL):].strip()
    return ""


class SvnBackend:
    """Subversion transport for a single masterlist."""

    name = SVN

    def __init__(self, target: Target, config: SyncConfig | None = None):
        self.target = target
        self.config = config or SyncConfig()
        self.svn_path = self.config.svn_path

    @property
    def remote_parent(self) -> str:
        """The directory URL holding the masterlist on the server."""
        return self.target.url.rsplit("/", 1)[0]

    # ── Primitive commands ──────────────────────────────────────────

    def run(self, *args: str) -> CommandResult:
        """Run ``svn`` with ``args`` and capture its combined output.

        Raises:
            TransportSetupError: If the process could not be started.
            TransportError: If the process outlived ``command_timeout``.
        """
        command = [self.svn_path, *args]
        logger.debug("Running: %s", " ".join(command))
        try:
            proc = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                timeout=self.config.command_timeout,
            )
        except subprocess.TimeoutExpired as e:
            logger.error("Subversion timed out after %ss: %s", e.timeout, " ".join(command))
            raise TransportError(
                f"run 'svn {args[0]}' on" if args else "run svn on",
                f"timed out after {e.timeout}s",
            ) from e
        except OSError as e:
            logger.error("Could not create Subversion process: %s", e)
            raise TransportSetupError(f"Could not create Subversion process: {e}") from e

        return CommandResult(
            success=proc.returncode == 0,
            output=proc.stdout or "",
            exit_code=proc.returncode,
        )

    def info(self, path: str | Path) -> CommandResult:
        return self.run("info", str(path))

    def checkout(self, remote_parent: str, target_dir: str | Path) -> CommandResult:
        return self.run("checkout", "--depth", "empty", remote_parent, str(target_dir))

    def relocate(self, remote_parent: str, target_dir: str | Path) -> CommandResult:
        return self.run("relocate", remote_parent, str(target_dir))

    def update_path(self, path: str | Path) -> CommandResult:
        return self.run("update", str(path))

    def rollback_path(self, path: str | Path) -> CommandResult:
        return self.run("update", "--revision", "PREV", str(path))

    def log_back(self, path: str | Path, limit: int = 2) -> CommandResult:
        """Log the newest ``limit`` changes to ``path`` at or before its BASE revision."""
        return self.run("log", "--quiet", "--limit", str(limit), "--revision", "BASE:1", str(path))

    # ── Backend protocol ────────────────────────────────────────────

    def local_revision(self) -> str:
        result = self.info(self.target.masterlist_path)
        if not result.success:
            return ""
        return get_revision(result.output)

    def ensure_working_copy(self) -> None:
        logger.debug(
            "Checking to see if the working copy is set up for the masterlist at %s",
            self.target.masterlist_path,
        )
        result = self.info(self.target.masterlist_path)

        if not result.success:
            logger.info("Working copy is not set up, checking out %s", self.remote_parent)
            self.target.repo_dir.mkdir(parents=True, exist_ok=True)
            checkout = self.checkout(self.remote_parent, self.target.repo_dir)
            if not checkout.success:
                logger.error("Subversion could not perform a checkout. Details: %s", checkout.output)
                raise TransportError("check out", checkout.output)
            return

        recorded = get_url(result.output)
        if recorded and recorded != self.target.url:
            logger.info(
                "Working copy URL %s differs from %s, relocating", recorded, self.target.url
            )
            relocate = self.relocate(self.remote_parent, self.target.repo_dir)
            if not relocate.success:
                logger.error("Subversion could not relocate the working copy. Details: %s", relocate.output)
                raise TransportError("relocate", relocate.output)

    def update(self) -> None:
        logger.debug("Performing Subversion update of masterlist")
        result = self.update_path(self.target.masterlist_path)
        if not result.success:
            logger.error("Subversion could not update the masterlist. Details: %s", result.output)
            raise TransportError("update", result.output)

    def rollback_one(self) -> None:
        # PREV below the revision that added the file deletes it from the working copy.
        log = self.log_back(self.target.masterlist_path)
        if not log.success:
            logger.error("Subversion could not read the masterlist log. Details: %s", log.output)
            raise TransportError("read the history of", log.output)
        if len(_LOG_ENTRY.findall(log.output)) < 2:
            logger.error("No revision of %s older than its current one", self.target.masterlist_name)
            raise HistoryExhaustedError(
                f"No earlier revision of {self.target.masterlist_name} to roll back to."
            )

        logger.debug("Rolling the masterlist back one revision")
        result = self.rollback_path(self.target.masterlist_path)
        if not result.success:
            logger.error("Subversion could not roll back the masterlist. Details: %s", result.output)
            raise TransportError("roll back", result.output)

    def current_revision(self) -> str:
        result = self.info(self.target.masterlist_path)
        if not result.success:
            logger.error(
                "Subversion could not read the masterlist revision number. Details: %s",
                result.output,
            )
            raise TransportError("read the revision of", result.output)
        return get_revision(result.output)
