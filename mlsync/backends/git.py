"""Git backend — keeps a sparse, single-file clone in step with its remote.

The working copy only materializes the masterlist (sparse checkout). Rolling
back checks out an older version of that one file without moving ``HEAD``;
the next update hard-resets to ``HEAD`` before pulling, which undoes it.
"""

from __future__ import annotations

import logging
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from git import (
    GitCommandError,
    InvalidGitRepositoryError,
    NoSuchPathError,
    Repo,
)
from git.exc import GitError
from git.objects import Commit

from mlsync.backends import GIT
from mlsync.config import SyncConfig
from mlsync.errors import HistoryExhaustedError, TransportError, TransportSetupError
from mlsync.models import Target

logger = logging.getLogger(__name__)

SPARSE_CHECKOUT_FILE = Path("info") / "sparse-checkout"


def format_revision(commit: Commit) -> str:
    """``"<short sha> (<commit date>)"`` for a commit."""
    return f"{commit.hexsha[:7]} ({commit.committed_datetime.strftime('%Y-%m-%d')})"


class GitBackend:
    """GitPython transport for a single masterlist."""

    name = GIT

    def __init__(self, target: Target, config: SyncConfig | None = None):
        self.target = target
        self.config = config or SyncConfig()
        self._history: list[Commit] | None = None
        self._offset = 0

    @property
    def git_dir(self) -> Path:
        return self.target.repo_dir / ".git"

    def exists(self) -> bool:
        return self.git_dir.is_dir()

    # ── Handles ─────────────────────────────────────────────────────

    @contextmanager
    def _open(self) -> Iterator[Repo]:
        """Open the working copy; the handle is closed on every exit path."""
        try:
            repo = Repo(self.target.repo_dir)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            logger.error("Could not open Git repository at %s: %s", self.target.repo_dir, e)
            raise TransportSetupError(
                f"Could not open Git repository at {self.target.repo_dir}: {e}"
            ) from e
        with repo:
            yield repo

    @contextmanager
    def _step(self, step: str) -> Iterator[None]:
        """Turn any GitPython failure inside the block into a ``TransportError``."""
        try:
            yield
        except GitCommandError as e:
            details = (e.stderr or e.stdout or str(e)).strip()
            logger.error("Git could not %s the masterlist: %s", step, details)
            raise TransportError(step, details) from e
        except (GitError, ValueError) as e:
            logger.error("Git could not %s the masterlist: %s", step, e)
            raise TransportError(step, str(e)) from e

    # ── Working copy setup ──────────────────────────────────────────

    def ensure_working_copy(self) -> None:
        if self.exists():
            self._sync_remote_url()
        else:
            self._init_repository()

    def _sync_remote_url(self) -> None:
        remote_name = self.config.remote_name
        with self._open() as repo, self._step("configure the remote for"):
            if remote_name not in [r.name for r in repo.remotes]:
                logger.info("Repository has no '%s' remote, creating it", remote_name)
                repo.create_remote(remote_name, self.target.url)
                return

            remote = repo.remote(remote_name)
            if remote.url != self.target.url:
                logger.info(
                    "Remote URL %s differs from %s, updating it", remote.url, self.target.url
                )
                remote.set_url(self.target.url)

    def _init_repository(self) -> None:
        logger.info("No repository at %s, initialising one", self.target.repo_dir)
        try:
            repo = Repo.init(self.target.repo_dir, mkdir=True)
        except (GitError, OSError) as e:
            logger.error("Could not initialise Git repository: %s", e)
            raise TransportSetupError(f"Could not initialise Git repository: {e}") from e

        try:
            with repo, self._step("initialise the repository for"):
                repo.create_remote(self.config.remote_name, self.target.url)

                with repo.config_writer() as cfg:
                    cfg.set_value("core", "sparseCheckout", "true")

                sparse_file = Path(repo.git_dir) / SPARSE_CHECKOUT_FILE
                sparse_file.parent.mkdir(parents=True, exist_ok=True)
                sparse_file.write_text(self.target.masterlist_name + "\n", encoding="utf-8")
        except (TransportError, OSError):
            # A half-configured .git would be taken as a finished one next time.
            shutil.rmtree(self.git_dir, ignore_errors=True)
            raise

    # ── Backend protocol ────────────────────────────────────────────

    def update(self) -> None:
        with self._open() as repo, self._step("update"):
            if repo.head.is_valid():
                logger.debug("Hard resetting to HEAD to undo earlier rollbacks")
                repo.head.reset(index=True, working_tree=True)

            logger.debug(
                "Pulling %s from %s", self.config.git_branch, self.config.remote_name
            )
            repo.remote(self.config.remote_name).pull(
                self.config.git_branch,
                kill_after_timeout=self.config.command_timeout,
            )

            self._history = self._file_history(repo)
            self._offset = 0

    def rollback_one(self) -> None:
        with self._open() as repo:
            history = self._load_history(repo)
            offset = self._offset + 1
            if offset >= len(history):
                logger.error(
                    "No revision of %s older than %s",
                    self.target.masterlist_name,
                    format_revision(history[-1]) if history else "HEAD",
                )
                raise HistoryExhaustedError(
                    f"No earlier revision of {self.target.masterlist_name} to roll back to."
                )

            commit = history[offset]
            logger.debug("Checking out %s from %s", self.target.masterlist_name, commit.hexsha)
            with self._step("roll back"):
                repo.git.checkout(commit.hexsha, "--", self.target.masterlist_name)
            self._offset = offset

    def current_revision(self) -> str:
        with self._open() as repo:
            history = self._load_history(repo)
            if not history:
                raise TransportError(
                    "read the revision of", "the repository has no commits touching it"
                )
            return format_revision(history[self._offset])

    def local_revision(self) -> str:
        """Identify the commit whose masterlist matches the file on disk.

        Falls back to the newest commit touching the masterlist when the file
        has local changes, and to '' when there is no repository or history.
        """
        if not self.exists():
            return ""
        with self._open() as repo:
            if not repo.head.is_valid():
                return ""
            with self._step("read the revision of"):
                history = self._file_history(repo)
                if not history:
                    return ""
                if not self.target.masterlist_path.is_file():
                    return format_revision(history[0])
                blob = repo.git.hash_object(str(self.target.masterlist_path))
                for commit in history:
                    try:
                        if commit.tree[self.target.masterlist_name].hexsha == blob:
                            return format_revision(commit)
                    except KeyError:
                        continue
            return format_revision(history[0])

    # ── Helpers ─────────────────────────────────────────────────────

    def _load_history(self, repo: Repo) -> list[Commit]:
        if self._history is None:
            with self._step("read the history of"):
                self._history = self._file_history(repo)
        return self._history

    def _file_history(self, repo: Repo) -> list[Commit]:
        """Commits touching the masterlist reachable from HEAD, newest first."""
        if not repo.head.is_valid():
            return []
        return list(repo.iter_commits("HEAD", paths=self.target.masterlist_name))
