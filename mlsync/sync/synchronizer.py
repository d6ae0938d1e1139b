"""Synchronizer — update the masterlist and roll back until it parses.

The flow for one call is::

    select backend -> ensure working copy -> update -> validate
                                                         |  ^
                                                 invalid v  | rollback one
                                                         ----

A revision that fails validation is recorded and the masterlist is moved one
revision back, until a revision validates, history runs out, or the
configured rollback limit is reached.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from mlsync.backends import GIT, SVN, Backend, create_backend, select_backend
from mlsync.config import SyncConfig
from mlsync.errors import (
    HistoryExhaustedError,
    RollbackLimitError,
    SyncCancelled,
    TransportSetupError,
)
from mlsync.models import NO_REVISION, SyncResult, Target, ValidationFailure
from mlsync.sync.history import SyncHistory
from mlsync.validator import Validator, validate_masterlist

logger = logging.getLogger(__name__)

BackendFactory = Callable[[str, Target, SyncConfig], Backend]


class MasterlistSynchronizer:
    """Keeps one target's masterlist current and parseable."""

    def __init__(
        self,
        target: Target,
        config: SyncConfig | None = None,
        validator: Validator | None = None,
        backend_factory: BackendFactory | None = None,
    ):
        self.target = target
        self.config = config or SyncConfig()
        self.validator = validator or validate_masterlist
        self.backend_factory = backend_factory or create_backend

    def local_revision(self) -> str:
        """Revision of the masterlist on disk, or ``"N/A"``. No network access."""
        kind = GIT if (self.target.repo_dir / ".git").is_dir() else SVN
        backend = self.backend_factory(kind, self.target, self.config)
        try:
            revision = backend.local_revision()
        except TransportSetupError as e:
            logger.warning("Could not read the local masterlist revision: %s", e)
            revision = ""
        return revision or NO_REVISION

    def synchronize(self, cancel: threading.Event | None = None) -> SyncResult:
        """Bring the masterlist up to date with the newest revision that parses.

        Args:
            cancel: Optional event; when set, the synchronization stops at the
                next step boundary with ``SyncCancelled``.

        Returns:
            The accepted revision and every validation failure skipped on the
            way, in the order the revisions were tried.

        Raises:
            TransportSetupError: The backend could not be started.
            TransportError: Checkout, update or rollback failed.
            HistoryExhaustedError: No older revision was left to try.
            RollbackLimitError: ``max_rollbacks`` was reached.
            SyncCancelled: ``cancel`` was set.
        """
        if not self.target.url:
            logger.debug("No masterlist URL configured, reporting the local revision")
            return SyncResult(revision=self.local_revision())

        kind = select_backend(self.target.url)
        logger.debug("Using the %s backend for %s", kind, self.target.url)
        backend = self.backend_factory(kind, self.target, self.config)

        _check(cancel)
        backend.ensure_working_copy()

        _check(cancel)
        logger.info("Updating masterlist at %s", self.target.masterlist_path)
        backend.update()

        result = self._validate_with_rollback(backend, cancel)
        result.backend = kind

        if self.config.record_history:
            SyncHistory(self.target.repo_dir).record(self.target.url, result)

        return result

    def _validate_with_rollback(
        self, backend: Backend, cancel: threading.Event | None
    ) -> SyncResult:
        failures: list[ValidationFailure] = []
        rollbacks = 0

        _check(cancel)
        revision = backend.current_revision()

        while True:
            _check(cancel)
            logger.debug("Testing masterlist revision %s", revision)
            validation = self.validator(self.target.masterlist_path)
            if validation.passed:
                if failures:
                    logger.warning(
                        "Masterlist rolled back %d revision(s) to %s", rollbacks, revision
                    )
                else:
                    logger.info("Masterlist updated to revision %s", revision)
                return SyncResult(revision=revision, failures=failures, rollbacks=rollbacks)

            failure = ValidationFailure(revision=revision, message=validation.describe())
            logger.error("Masterlist parsing failed. %s", failure)
            failures.append(failure)

            if rollbacks >= self.config.max_rollbacks:
                raise RollbackLimitError(
                    f"Gave up after {rollbacks} rollback(s) without finding a "
                    "masterlist revision that parses.",
                    failures,
                )

            _check(cancel)
            try:
                backend.rollback_one()
            except HistoryExhaustedError as e:
                raise HistoryExhaustedError(str(e), failures) from e
            rollbacks += 1

            previous, revision = revision, backend.current_revision()
            if not revision or revision == previous:
                raise HistoryExhaustedError(
                    f"Rolling back from revision {previous} did not reach an earlier revision.",
                    failures,
                )


def update_masterlist(
    target: Target,
    config: SyncConfig | None = None,
    validator: Validator | None = None,
    cancel: threading.Event | None = None,
) -> SyncResult:
    """Convenience wrapper: synchronize ``target`` once."""
    return MasterlistSynchronizer(target, config, validator).synchronize(cancel)


def _check(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        logger.info("Masterlist update cancelled")
        raise SyncCancelled("Masterlist update was cancelled.")
