"""Sync history — an append-only record of synchronization outcomes.

Each completed synchronization can leave one JSON line beside the working
copy, so a caller can later tell which revision was accepted and which
revisions were skipped as unparseable.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from mlsync.models import SyncResult, ValidationFailure


@dataclass
class HistoryEntry:
    """One recorded synchronization."""

    url: str
    backend: str
    revision: str
    rollbacks: int = 0
    failures: list[ValidationFailure] = field(default_factory=list)
    synced_at: str = ""


class SyncHistory:
    """Stores and retrieves sync history for a working copy."""

    HISTORY_DIR = ".mlsync"
    HISTORY_FILE = "history.jsonl"

    def __init__(self, repo_dir: str | Path):
        self.repo_dir = Path(repo_dir)
        self.store_dir = self.repo_dir / self.HISTORY_DIR
        self.store_file = self.store_dir / self.HISTORY_FILE

    def record(self, url: str, result: SyncResult) -> HistoryEntry:
        """Append the outcome of a synchronization."""
        self.store_dir.mkdir(parents=True, exist_ok=True)

        entry = HistoryEntry(
            url=url,
            backend=result.backend,
            revision=result.revision,
            rollbacks=result.rollbacks,
            failures=list(result.failures),
            synced_at=datetime.now(timezone.utc).isoformat(),
        )

        with open(self.store_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(asdict(entry)) + "\n")

        return entry

    def get_history(self) -> list[HistoryEntry]:
        """All recorded synchronizations, oldest first."""
        if not self.store_file.exists():
            return []

        entries = []
        with open(self.store_file, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                data = json.loads(line)
                entries.append(
                    HistoryEntry(
                        url=data.get("url", ""),
                        backend=data.get("backend", ""),
                        revision=data.get("revision", ""),
                        rollbacks=data.get("rollbacks", 0),
                        failures=[
                            ValidationFailure(revision=f["revision"], message=f["message"])
                            for f in data.get("failures", [])
                        ],
                        synced_at=data.get("synced_at", ""),
                    )
                )
        return entries

    def get_latest(self) -> HistoryEntry | None:
        """The most recent synchronization, if any."""
        history = self.get_history()
        return history[-1] if history else None
