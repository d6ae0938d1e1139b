"""Core data models shared by the synchronizer, backends and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

NO_REVISION = "N/A"
"""Returned when no remote is configured and no local revision exists."""


@dataclass
class Target:
    """What to synchronize: a remote address and the local masterlist path.

    The masterlist's parent directory is the working copy root.
    """

    url: str
    masterlist_path: Path

    def __post_init__(self) -> None:
        self.masterlist_path = Path(self.masterlist_path)

    @property
    def repo_dir(self) -> Path:
        return self.masterlist_path.parent

    @property
    def masterlist_name(self) -> str:
        return self.masterlist_path.name


@dataclass
class CommandResult:
    """Outcome of one child-process invocation (stdout and stderr merged)."""

    success: bool
    output: str = ""
    exit_code: int = 0


@dataclass
class ValidationResult:
    """Result of trying to parse the masterlist."""

    passed: bool
    message: str = ""
    line: int | None = None
    column: int | None = None

    def describe(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} (line {self.line}, column {self.column})"


@dataclass
class ValidationFailure:
    """One revision that was pulled, failed to parse, and was rolled back."""

    revision: str
    message: str

    def __str__(self) -> str:
        return f"Masterlist revision {self.revision}: {self.message}"


@dataclass
class SyncResult:
    """What a synchronization hands back to the caller."""

    revision: str
    failures: list[ValidationFailure] = field(default_factory=list)
    backend: str = ""
    rollbacks: int = 0

    @property
    def clean(self) -> bool:
        """True when the latest revision validated on the first try."""
        return not self.failures
