"""Tests for the mlsync command line."""

import pytest
from click.testing import CliRunner

from mlsync.cli import main
from mlsync.errors import HistoryExhaustedError, TransportError
from mlsync.models import SyncResult, ValidationFailure
from mlsync.sync.history import SyncHistory
from mlsync.sync.synchronizer import MasterlistSynchronizer


@pytest.fixture
def runner():
    return CliRunner()


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "version" in result.output


def test_validate_passes(runner, tmp_path):
    path = tmp_path / "masterlist.yaml"
    path.write_text("plugins: []\n")
    result = runner.invoke(main, ["validate", str(path)])
    assert result.exit_code == 0
    assert "parses" in result.output


def test_validate_fails(runner, tmp_path):
    path = tmp_path / "masterlist.yaml"
    path.write_text("plugins: [\n")
    result = runner.invoke(main, ["validate", str(path)])
    assert result.exit_code == 1
    assert "line" in result.output


def test_update_without_url_reports_local_revision(runner, tmp_path):
    result = runner.invoke(main, ["update", str(tmp_path / "masterlist.yaml")])
    assert result.exit_code == 0
    assert "N/A" in result.output


def test_update_reports_skipped_revisions(runner, tmp_path, monkeypatch):
    def fake_sync(self, cancel=None):
        assert self.config.max_rollbacks == 3
        return SyncResult(
            revision="40 (2013-01-01)",
            failures=[ValidationFailure("41 (2013-01-02)", "mapping values are not allowed here")],
            backend="svn",
            rollbacks=1,
        )

    monkeypatch.setattr(MasterlistSynchronizer, "synchronize", fake_sync)
    result = runner.invoke(
        main,
        [
            "update",
            str(tmp_path / "masterlist.yaml"),
            "--url",
            "https://example.com/svnrepo/trunk/masterlist.yaml",
            "--max-rollbacks",
            "3",
        ],
    )
    assert result.exit_code == 0
    assert "Rolled back 1 revision" in result.output
    assert "41 (2013-01-02)" in result.output


def test_update_transport_failure_exits_nonzero(runner, tmp_path, monkeypatch):
    def fake_sync(self, cancel=None):
        raise TransportError("update", "svn: E170013: Unable to connect")

    monkeypatch.setattr(MasterlistSynchronizer, "synchronize", fake_sync)
    result = runner.invoke(
        main,
        ["update", str(tmp_path / "masterlist.yaml"), "--url", "https://example.com/trunk/masterlist.yaml"],
    )
    assert result.exit_code == 1
    assert "E170013" in result.output


def test_update_history_exhausted_lists_failures(runner, tmp_path, monkeypatch):
    def fake_sync(self, cancel=None):
        raise HistoryExhaustedError(
            "No earlier revision", [ValidationFailure("1 (2013-01-01)", "bad")]
        )

    monkeypatch.setattr(MasterlistSynchronizer, "synchronize", fake_sync)
    result = runner.invoke(
        main,
        ["update", str(tmp_path / "masterlist.yaml"), "--url", "https://example.com/masterlist.git"],
    )
    assert result.exit_code == 1
    assert "1 (2013-01-01)" in result.output


def test_update_rejects_bad_config(runner, tmp_path):
    config = tmp_path / "mlsync.yaml"
    config.write_text("not_a_setting: 1\n")
    result = runner.invoke(
        main,
        [
            "update",
            str(tmp_path / "masterlist.yaml"),
            "--url",
            "https://example.com/masterlist.git",
            "--config",
            str(config),
        ],
    )
    assert result.exit_code == 1
    assert "Unknown setting" in result.output


def test_history_empty(runner, tmp_path):
    result = runner.invoke(main, ["history", str(tmp_path)])
    assert result.exit_code == 0
    assert "No synchronizations" in result.output


def test_history_lists_entries(runner, tmp_path):
    SyncHistory(tmp_path).record(
        "https://example.com/masterlist.git",
        SyncResult(revision="abc1234 (2024-01-01)", backend="git"),
    )
    result = runner.invoke(main, ["history", str(tmp_path)])
    assert result.exit_code == 0
    assert "abc1234" in result.output


def test_history_shows_markup_literally(runner, tmp_path):
    SyncHistory(tmp_path).record("svn://x/m.yaml", SyncResult(revision="[bold]42", backend="svn"))
    result = runner.invoke(main, ["history", str(tmp_path)])
    assert result.exit_code == 0
    assert "[bold]" in result.output
