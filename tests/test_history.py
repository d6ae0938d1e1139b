"""Tests for the sync history store."""

import tempfile

from mlsync.models import SyncResult, ValidationFailure
from mlsync.sync.history import SyncHistory

URL = "https://example.com/masterlist.git"


def test_history_record_and_retrieve():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SyncHistory(tmpdir)
        store.record(
            URL,
            SyncResult(
                revision="abc1234 (2024-03-01)",
                failures=[ValidationFailure("def5678 (2024-03-02)", "bad indentation")],
                backend="git",
                rollbacks=1,
            ),
        )

        history = store.get_history()
        assert len(history) == 1
        assert history[0].url == URL
        assert history[0].backend == "git"
        assert history[0].failures == [
            ValidationFailure("def5678 (2024-03-02)", "bad indentation")
        ]
        assert history[0].synced_at != ""  # Should be auto-filled


def test_history_multiple_records():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SyncHistory(tmpdir)
        store.record(URL, SyncResult(revision="1 (2013-01-01)", backend="svn"))
        store.record(URL, SyncResult(revision="2 (2013-01-02)", backend="svn"))
        store.record(URL, SyncResult(revision="3 (2013-01-03)", backend="svn"))

        assert [e.revision for e in store.get_history()] == [
            "1 (2013-01-01)",
            "2 (2013-01-02)",
            "3 (2013-01-03)",
        ]
        assert store.get_latest().revision == "3 (2013-01-03)"


def test_history_empty():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SyncHistory(tmpdir)
        assert store.get_history() == []
        assert store.get_latest() is None
