"""
Tests for tracking.store / tracking.storage — corruption resilience and
evict-and-retry on rejected writes.
"""

import json

import pytest

from tracking.eviction import prune
from tracking.models import LedgerDocument, Outcome, TrackedSetupRecord
from tracking.storage import JsonFileStorage, MemoryStorage, StorageError
from tracking.store import LedgerStore


def _rec(key, outcome=Outcome.OPEN, closed_ts=None, symbol="BTCUSDT"):
    return TrackedSetupRecord(
        key=key, symbol=symbol,
        entry_anchor=100.0, stop=90.0, risk=10.0, tp1=120.0,
        created_ts=1_000, last_seen_ts=1_000,
        high_seen=100.0, low_seen=100.0,
        outcome=outcome, closed_ts=closed_ts,
    )


class BrokenStorage:
    """Backend whose every operation fails."""

    def __init__(self, exc=StorageError("disk gone")):
        self.exc = exc

    def load(self):
        raise self.exc

    def save(self, blob):
        raise self.exc

    def remove(self):
        raise self.exc


class TestRead:
    def test_absent_blob_is_empty_document(self):
        doc = LedgerStore(MemoryStorage()).read()
        assert doc.version == 1
        assert doc.updated_ts == 0
        assert doc.items == []

    @pytest.mark.parametrize("blob", [
        "",
        "{not json",
        "null",
        "[]",
        "42",
        '"ledger"',
        '{"version": 1}',
        '{"version": 1, "items": {}}',
        '{"version": 2, "updated_ts": 5, "items": []}',
        '{"version": "1", "items": []}',
        '{"version": true, "updated_ts": 1, "items": []}',
        '{"version": 1.0, "updated_ts": 1, "items": []}',
        "[" * 200_000 + "]" * 200_000,
        '{"version": 1, "items": [1, "x", null, {}, {"key": ""}]}',
        '{"version": 1, "items": [{"key": "a", "entry_anchor": "100"}]}',
    ])
    def test_non_conforming_blob_never_raises(self, blob):
        doc = LedgerStore(MemoryStorage(blob)).read()
        assert isinstance(doc, LedgerDocument)
        assert doc.items == []

    def test_deeply_nested_blob_does_not_break_tick(self):
        from tracking.tracker import SetupTracker
        backend = MemoryStorage("[" * 200_000 + "]" * 200_000)
        tracker = SetupTracker(store=LedgerStore(backend))
        assert tracker.tick("BTCUSDT", [], 100.0, 1_000) == []
        assert tracker.read_all() == []

    def test_boolean_version_rejected(self):
        good = _rec("a").to_dict()
        blob = json.dumps({"version": True, "updated_ts": 1, "items": [good]})
        doc = LedgerStore(MemoryStorage(blob)).read()
        assert doc.items == []
        assert doc.updated_ts == 0

    def test_unreadable_backend_yields_empty(self):
        doc = LedgerStore(BrokenStorage()).read()
        assert doc.items == []

    def test_unexpected_backend_error_is_absorbed(self):
        doc = LedgerStore(BrokenStorage(RuntimeError("boom"))).read()
        assert doc.items == []

    def test_corrupt_items_dropped_good_ones_kept(self):
        good = _rec("good").to_dict()
        blob = json.dumps({
            "version": 1,
            "updated_ts": 77,
            "items": [good, {"key": "bad", "risk": 0}, {"key": "x", "outcome": "WON"}],
        })
        doc = LedgerStore(MemoryStorage(blob)).read()
        assert [r.key for r in doc.items] == ["good"]
        assert doc.updated_ts == 77

    def test_duplicate_keys_keep_first(self):
        first = _rec("dup").to_dict()
        second = dict(first, mfe_r=9.0)
        blob = json.dumps({"version": 1, "updated_ts": 1, "items": [first, second]})
        doc = LedgerStore(MemoryStorage(blob)).read()
        assert len(doc.items) == 1
        assert doc.items[0].mfe_r == 0.0

    def test_garbled_optional_fields_are_neutralised(self):
        item = dict(_rec("g").to_dict(), tp1="soon", high_seen=None, mfe_r="big", type=7)
        blob = json.dumps({"version": 1, "updated_ts": 1, "items": [item]})
        rec = LedgerStore(MemoryStorage(blob)).read().items[0]
        assert rec.tp1 is None
        assert rec.high_seen == rec.entry_anchor
        assert rec.mfe_r == 0.0
        assert rec.type is None

    def test_written_document_reads_back(self):
        backend = MemoryStorage()
        store = LedgerStore(backend)
        doc = LedgerDocument(updated_ts=123, items=[_rec("a"), _rec("b", Outcome.STOP, 500)])
        assert store.write(doc) is True

        back = store.read()
        assert back.updated_ts == 123
        assert back.items == doc.items
        assert back.items[1].outcome is Outcome.STOP


class TestWriteRecovery:
    def _doc(self, n_closed=10):
        items = [_rec("open-1")] + [
            _rec(f"c{i}", Outcome.TP1, closed_ts=1_000 + i) for i in range(n_closed)
        ]
        return LedgerDocument(updated_ts=5_000, items=items)

    def test_quota_exceeded_prunes_and_retries(self):
        doc = self._doc()
        pruned = prune(doc, 3)
        quota = len(LedgerStore.encode(pruned).encode("utf-8")) + 8
        backend = MemoryStorage(max_bytes=quota)
        store = LedgerStore(backend, recovery_max_items=3)

        assert store.write(doc) is True
        back = store.read()
        assert [r.key for r in back.items] == ["open-1", "c9", "c8"]

    def test_retry_failure_is_dropped_silently(self):
        backend = MemoryStorage(blob=None, max_bytes=10)
        store = LedgerStore(backend, recovery_max_items=3)
        assert store.write(self._doc()) is False
        assert backend.blob is None

    def test_previous_blob_survives_dropped_write(self):
        backend = MemoryStorage()
        store = LedgerStore(backend)
        store.write(LedgerDocument(updated_ts=1, items=[_rec("keep")]))
        backend.max_bytes = 10

        store.write(self._doc())
        assert [r.key for r in store.read().items] == ["keep"]

    def test_broken_backend_never_raises(self):
        store = LedgerStore(BrokenStorage(RuntimeError("boom")))
        assert store.write(self._doc()) is False
        store.clear()


class TestJsonFileStorage:
    def test_missing_file_loads_none(self, tmp_path):
        assert JsonFileStorage(tmp_path / "ledger.json").load() is None

    def test_save_creates_parent_and_leaves_no_temp(self, tmp_path):
        path = tmp_path / "nested" / "ledger.json"
        JsonFileStorage(path).save('{"version": 1}')
        assert path.read_text(encoding="utf-8") == '{"version": 1}'
        assert list(path.parent.glob("*.tmp")) == []

    def test_binary_garbage_resets(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        doc = LedgerStore(JsonFileStorage(path)).read()
        assert doc.items == []

    def test_clear_removes_file(self, tmp_path):
        path = tmp_path / "ledger.json"
        store = LedgerStore(JsonFileStorage(path))
        store.write(LedgerDocument(items=[_rec("a")]))
        assert path.exists()

        store.clear()
        assert not path.exists()
        assert store.read().items == []
        store.clear()  # clearing twice is harmless


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
