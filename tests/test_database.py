"""Unit tests for the SQLite document store."""

from decimal import Decimal

import pytest

from bizdocs.errors import (
    DocumentExistsError,
    DocumentNotFoundError,
    TransactionAbortedError,
    TransactionError,
)
from bizdocs.storage.database import SERVER_TIMESTAMP, DocumentDatabase


@pytest.fixture
def db(tmp_path):
    """Empty document database in a temp directory."""
    return DocumentDatabase(tmp_path / "data" / "test.db", max_attempts=3)


class TestDocuments:
    """Single-document reads and writes."""

    def test_missing_document(self, db):
        snapshot = db.get_document("items", "nope")

        assert not snapshot.exists
        assert snapshot.version == 0
        assert snapshot.data == {}

    def test_set_and_get(self, db):
        db.set_document("items", "item-1", {"itemName": "Widget", "currentQuantity": 5})
        snapshot = db.get_document("items", "item-1")

        assert snapshot.exists
        assert snapshot.version == 1
        assert snapshot.data == {"itemName": "Widget", "currentQuantity": 5}
        assert snapshot.to_dict() == {"id": "item-1", "itemName": "Widget", "currentQuantity": 5}

    def test_set_replaces_and_bumps_version(self, db):
        db.set_document("items", "item-1", {"itemName": "Widget", "unit": "pcs"})
        db.set_document("items", "item-1", {"itemName": "Gadget"})
        snapshot = db.get_document("items", "item-1")

        assert snapshot.version == 2
        assert snapshot.data == {"itemName": "Gadget"}

    def test_merge_keeps_nested_keys(self, db):
        db.set_document("counters", "c", {"yearlyCounts": {"2024": 30}})
        db.set_document("counters", "c", {"yearlyCounts": {"2025": 1}}, merge=True)

        assert db.get_document("counters", "c").data == {"yearlyCounts": {"2024": 30, "2025": 1}}

    def test_server_timestamp_and_decimal(self, db):
        db.set_document("items", "item-1", {"updatedAt": SERVER_TIMESTAMP, "salesPrice": Decimal("12.5")})
        data = db.get_document("items", "item-1").data

        assert isinstance(data["updatedAt"], str)
        assert data["updatedAt"].startswith("20")
        assert data["salesPrice"] == 12.5

    def test_delete(self, db):
        db.set_document("items", "item-1", {"itemName": "Widget"})
        db.delete_document("items", "item-1")

        assert not db.get_document("items", "item-1").exists

    def test_list_collection_sorted(self, db):
        db.set_document("customers", "c1", {"applicantName": "beta"})
        db.set_document("customers", "c2", {"applicantName": "Alpha"})
        db.set_document("customers", "c3", {"address": "no name"})
        db.set_document("items", "i1", {"itemName": "other collection"})

        ids = [s.id for s in db.list_collection("customers", order_by="applicantName")]
        assert ids == ["c2", "c1", "c3"]

        ids = [s.id for s in db.list_collection("customers", order_by="applicantName", descending=True)]
        assert ids == ["c1", "c2", "c3"]

        assert [s.id for s in db.list_collection("customers")] == ["c1", "c2", "c3"]


class TestTransactions:
    """Multi-document transactions."""

    def test_writes_are_atomic(self, db):
        db.set_document("items", "taken", {"n": 1})

        def body(txn):
            txn.set("items", "new", {"n": 2})
            txn.create("items", "taken", {"n": 3})

        with pytest.raises(DocumentExistsError):
            db.run_transaction(body)

        assert not db.get_document("items", "new").exists
        assert db.get_document("items", "taken").data == {"n": 1}

    def test_update_requires_existing_document(self, db):
        with pytest.raises(DocumentNotFoundError):
            db.run_transaction(lambda txn: txn.update("items", "missing", {"n": 1}))

    def test_read_after_write_rejected(self, db):
        def body(txn):
            txn.set("items", "a", {"n": 1})
            txn.get("items", "b")

        with pytest.raises(TransactionError, match="before any writes"):
            db.run_transaction(body)
        assert not db.get_document("items", "a").exists

    def test_error_in_body_is_not_retried(self, db):
        calls = []

        def body(txn):
            calls.append(1)
            txn.get("items", "a")
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            db.run_transaction(body)
        assert len(calls) == 1

    def test_returns_body_result(self, db):
        db.set_document("items", "a", {"n": 41})

        def body(txn):
            n = txn.get("items", "a").get("n")
            txn.update("items", "a", {"n": n + 1})
            return n + 1

        assert db.run_transaction(body) == 42
        assert db.get_document("items", "a").data == {"n": 42}

    def test_conflict_is_retried(self, db):
        db.set_document("items", "a", {"n": 1})
        calls = []

        def body(txn):
            n = txn.get("items", "a").get("n")
            calls.append(n)
            if len(calls) == 1:
                # Concurrent writer commits between our read and our commit
                db.set_document("items", "a", {"n": 10})
            txn.set("items", "a", {"n": n + 1})

        db.run_transaction(body)

        assert calls == [1, 10]
        assert db.get_document("items", "a").data == {"n": 11}

    def test_aborts_after_max_attempts(self, db):
        db.set_document("items", "a", {"n": 1})
        calls = []

        def body(txn):
            calls.append(1)
            txn.get("items", "a")
            db.set_document("items", "a", {"n": len(calls)})
            txn.set("items", "b", {"n": 1})

        with pytest.raises(TransactionAbortedError):
            db.run_transaction(body)

        assert len(calls) == 3
        assert not db.get_document("items", "b").exists

    def test_invalid_max_attempts(self, tmp_path):
        with pytest.raises(ValueError):
            DocumentDatabase(tmp_path / "x.db", max_attempts=0)


class TestSnapshotListeners:
    """Change notifications."""

    def test_listener_receives_changes(self, db):
        changes = []
        unsubscribe = db.on_snapshot("items", changes.append)

        db.set_document("items", "a", {"n": 1})
        db.set_document("items", "a", {"n": 2})
        db.set_document("customers", "c", {"n": 1})
        db.delete_document("items", "a")
        unsubscribe()
        db.set_document("items", "b", {"n": 1})

        assert [(c.id, c.change_type) for c in changes] == [
            ("a", "added"),
            ("a", "modified"),
            ("a", "removed"),
        ]
        assert changes[1].data == {"n": 2}

    def test_failing_listener_does_not_undo_commit(self, db):
        def broken(change):
            raise RuntimeError("listener bug")

        db.on_snapshot("items", broken)
        db.set_document("items", "a", {"n": 1})

        assert db.get_document("items", "a").exists
