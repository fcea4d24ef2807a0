"""SQLite document store with optimistic multi-document transactions."""

from __future__ import annotations

import json
import logging
import random
import sqlite3
import threading
import time
from contextlib import closing
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from ..errors import (
    DocumentExistsError,
    DocumentNotFoundError,
    TransactionAbortedError,
    TransactionConflictError,
    TransactionError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DocKey = Tuple[str, str]


class _ServerTimestamp:
    """Sentinel replaced by the commit time when a write is applied."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _resolve_sentinels(value: Any, timestamp: str) -> Any:
    if value is SERVER_TIMESTAMP:
        return timestamp
    if isinstance(value, dict):
        return {k: _resolve_sentinels(v, timestamp) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_sentinels(v, timestamp) for v in value]
    return value


def _deep_merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@dataclass
class DocumentSnapshot:
    """A document as read from the store.

    Attributes:
        collection: Collection name
        id: Document id
        data: Document fields (empty when the document does not exist)
        version: Write counter, 0 when the document does not exist
        created_at: ISO timestamp of the first write
        updated_at: ISO timestamp of the last write
    """
    collection: str
    id: str
    data: Dict[str, Any] = field(default_factory=dict)
    version: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def exists(self) -> bool:
        return self.version > 0

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """Document fields plus its id."""
        return {"id": self.id, **self.data}


@dataclass
class DocumentChange:
    """Notification passed to snapshot listeners after a commit."""
    collection: str
    id: str
    change_type: str  # "added" | "modified" | "removed"
    data: Optional[Dict[str, Any]]


@dataclass
class _PendingWrite:
    op: str  # "set" | "create" | "update" | "delete"
    collection: str
    doc_id: str
    data: Optional[Dict[str, Any]] = None
    merge: bool = False


class Transaction:
    """Reads and buffered writes of one transaction attempt.

    All reads must happen before the first write. Writes are applied at
    commit, after every document read has been checked for changes.
    """

    def __init__(self, database: 'DocumentDatabase'):
        self._database = database
        self._reads: Dict[DocKey, int] = {}
        self._writes: List[_PendingWrite] = []

    def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        """Read a document and remember its version for the commit check."""
        if self._writes:
            raise TransactionError("All reads in a transaction must be executed before any writes")
        snapshot = self._database.get_document(collection, doc_id)
        key = (collection, doc_id)
        if key not in self._reads:
            self._reads[key] = snapshot.version
        return snapshot

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        self._writes.append(_PendingWrite("set", collection, doc_id, dict(data), merge))

    def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Write a new document; the commit fails if the id is already taken."""
        self._writes.append(_PendingWrite("create", collection, doc_id, dict(data)))

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Merge fields into an existing document; the commit fails if it is missing."""
        self._writes.append(_PendingWrite("update", collection, doc_id, dict(data), merge=True))

    def delete(self, collection: str, doc_id: str) -> None:
        self._writes.append(_PendingWrite("delete", collection, doc_id))

    @property
    def has_writes(self) -> bool:
        return bool(self._writes)


class DocumentDatabase:
    """Document collections stored in one SQLite file.

    Provides lookups by id, ordered collection reads, change listeners and
    atomic multi-document transactions with optimistic retry.
    """

    def __init__(self, db_path: Optional[Path] = None, max_attempts: Optional[int] = None):
        """Initialize document database.

        Args:
            db_path: Path to SQLite database file. Defaults to get_database_path()
            max_attempts: Attempts per transaction before aborting.
                Defaults to get_transaction_max_attempts()
        """
        from ..config import get_database_path, get_transaction_max_attempts

        if db_path is None:
            db_path = get_database_path()
        if max_attempts is None:
            max_attempts = get_transaction_max_attempts()
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

        self.db_path = Path(db_path)
        self.max_attempts = max_attempts
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._listeners: Dict[str, List[Callable[[DocumentChange], None]]] = {}
        self._listeners_lock = threading.Lock()

        self._init_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection in autocommit mode (transactions are explicit)."""
        conn = sqlite3.connect(str(self.db_path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with closing(self._get_connection()) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    doc_id TEXT NOT NULL,
                    data TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (collection, doc_id)
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_documents_collection
                ON documents(collection)
            """)
        logger.debug(f"Database schema initialized: {self.db_path}")

    @staticmethod
    def _row_to_snapshot(collection: str, doc_id: str, row: Optional[sqlite3.Row]) -> DocumentSnapshot:
        if row is None:
            return DocumentSnapshot(collection=collection, id=doc_id)
        return DocumentSnapshot(
            collection=collection,
            id=doc_id,
            data=json.loads(row["data"]),
            version=row["version"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_document(self, collection: str, doc_id: str) -> DocumentSnapshot:
        """Read a document by id; ``exists`` is False when it is missing."""
        with closing(self._get_connection()) as conn:
            row = conn.execute(
                "SELECT data, version, created_at, updated_at FROM documents "
                "WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            ).fetchone()
        return self._row_to_snapshot(collection, doc_id, row)

    def list_collection(
        self,
        collection: str,
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[DocumentSnapshot]:
        """Read all documents of a collection.

        Args:
            collection: Collection name
            order_by: Field to sort on; documents missing it sort last.
                Without it, documents come back ordered by id.
            descending: Reverse the sort order
        """
        with closing(self._get_connection()) as conn:
            rows = conn.execute(
                "SELECT doc_id, data, version, created_at, updated_at FROM documents "
                "WHERE collection = ? ORDER BY doc_id",
                (collection,),
            ).fetchall()
        snapshots = [self._row_to_snapshot(collection, row["doc_id"], row) for row in rows]

        if order_by is None:
            return list(reversed(snapshots)) if descending else snapshots

        present = [s for s in snapshots if s.data.get(order_by) is not None]
        missing = [s for s in snapshots if s.data.get(order_by) is None]

        def sort_key(snapshot: DocumentSnapshot):
            value = snapshot.data[order_by]
            if isinstance(value, str):
                return (1, value.lower())
            return (0, value)

        present.sort(key=sort_key, reverse=descending)
        return present + missing

    # ------------------------------------------------------------------
    # Single-document writes
    # ------------------------------------------------------------------

    def set_document(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        """Write one document outside of an explicit transaction."""
        self.run_transaction(lambda txn: txn.set(collection, doc_id, data, merge=merge))

    def delete_document(self, collection: str, doc_id: str) -> None:
        self.run_transaction(lambda txn: txn.delete(collection, doc_id))

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def run_transaction(self, fn: Callable[[Transaction], T], max_attempts: Optional[int] = None) -> T:
        """Run ``fn`` atomically and return its result.

        ``fn`` receives a Transaction, performs its reads, then stages writes.
        If a document it read changed before commit, everything is discarded
        and ``fn`` runs again, up to ``max_attempts`` times. Exceptions raised
        by ``fn`` itself abort immediately without retry and nothing is written.

        Raises:
            TransactionAbortedError: If every attempt hit a conflict
        """
        attempts = max_attempts or self.max_attempts
        last_conflict: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            transaction = Transaction(self)
            result = fn(transaction)
            try:
                changes = self._commit(transaction)
            except TransactionConflictError as e:
                last_conflict = e
                logger.debug(f"Transaction conflict on attempt {attempt}/{attempts}: {e}")
                if attempt < attempts:
                    time.sleep(self._backoff_delay(attempt))
                continue
            self._notify(changes)
            return result

        logger.warning(f"Transaction aborted after {attempts} attempts: {last_conflict}")
        raise TransactionAbortedError(
            f"Transaction aborted after {attempts} attempts due to concurrent updates"
        ) from last_conflict

    @staticmethod
    def _backoff_delay(attempt: int) -> float:
        return random.uniform(0, min(0.005 * (2 ** attempt), 0.25))

    def _commit(self, transaction: Transaction) -> List[DocumentChange]:
        """Check read versions and apply buffered writes under the write lock."""
        if not transaction._writes and not transaction._reads:
            return []

        with closing(self._get_connection()) as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.OperationalError as e:
                # Another writer held the lock past the busy timeout
                raise TransactionConflictError(f"Database is busy: {e}") from e

            try:
                for (collection, doc_id), read_version in transaction._reads.items():
                    row = conn.execute(
                        "SELECT version FROM documents WHERE collection = ? AND doc_id = ?",
                        (collection, doc_id),
                    ).fetchone()
                    current_version = row["version"] if row else 0
                    if current_version != read_version:
                        raise TransactionConflictError(
                            f"{collection}/{doc_id} changed (read version {read_version}, "
                            f"now {current_version})"
                        )

                timestamp = _utc_now()
                changes = [self._apply_write(conn, write, timestamp) for write in transaction._writes]
                conn.execute("COMMIT")
            except sqlite3.OperationalError as e:
                conn.rollback()
                if "locked" in str(e) or "busy" in str(e):
                    raise TransactionConflictError(f"Database is busy: {e}") from e
                raise
            except BaseException:
                conn.rollback()
                raise

        return changes

    def _apply_write(self, conn: sqlite3.Connection, write: _PendingWrite, timestamp: str) -> DocumentChange:
        row = conn.execute(
            "SELECT data, version, created_at FROM documents WHERE collection = ? AND doc_id = ?",
            (write.collection, write.doc_id),
        ).fetchone()
        path = f"{write.collection}/{write.doc_id}"

        if write.op == "delete":
            conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                (write.collection, write.doc_id),
            )
            return DocumentChange(write.collection, write.doc_id, "removed", None)

        if write.op == "create" and row is not None:
            raise DocumentExistsError(f"Document already exists: {path}")
        if write.op == "update" and row is None:
            raise DocumentNotFoundError(f"No document to update: {path}")

        new_data = _resolve_sentinels(write.data or {}, timestamp)
        if write.merge and row is not None:
            new_data = _deep_merge(json.loads(row["data"]), new_data)

        version = (row["version"] if row else 0) + 1
        created_at = row["created_at"] if row else timestamp
        conn.execute(
            "INSERT OR REPLACE INTO documents (collection, doc_id, data, version, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                write.collection,
                write.doc_id,
                json.dumps(new_data, default=_json_default, ensure_ascii=False),
                version,
                created_at,
                timestamp,
            ),
        )
        return DocumentChange(write.collection, write.doc_id, "added" if row is None else "modified", new_data)

    # ------------------------------------------------------------------
    # Change listeners
    # ------------------------------------------------------------------

    def on_snapshot(self, collection: str, callback: Callable[[DocumentChange], None]) -> Callable[[], None]:
        """Subscribe to committed changes in a collection.

        Returns:
            A function that removes the subscription
        """
        with self._listeners_lock:
            self._listeners.setdefault(collection, []).append(callback)

        def unsubscribe() -> None:
            with self._listeners_lock:
                callbacks = self._listeners.get(collection, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def _notify(self, changes: List[DocumentChange]) -> None:
        for change in changes:
            with self._listeners_lock:
                callbacks = list(self._listeners.get(change.collection, []))
            for callback in callbacks:
                try:
                    callback(change)
                except Exception:
                    # The transaction is already committed
                    logger.exception(f"Snapshot listener failed for {change.collection}/{change.id}")
