"""Sequential document-id allocation.

A document id is the sequence prefix, the calendar year and a zero-padded
running number, e.g. ``ORD2025-008``. The running number lives in a counter
document (``counters/<counter_id>``) holding ``yearlyCounts: {year: n}``.
Reading the counter, creating the business document and advancing the
counter happen in one store transaction, so an aborted allocation consumes
no number and two concurrent allocations never share one.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ..config import SequenceDefinition, get_sequence, load_sequences
from ..models.sequence_counter import SequenceCounter
from ..storage.database import DocumentDatabase, Transaction

logger = logging.getLogger(__name__)

COUNTERS_COLLECTION = "counters"

DocumentSource = Union[Mapping[str, Any], Callable[[str], Mapping[str, Any]]]
# Runs before any write; may read and raise. Returns the writes to stage afterwards.
PrepareHook = Callable[[Transaction], Optional[Callable[[Transaction], None]]]


def format_document_id(prefix: str, year: int, count: int, pad_width: int = 3, separator: str = "-") -> str:
    """Format a document id: ``prefix + year + separator + zero-padded count``.

    Counts wider than ``pad_width`` are kept whole (``QT2025-100``).
    """
    if count < 1:
        raise ValueError(f"count must be >= 1, got {count}")
    return f"{prefix}{year}{separator}{str(count).zfill(pad_width)}"


class SequenceAllocator:
    """Allocates ids for the configured document sequences."""

    def __init__(self, database: DocumentDatabase, sequences: Optional[Dict[str, SequenceDefinition]] = None):
        self.database = database
        self.sequences = sequences if sequences is not None else load_sequences()

    def get_definition(self, sequence_name: str) -> SequenceDefinition:
        return get_sequence(sequence_name, self.sequences)

    def read_counter(self, sequence_name: str) -> SequenceCounter:
        """Current counter state of a sequence (outside any transaction)."""
        definition = self.get_definition(sequence_name)
        snapshot = self.database.get_document(COUNTERS_COLLECTION, definition.counter_id)
        return SequenceCounter.from_dict(definition.counter_id, snapshot.data if snapshot.exists else None)

    def list_counters(self) -> List[Dict[str, Any]]:
        """Counter state of every configured sequence, in definition order."""
        result = []
        for name, definition in self.sequences.items():
            counter = self.read_counter(name)
            result.append({
                "sequence": name,
                "counterId": definition.counter_id,
                "prefix": definition.prefix,
                "collection": definition.collection,
                "yearlyCounts": counter.to_dict()["yearlyCounts"],
            })
        return result

    def allocate_id(
        self,
        sequence_name: str,
        document: DocumentSource,
        year: Optional[int] = None,
        prefix: Optional[str] = None,
        prepare: Optional[PrepareHook] = None,
    ) -> str:
        """Allocate the next id of a sequence and create the document under it.

        Args:
            sequence_name: Name of the sequence definition (e.g. "inventory_order")
            document: Document fields, or a function building them from the new id
            year: Calendar year of the counter (defaults to the current year)
            prefix: Override of the definition's prefix
            prepare: Pre-write check run inside the transaction. It may read
                documents and raise to abort; the callback it returns stages
                its own writes after the document and counter writes.

        Returns:
            The formatted document id

        Raises:
            KeyError: If the sequence is unknown
            BusinessRuleError: If ``prepare`` rejected the document
            TransactionAbortedError: If contention outlasted the allowed attempts
        """
        definition = self.get_definition(sequence_name)
        if year is None:
            year = date.today().year
        id_prefix = definition.prefix if prefix is None else prefix

        def allocate(txn: Transaction) -> str:
            snapshot = txn.get(COUNTERS_COLLECTION, definition.counter_id)
            counter = SequenceCounter.from_dict(
                definition.counter_id, snapshot.data if snapshot.exists else None
            )

            stage_writes = prepare(txn) if prepare is not None else None

            next_count = counter.advance(year)
            doc_id = format_document_id(
                id_prefix, year, next_count, definition.pad_width, definition.separator
            )
            data = document(doc_id) if callable(document) else document

            txn.create(definition.collection, doc_id, dict(data))
            txn.set(
                COUNTERS_COLLECTION,
                definition.counter_id,
                {"yearlyCounts": {str(year): next_count}},
                merge=True,
            )
            if stage_writes is not None:
                stage_writes(txn)
            return doc_id

        doc_id = self.database.run_transaction(allocate)
        logger.info(f"Allocated {doc_id} in {definition.collection} (sequence {sequence_name})")
        return doc_id
