"""Document store package."""

from .database import (
    SERVER_TIMESTAMP,
    DocumentChange,
    DocumentDatabase,
    DocumentSnapshot,
    Transaction,
)

__all__ = [
    'SERVER_TIMESTAMP',
    'DocumentChange',
    'DocumentDatabase',
    'DocumentSnapshot',
    'Transaction',
]
