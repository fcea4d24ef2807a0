"""Exception hierarchy shared by the store, the allocator and the services."""

from typing import Dict, List, Optional


class BizDocsError(Exception):
    """Base exception for bizdocs errors."""
    pass


class StorageError(BizDocsError):
    """Base exception for document store errors."""
    pass


class TransactionError(StorageError):
    """Raised when a transaction is used incorrectly (e.g. read after write)."""
    pass


class TransactionConflictError(StorageError):
    """Raised at commit when a document read by the transaction has changed."""
    pass


class TransactionAbortedError(StorageError):
    """Raised when a transaction could not commit within its allowed attempts."""
    pass


class DocumentNotFoundError(StorageError):
    """Raised when a document that must exist is missing."""
    pass


class DocumentExistsError(StorageError):
    """Raised when creating a document whose id is already taken."""
    pass


class BusinessRuleError(BizDocsError):
    """Raised inside a transaction body to abort it for a business reason."""
    pass


class ItemNotFoundError(BusinessRuleError):
    """Raised when a line item references an inventory item that is gone."""
    pass


class InsufficientStockError(BusinessRuleError):
    """Raised when a requested quantity exceeds the available stock."""

    def __init__(self, item_name: str, available, requested=None):
        self.item_name = item_name
        self.available = available
        self.requested = requested
        super().__init__(
            f'Insufficient stock for item "{item_name}". Only {available} available.'
        )


class FormValidationError(BizDocsError):
    """Raised when form data does not satisfy its schema.

    Attributes:
        field_errors: Mapping of dotted field path -> list of messages
    """

    def __init__(self, field_errors: Dict[str, List[str]], message: Optional[str] = None):
        self.field_errors = field_errors
        if message is None:
            fields = ", ".join(sorted(field_errors)) or "form"
            message = f"Invalid form data: {fields}"
        super().__init__(message)
