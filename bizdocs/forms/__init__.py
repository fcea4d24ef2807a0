"""Form schemas and validation."""

from .schemas import (
    DocumentForm,
    InventoryOrderForm,
    InvoiceForm,
    LineItemForm,
    PurchaseOrderForm,
    QuoteForm,
    SaleForm,
)
from .validation import FormValidationResult, validate_form

__all__ = [
    'DocumentForm',
    'InventoryOrderForm',
    'InvoiceForm',
    'LineItemForm',
    'PurchaseOrderForm',
    'QuoteForm',
    'SaleForm',
    'FormValidationResult',
    'validate_form',
]
