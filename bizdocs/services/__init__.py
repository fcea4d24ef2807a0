"""Document services."""

from .documents import (
    DOCUMENT_KINDS,
    DocumentKind,
    DocumentService,
    SavedDocument,
    apply_item_selection,
    preview_totals,
)

__all__ = [
    'DOCUMENT_KINDS',
    'DocumentKind',
    'DocumentService',
    'SavedDocument',
    'apply_item_selection',
    'preview_totals',
]
