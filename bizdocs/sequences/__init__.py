"""Sequential document-id allocation."""

from .allocator import COUNTERS_COLLECTION, SequenceAllocator, format_document_id

__all__ = ['COUNTERS_COLLECTION', 'SequenceAllocator', 'format_document_id']
