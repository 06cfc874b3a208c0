"""Document store layer."""

from ims.store.change_feed import ChangeFeed, change_feed, sort_records
from ims.store.document_store import (
    DocumentNotFoundError,
    DocumentStore,
    StoreError,
    StoreWriteError,
)
from ims.store.sequences import SequenceAllocator, format_sequence_id, parse_sequence_number

__all__ = [
    "ChangeFeed",
    "change_feed",
    "sort_records",
    "DocumentNotFoundError",
    "DocumentStore",
    "StoreError",
    "StoreWriteError",
    "SequenceAllocator",
    "format_sequence_id",
    "parse_sequence_number",
]
