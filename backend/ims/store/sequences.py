"""Human-readable sequence ids (CON-001, FA-012, ISSUE-104).

Numbers come from a ``sequence_counters`` row per prefix, read with a row
lock and incremented inside the caller's transaction, so two writers can
never be handed the same token. A counter that does not exist yet is seeded
from the highest suffix already present in the collection.
"""

import logging
from typing import Iterable, List, Optional

from ims.models.document import SequenceCounter
from ims.store.document_store import DocumentStore

logger = logging.getLogger(__name__)

CONSUMABLE_PREFIX = "CON"
FIXED_ASSET_PREFIX = "FA"
ISSUANCE_PREFIX = "ISSUE"


def format_sequence_id(prefix: str, number: int) -> str:
    return f"{prefix}-{number:03d}"


def parse_sequence_number(prefix: str, value) -> Optional[int]:
    """Numeric suffix of a PREFIX-NNN token, or None for anything else."""
    if not isinstance(value, str) or not value.startswith(f"{prefix}-"):
        return None
    suffix = value[len(prefix) + 1:]
    return int(suffix) if suffix.isdigit() else None


class SequenceAllocator:
    """Allocates PREFIX-NNN tokens for records of one store."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def highest_existing(self, prefix: str, collection: str, fields: Iterable[str] = ("id",)) -> int:
        highest = 0
        for record in self.store.get_all(collection):
            for field in fields:
                number = parse_sequence_number(prefix, record.get(field))
                if number is not None and number > highest:
                    highest = number
        return highest

    def next_id(self, prefix: str, collection: str, fields: Iterable[str] = ("id",)) -> str:
        return self.next_ids(prefix, collection, 1, fields)[0]

    def next_ids(
        self,
        prefix: str,
        collection: str,
        count: int,
        fields: Iterable[str] = ("id",),
    ) -> List[str]:
        """Reserve ``count`` consecutive tokens.

        Call inside ``store.transaction()`` so the counter commits together
        with the records that use the tokens.
        """
        db = self.store.db
        counter = db.get(SequenceCounter, prefix, with_for_update=True)
        if counter is None:
            seed = self.highest_existing(prefix, collection, tuple(fields))
            counter = SequenceCounter(name=prefix, value=seed)
            db.add(counter)
            logger.info(f"Sequence '{prefix}' seeded at {seed} from '{collection}'")

        first = counter.value + 1
        counter.value += count
        db.flush()
        return [format_sequence_id(prefix, n) for n in range(first, first + count)]
