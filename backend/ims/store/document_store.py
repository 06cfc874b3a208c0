"""Document store over SQLAlchemy.

Records live in named collections as untyped JSON field bags. Typing and
validation belong to the API schemas, never to the store.

Writes made outside ``transaction()`` are committed immediately. Writes made
inside it are flushed and committed together when the block exits, and any
error rolls the whole block back. After each commit, subscribers of every
touched collection receive a fresh snapshot.
"""

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Set

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ims.models.document import Document
from ims.store.change_feed import ChangeFeed, Listener, change_feed, sort_records

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class StoreError(Exception):
    """Base class for document store failures."""


class DocumentNotFoundError(StoreError):
    """Raised when an update, delete or lookup references a missing record."""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"Record '{doc_id}' not found in '{collection}'")


class StoreWriteError(StoreError):
    """Raised when the database rejects a write. The write is rolled back."""

    def __init__(self, operation: str, collection: str, cause: Exception):
        self.operation = operation
        self.collection = collection
        self.cause = cause
        super().__init__(f"Failed to {operation} in '{collection}': {cause}")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_document_id() -> str:
    """Random 20-character id for records created without one."""
    return uuid.uuid4().hex[:20]


def _fields(data: Record) -> Record:
    return {k: v for k, v in data.items() if k != "id"}


class DocumentStore:
    """Collection-oriented access to the ``documents`` table."""

    def __init__(self, db: Session, feed: Optional[ChangeFeed] = None):
        self.db = db
        self.feed = feed if feed is not None else change_feed
        self._depth = 0
        self._touched: Set[str] = set()

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    # ===== READS =====

    def _find(self, collection: str, doc_id: str) -> Optional[Document]:
        return self.db.execute(
            select(Document).where(
                Document.collection == collection,
                Document.doc_id == doc_id,
            )
        ).scalar_one_or_none()

    def get(self, collection: str, doc_id: str) -> Optional[Record]:
        doc = self._find(collection, doc_id)
        return doc.to_record() if doc else None

    def require(self, collection: str, doc_id: str) -> Record:
        """Like get() but raises DocumentNotFoundError."""
        record = self.get(collection, doc_id)
        if record is None:
            raise DocumentNotFoundError(collection, doc_id)
        return record

    def get_all(
        self,
        collection: str,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Record]:
        """Read a whole collection, in insertion order unless order_by is given."""
        docs = self.db.execute(
            select(Document)
            .where(Document.collection == collection)
            .order_by(Document.id)
        ).scalars().all()
        return sort_records([d.to_record() for d in docs], order_by, descending)

    # ===== WRITES =====

    def add(self, collection: str, data: Record) -> str:
        """Create a record under a generated id and return the id."""
        doc_id = generate_document_id()
        self.set(collection, doc_id, data)
        return doc_id

    def set(self, collection: str, doc_id: str, data: Record) -> Record:
        """Create or fully replace the record with the given id."""
        now = utc_now_iso()
        fields = _fields(data)
        doc = self._find(collection, doc_id)
        if doc is None:
            fields.setdefault("createdAt", now)
            fields["updatedAt"] = now
            doc = Document(collection=collection, doc_id=doc_id, data=fields)
            self.db.add(doc)
        else:
            fields.setdefault("createdAt", (doc.data or {}).get("createdAt", now))
            fields["updatedAt"] = now
            doc.data = fields

        record = {"id": doc_id, **fields}
        self._written(collection, "set")
        return record

    def update(self, collection: str, doc_id: str, fields: Record) -> Record:
        """Merge fields into an existing record and return the result."""
        doc = self._find(collection, doc_id)
        if doc is None:
            raise DocumentNotFoundError(collection, doc_id)

        merged = {**(doc.data or {}), **_fields(fields), "updatedAt": utc_now_iso()}
        doc.data = merged

        record = {"id": doc_id, **merged}
        self._written(collection, "update")
        return record

    def delete(self, collection: str, doc_id: str) -> None:
        doc = self._find(collection, doc_id)
        if doc is None:
            raise DocumentNotFoundError(collection, doc_id)

        self.db.delete(doc)
        self._written(collection, "delete")

    def _written(self, collection: str, operation: str) -> None:
        self._touched.add(collection)
        try:
            self.db.flush()
            if not self._depth:
                self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._touched.clear()
            logger.error(f"Store {operation} failed for '{collection}': {e}")
            raise StoreWriteError(operation, collection, e) from e

        if not self._depth:
            self._publish()

    # ===== TRANSACTIONS =====

    @contextmanager
    def transaction(self) -> Iterator["DocumentStore"]:
        """Group writes into one commit. Nested blocks join the outer one."""
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield self
            self.db.commit()
        except SQLAlchemyError as e:
            touched = ", ".join(sorted(self._touched)) or "transaction"
            self.db.rollback()
            self._touched.clear()
            logger.error(f"Store transaction failed for '{touched}': {e}")
            raise StoreWriteError("commit", touched, e) from e
        except Exception:
            self.db.rollback()
            self._touched.clear()
            raise
        finally:
            self._depth = 0

        self._publish()

    # ===== SUBSCRIPTIONS =====

    def subscribe(
        self,
        collection: str,
        listener: Listener,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Callable[[], None]:
        """Deliver the current snapshot now and again after every change.

        Returns the unsubscribe callable.
        """
        unsubscribe = self.feed.subscribe(collection, listener, order_by, descending)
        listener(self.get_all(collection, order_by, descending))
        return unsubscribe

    def _publish(self) -> None:
        touched, self._touched = self._touched, set()
        for collection in sorted(touched):
            if self.feed.has_subscribers(collection):
                self.feed.publish(collection, self.get_all(collection))
