"""Document storage models: Document and SequenceCounter."""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import JSON, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ims.db.base import Base, TimestampMixin


class Document(Base, TimestampMixin):
    """One record of a named collection, stored as a JSON field bag."""

    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    collection: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    doc_id: Mapped[str] = mapped_column(String(64), nullable=False)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    def to_record(self) -> Dict[str, Any]:
        """Return the stored fields with the document id merged in."""
        return {"id": self.doc_id, **(self.data or {})}


class SequenceCounter(Base, TimestampMixin):
    """Last number handed out for a sequence prefix (CON, FA, ISSUE)."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(32), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
