"""SQLAlchemy models."""

from ims.models.document import Document, SequenceCounter

__all__ = [
    "Document",
    "SequenceCounter",
]
