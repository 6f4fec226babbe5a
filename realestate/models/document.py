"""
Document model backing the remote document store.
Every document lives in a collection path and carries a flat JSON field map.
"""

from sqlalchemy import String, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from realestate.database import Base
from typing import Any, Dict


class DocumentRecord(Base):
    """
    A single document of a collection.
    Sub-collections are addressed by nested paths such as ``users/<uid>/favorites``.
    """

    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(
        String(512),
        primary_key=True,
        comment="Collection path, nested for sub-collections"
    )

    document_id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Document id, unique within its collection"
    )

    data: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Flat field map"
    )

    def __repr__(self) -> str:
        return f"<DocumentRecord(collection={self.collection}, id={self.document_id})>"


collection_index = Index(
    "idx_documents_collection_created",
    DocumentRecord.collection,
    DocumentRecord.created_at
)
