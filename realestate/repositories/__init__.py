"""
Repository layer for remote document access.
"""

from realestate.repositories.document import (
    DocumentStore,
    SQLAlchemyDocumentStore,
    StoredDocument,
    SERVER_TIMESTAMP,
    subcollection,
)

# PropertyRepository depends on the service layer; import it from realestate.repositories.property

__all__ = [
    "DocumentStore",
    "SQLAlchemyDocumentStore",
    "StoredDocument",
    "SERVER_TIMESTAMP",
    "subcollection",
]
