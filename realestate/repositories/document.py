"""
Remote document store client.
Collections of flat field maps addressed by document id, with nested sub-collections,
backed by async SQLAlchemy.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select, delete, func
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol
import logging

from realestate.models.document import DocumentRecord
from realestate.utils.exceptions import NotFoundError
from realestate.utils.locks import KeyedLocks

logger = logging.getLogger(__name__)


class _ServerTimestamp:
    """Placeholder replaced by the store's clock when a document is written."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def subcollection(parent_collection: str, parent_id: str, name: str) -> str:
    """Path of a collection nested under a parent document."""
    return f"{parent_collection}/{parent_id}/{name}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StoredDocument:
    """A document as read from the store."""

    id: str
    data: Dict[str, Any] = field(default_factory=dict)


class DocumentStore(Protocol):
    """Capabilities the core needs from the remote document store."""

    async def get(self, collection: str, document_id: str) -> Optional[StoredDocument]: ...

    async def list(self, collection: str) -> List[StoredDocument]: ...

    async def set(self, collection: str, document_id: str, fields: Dict[str, Any]) -> None: ...

    async def update(
        self,
        collection: str,
        document_id: str,
        fields: Dict[str, Any],
        only_if: Optional[Dict[str, Any]] = None
    ) -> bool: ...

    async def delete(self, collection: str, document_id: str) -> bool: ...


def resolve_server_values(fields: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Replace SERVER_TIMESTAMP placeholders with the current time as ISO-8601."""
    stamp = (now or utcnow()).isoformat()
    return {key: (stamp if value is SERVER_TIMESTAMP else value) for key, value in fields.items()}


class SQLAlchemyDocumentStore:
    """
    Document store over a single ``documents`` table.
    Every operation uses its own short-lived session so concurrent callers never share one.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """
        Initialize the store with a session factory.

        Args:
            session_factory: Async session factory bound to the store's engine
        """
        self.session_factory = session_factory
        self._document_locks = KeyedLocks()

    async def get(self, collection: str, document_id: str) -> Optional[StoredDocument]:
        """
        Get a document by its id.

        Args:
            collection: Collection path
            document_id: Document id

        Returns:
            StoredDocument if found, None otherwise
        """
        try:
            async with self.session_factory() as session:
                query = select(DocumentRecord.data).where(
                    DocumentRecord.collection == collection,
                    DocumentRecord.document_id == document_id
                )
                result = await session.execute(query)
                data = result.scalar_one_or_none()

            if data is None:
                logger.debug(f"Document {collection}/{document_id} not found")
                return None

            logger.debug(f"Retrieved document {collection}/{document_id}")
            return StoredDocument(id=document_id, data=dict(data))
        except Exception as e:
            logger.error(f"Failed to get document {collection}/{document_id}: {e}")
            raise

    async def list(self, collection: str) -> List[StoredDocument]:
        """
        Get every document of a collection, oldest first.

        Args:
            collection: Collection path

        Returns:
            List of stored documents
        """
        try:
            async with self.session_factory() as session:
                query = (
                    select(DocumentRecord.document_id, DocumentRecord.data)
                    .where(DocumentRecord.collection == collection)
                    .order_by(DocumentRecord.created_at, DocumentRecord.document_id)
                )
                result = await session.execute(query)
                rows = result.all()

            documents = [StoredDocument(id=row.document_id, data=dict(row.data)) for row in rows]
            logger.debug(f"Retrieved {len(documents)} documents from {collection}")
            return documents
        except Exception as e:
            logger.error(f"Failed to list documents of {collection}: {e}")
            raise

    async def set(self, collection: str, document_id: str, fields: Dict[str, Any]) -> None:
        """
        Create or overwrite a document.

        Args:
            collection: Collection path
            document_id: Document id
            fields: Complete field map of the document

        Raises:
            Exception: If database operation fails
        """
        data = resolve_server_values(fields)
        async with self._document_locks.hold((collection, document_id)):
            async with self.session_factory() as session:
                try:
                    await session.execute(
                        delete(DocumentRecord).where(
                            DocumentRecord.collection == collection,
                            DocumentRecord.document_id == document_id
                        )
                    )
                    session.add(DocumentRecord(collection=collection, document_id=document_id, data=data))
                    await session.commit()
                    logger.debug(f"Set document {collection}/{document_id}")
                except Exception as e:
                    await session.rollback()
                    logger.error(f"Failed to set document {collection}/{document_id}: {e}")
                    raise

    async def update(
        self,
        collection: str,
        document_id: str,
        fields: Dict[str, Any],
        only_if: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Merge fields into an existing document.
        The read, merge and write happen in one transaction with the row locked,
        and writes to the same document from this store are serialized.

        Args:
            collection: Collection path
            document_id: Document id
            fields: Fields to overwrite; other fields are kept
            only_if: Stored field values the document must still hold for the write to happen

        Returns:
            True if the fields were written, False if ``only_if`` no longer matched

        Raises:
            NotFoundError: If the document does not exist
            Exception: If database operation fails
        """
        async with self._document_locks.hold((collection, document_id)):
            async with self.session_factory() as session:
                try:
                    query = (
                        select(DocumentRecord)
                        .where(
                            DocumentRecord.collection == collection,
                            DocumentRecord.document_id == document_id
                        )
                        .with_for_update()
                    )
                    result = await session.execute(query)
                    record = result.scalar_one_or_none()

                    if record is None:
                        await session.rollback()
                        raise NotFoundError("Document", f"{collection}/{document_id}")

                    stored = dict(record.data)
                    if only_if and any(stored.get(name) != value for name, value in only_if.items()):
                        await session.rollback()
                        logger.debug(f"Skipped update of {collection}/{document_id}: stored values changed")
                        return False

                    record.data = {**stored, **resolve_server_values(fields)}
                    await session.commit()
                    logger.debug(f"Updated document {collection}/{document_id}")
                    return True
                except NotFoundError:
                    raise
                except Exception as e:
                    await session.rollback()
                    logger.error(f"Failed to update document {collection}/{document_id}: {e}")
                    raise

    async def delete(self, collection: str, document_id: str) -> bool:
        """
        Delete a document.

        Args:
            collection: Collection path
            document_id: Document id

        Returns:
            True if the document was deleted, False if it did not exist
        """
        async with self._document_locks.hold((collection, document_id)):
            async with self.session_factory() as session:
                try:
                    stmt = delete(DocumentRecord).where(
                        DocumentRecord.collection == collection,
                        DocumentRecord.document_id == document_id
                    )
                    result = await session.execute(stmt)
                    await session.commit()

                    deleted = result.rowcount > 0
                    if deleted:
                        logger.debug(f"Deleted document {collection}/{document_id}")
                    else:
                        logger.debug(f"Document {collection}/{document_id} not found for deletion")
                    return deleted
                except Exception as e:
                    await session.rollback()
                    logger.error(f"Failed to delete document {collection}/{document_id}: {e}")
                    raise

    async def count(self, collection: str) -> int:
        """Count the documents of a collection."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(func.count()).select_from(DocumentRecord).where(DocumentRecord.collection == collection)
            )
            return result.scalar() or 0
