"""
Document Service
================
Database-centric document operations. Direct CRUD over the documents and
extracted_fields tables.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models import DocumentModel, DocumentStatus, ExtractedFieldModel
from exceptions import DocumentNotFoundError, DocumentStoreError

logger = logging.getLogger(__name__)


class DocumentService:
    """
    CRUD operations for document records and their extracted fields.

    Read methods return ``None`` or an empty list when nothing matches;
    any database failure is raised as ``DocumentStoreError``. Callers can
    therefore tell "absent" apart from "store failure".

    Usage:
        async with DocumentService(session_factory) as service:
            docs = await service.list_documents()

    Or with an existing session:
        service = DocumentService.from_session(session)
        doc = await service.get_document(doc_id)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """
        Args:
            session_factory: Factory producing the session this service owns
                for the lifetime of the ``async with`` block.
        """
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None
        self._owns_session = True

    @classmethod
    def from_session(cls, session: AsyncSession) -> "DocumentService":
        """
        Create a DocumentService using an existing session.

        Use this when you need to participate in an external transaction.
        The caller is responsible for committing.
        """
        instance = cls.__new__(cls)
        instance._session_factory = None
        instance._session = session
        instance._owns_session = False
        return instance

    async def __aenter__(self) -> "DocumentService":
        if self._owns_session:
            self._session = self._session_factory()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Commit on success, roll back on error, always close."""
        if not self._owns_session or self._session is None:
            return
        try:
            if exc_type is not None:
                await self._session.rollback()
            else:
                await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise DocumentStoreError(
                "Failed to commit document store transaction",
                operation="commit",
                original_error=e,
            ) from e
        finally:
            await self._session.close()

    # =========================================================================
    # Writes
    # =========================================================================

    async def insert_document(
        self,
        doc_id: str,
        filename: str,
        blob_url: str,
        status: DocumentStatus = DocumentStatus.PROCESSING,
    ) -> DocumentModel:
        """
        Create one document row.

        Raises:
            DocumentStoreError: If the row cannot be written, including a
                duplicate ``doc_id``.
        """
        doc = DocumentModel(
            id=doc_id,
            filename=filename,
            blob_url=blob_url,
            status=status,
        )
        try:
            self._session.add(doc)
            await self._session.flush()
        except SQLAlchemyError as e:
            raise DocumentStoreError(
                "Failed to insert document",
                operation="insert_document",
                doc_id=doc_id,
                original_error=e,
            ) from e

        logger.info(
            f"Created document record: id={doc_id}, "
            f"filename={filename}, status={status.value}"
        )
        return doc

    async def save_extracted_fields(
        self,
        doc_id: str,
        fields: Iterable[Dict[str, Any]],
    ) -> int:
        """
        Insert one row per extracted field.

        Args:
            doc_id: Owning document id.
            fields: Mappings with ``name`` and ``value`` keys.

        Returns:
            Number of rows written (0 for an empty list, which is a no-op).
        """
        rows = [
            ExtractedFieldModel(
                document_id=doc_id,
                name=str(field["name"]),
                value=field.get("value"),
            )
            for field in fields
        ]
        if not rows:
            return 0

        try:
            self._session.add_all(rows)
            await self._session.flush()
        except SQLAlchemyError as e:
            raise DocumentStoreError(
                "Failed to save extracted fields",
                operation="save_extracted_fields",
                doc_id=doc_id,
                original_error=e,
            ) from e

        logger.info(f"Saved {len(rows)} extracted fields for id={doc_id}")
        return len(rows)

    async def update_document_status(
        self,
        doc_id: str,
        status: DocumentStatus,
        document_type: Optional[str] = None,
        confidence: Optional[float] = None,
    ) -> None:
        """
        Set status, document type and confidence on an existing row.

        Raises:
            DocumentNotFoundError: If no row has ``doc_id``.
            DocumentStoreError: On any other database failure.
        """
        stmt = (
            update(DocumentModel)
            .where(DocumentModel.id == doc_id)
            .values(
                status=status,
                document_type=document_type,
                confidence=confidence,
            )
        )

        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise DocumentStoreError(
                "Failed to update document status",
                operation="update_document_status",
                doc_id=doc_id,
                original_error=e,
            ) from e

        if result.rowcount == 0:
            logger.warning(f"Document not found for status update: id={doc_id}")
            raise DocumentNotFoundError(doc_id, operation="update_document_status")

        logger.info(
            f"Updated document status: id={doc_id}, status={status.value}, "
            f"document_type={document_type}, confidence={confidence}"
        )

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_documents(self) -> List[DocumentModel]:
        """Return every document row in insertion order."""
        stmt = select(DocumentModel).order_by(DocumentModel.seq.asc())
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise DocumentStoreError(
                "Failed to list documents",
                operation="list_documents",
                original_error=e,
            ) from e
        return list(result.scalars().all())

    async def get_document(self, doc_id: str) -> Optional[DocumentModel]:
        """
        Retrieve a single document by its id.

        Returns:
            DocumentModel if found, None otherwise.
        """
        stmt = select(DocumentModel).where(DocumentModel.id == doc_id)
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise DocumentStoreError(
                "Failed to fetch document",
                operation="get_document",
                doc_id=doc_id,
                original_error=e,
            ) from e
        return result.scalar_one_or_none()

    async def get_fields(self, doc_id: str) -> List[ExtractedFieldModel]:
        """Return all extracted fields of a document, possibly empty."""
        stmt = (
            select(ExtractedFieldModel)
            .where(ExtractedFieldModel.document_id == doc_id)
            .order_by(ExtractedFieldModel.id.asc())
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise DocumentStoreError(
                "Failed to fetch extracted fields",
                operation="get_fields",
                doc_id=doc_id,
                original_error=e,
            ) from e
        return list(result.scalars().all())
