"""
Document Database Models
========================
SQLAlchemy models for intake documents and their extracted fields.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DocumentStatus(str, enum.Enum):
    """
    Document lifecycle status.

    PROCESSING: Record created, analysis not yet persisted
    PROCESSED: Analysis stored, type and confidence filled in
    """
    PROCESSING = "processing"
    PROCESSED = "processed"


class DocumentModel(Base):
    """
    One uploaded file and its processing outcome.

    Attributes:
        seq: Insertion sequence number, the listing order
        id: Document identifier (UUID4 string), generated at upload
        filename: Original filename as uploaded
        blob_url: Azure blob URL or local filesystem path
        status: Current lifecycle state
        document_type: Classification label from the analyzer
        confidence: Analyzer confidence score
        created_at: Timestamp of record creation
        updated_at: Timestamp of last update
    """
    __tablename__ = "documents"

    seq = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        doc="Insertion sequence number"
    )

    id = Column(
        String(36),
        nullable=False,
        unique=True,
        doc="Document identifier"
    )

    filename = Column(
        String(512),
        nullable=False,
        doc="Original filename as uploaded"
    )

    blob_url = Column(
        String(2048),
        nullable=False,
        doc="Location of the stored file"
    )

    status = Column(
        Enum(DocumentStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=DocumentStatus.PROCESSING,
        server_default=DocumentStatus.PROCESSING.value,
        doc="Current document lifecycle state"
    )

    document_type = Column(
        String(128),
        nullable=True,
        doc="Classification label produced by the analyzer"
    )

    confidence = Column(
        Float,
        nullable=True,
        doc="Analyzer confidence score"
    )

    created_at = Column(
        DateTime,
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        doc="Record creation time"
    )

    updated_at = Column(
        DateTime,
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    fields = relationship(
        "ExtractedFieldModel",
        back_populates="document",
        order_by="ExtractedFieldModel.id",
    )

    def __repr__(self) -> str:
        return (
            f"<DocumentModel("
            f"id={self.id}, "
            f"filename='{self.filename}', "
            f"status={self.status.value}"
            f")>"
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "filename": self.filename,
            "blob_url": self.blob_url,
            "status": self.status.value,
            "document_type": self.document_type,
            "confidence": self.confidence,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ExtractedFieldModel(Base):
    """One name/value pair produced by analyzing a document."""
    __tablename__ = "extracted_fields"

    id = Column(Integer, primary_key=True, autoincrement=True)

    document_id = Column(
        String(36),
        ForeignKey("documents.id"),
        nullable=False,
        index=True,
    )

    name = Column(String(256), nullable=False)

    # Plain strings or structured values from the analysis service
    value = Column(JSON, nullable=True)

    document = relationship("DocumentModel", back_populates="fields")

    def __repr__(self) -> str:
        return f"<ExtractedFieldModel(document_id={self.document_id}, name='{self.name}')>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "name": self.name,
            "value": self.value,
        }
