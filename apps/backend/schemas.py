"""
Zen AI Fax - Data Schemas
=========================
Pydantic models for analysis results and HTTP responses.

Analysis payloads are serialized with camelCase keys (``documentType``,
``documentId``); document and field rows keep their column names.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for models exposed with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Analysis
# =============================================================================

class ExtractedField(BaseModel):
    """One name/value pair produced by an analyzer."""

    name: str = Field(..., min_length=1)
    value: Any = None


class AnalysisResult(CamelModel):
    """Outcome of analyzing one stored file."""

    document_type: Optional[str] = Field(default=None, description="Classification label")
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    fields: List[ExtractedField] = Field(default_factory=list)


# =============================================================================
# HTTP Responses
# =============================================================================

class DocumentRecord(BaseModel):
    """A documents row as returned by the read endpoints."""

    id: str
    filename: str
    blob_url: str
    status: str
    document_type: Optional[str] = None
    confidence: Optional[float] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class FieldRecord(BaseModel):
    """An extracted_fields row."""

    id: int
    document_id: str
    name: str
    value: Any = None


class HealthResponse(BaseModel):
    status: str = "ok"


class DocumentListResponse(BaseModel):
    success: bool = True
    documents: List[DocumentRecord]


class DocumentDetailResponse(BaseModel):
    success: bool = True
    document: DocumentRecord
    fields: List[FieldRecord]


class UploadResponse(CamelModel):
    success: bool = True
    document_id: str
    analysis: AnalysisResult


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
