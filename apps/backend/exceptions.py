"""
Zen AI Fax - Custom Exceptions
==============================
Centralized exception hierarchy for structured error handling.
"""

from typing import Optional, Dict, Any


class ZenFaxBaseException(Exception):
    """Base exception for all Zen AI Fax errors."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }
        if self.original_error:
            result["original_error"] = str(self.original_error)
        return result


# =============================================================================
# Document Store Errors
# =============================================================================

class DocumentStoreError(ZenFaxBaseException):
    """Relational store read or write failure."""

    def __init__(
        self,
        message: str = "Document store operation failed",
        operation: Optional[str] = None,
        doc_id: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        context = {}
        if operation:
            context["operation"] = operation
        if doc_id:
            context["doc_id"] = doc_id
        super().__init__(message, context, original_error)


class DocumentNotFoundError(DocumentStoreError):
    """Write targeted a document row that does not exist."""

    def __init__(self, doc_id: str, operation: Optional[str] = None):
        super().__init__(
            f"Document {doc_id} not found",
            operation=operation,
            doc_id=doc_id,
        )


# =============================================================================
# Cloud Service Errors
# =============================================================================

class BlobStorageError(ZenFaxBaseException):
    """Upload to remote blob storage failed."""

    def __init__(
        self,
        message: str = "Blob upload failed",
        container: Optional[str] = None,
        blob_name: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        context = {}
        if container:
            context["container"] = container
        if blob_name:
            context["blob_name"] = blob_name
        super().__init__(message, context, original_error)


class AnalysisError(ZenFaxBaseException):
    """Document analysis service failure."""

    def __init__(
        self,
        message: str,
        model_id: Optional[str] = None,
        location: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        context = {}
        if model_id:
            context["model_id"] = model_id
        if location:
            context["location"] = location
        super().__init__(message, context, original_error)


class ConfigurationError(ZenFaxBaseException):
    """A strategy was constructed without the settings it requires."""

    def __init__(self, message: str, setting: Optional[str] = None):
        context = {"setting": setting} if setting else {}
        super().__init__(message, context)
