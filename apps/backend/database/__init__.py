"""
Database Package
================
SQLAlchemy models and engine setup for the document store.
"""

from .models import Base, DocumentModel, DocumentStatus, ExtractedFieldModel
from .session import create_session_factory, init_database

__all__ = [
    "Base",
    "DocumentModel",
    "DocumentStatus",
    "ExtractedFieldModel",
    "create_session_factory",
    "init_database",
]
