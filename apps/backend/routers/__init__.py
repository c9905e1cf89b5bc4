"""
API Routers
===========
FastAPI routers for the Zen AI Fax backend.
"""

from .documents import router as documents_router

__all__ = ["documents_router"]
