"""
Zen AI Fax - Backend
====================
Document intake API: upload a fax (PDF/image), store it, analyze it and
read back documents with their extracted fields.

- Azure Blob Storage is used when AZURE_STORAGE_CONNECTION_STRING is set,
  otherwise files stay in the local upload directory.
- Azure Document Intelligence is used when FORM_RECOGNIZER_ENDPOINT and
  FORM_RECOGNIZER_KEY are set, otherwise a filename heuristic is used.

Run locally:
    cd apps/backend
    uvicorn main:app --port 3000
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

from config import Settings, get_settings
from database import create_session_factory, init_database
from logging_config import configure_logging, get_logger
from routers import documents_router
from schemas import HealthResponse
from services.analyzer import BaseDocumentAnalyzer, create_analyzer
from services.blob_storage import BaseBlobStorage, create_blob_storage
import metrics as app_metrics

logger = get_logger(__name__)


# =============================================================================
# Request Correlation Middleware
# =============================================================================

class RequestIDMiddleware(BaseHTTPMiddleware):
    """Inject request ID into all logs for request tracing."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record request metrics for observability."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.time()

        response = await call_next(request)

        duration = time.time() - start_time

        # Route template keeps document ids out of the label values
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)

        app_metrics.http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code
        ).inc()

        app_metrics.http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint
        ).observe(duration)

        return response


# =============================================================================
# Exception Handlers
# =============================================================================

async def general_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected exceptions."""
    logger.exception(
        "Unexpected error",
        path=str(request.url.path),
        error=str(exc),
    )

    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "internal error"},
    )


# =============================================================================
# Application Factory
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    blob_storage: Optional[BaseBlobStorage] = None,
    analyzer: Optional[BaseDocumentAnalyzer] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Storage and analyzer strategies are chosen once, at startup, from the
    settings unless passed in explicitly.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        blob_storage: Storage strategy overriding configuration-based selection
        analyzer: Analyzer overriding configuration-based selection
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(environment=settings.environment, level=settings.log_level)

        engine, session_factory = create_session_factory(settings.database_url)
        await init_database(engine)

        app.state.settings = settings
        app.state.session_factory = session_factory
        app.state.blob_storage = blob_storage or create_blob_storage(settings)
        app.state.analyzer = analyzer or create_analyzer(settings)

        logger.info(
            "Zen AI Fax backend starting",
            port=settings.port,
            environment=settings.environment,
            storage=app.state.blob_storage.name,
            analyzer=app.state.analyzer.name,
            upload_dir=str(app.state.blob_storage.upload_dir),
        )

        try:
            yield
        finally:
            logger.info("Shutting down backend")
            await engine.dispose()

    app = FastAPI(
        title="Zen AI Fax",
        description="Fax and document intake backend",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(documents_router, tags=["documents"])

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Liveness probe. Always ok, no side effects."""
        return HealthResponse(status="ok")

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
