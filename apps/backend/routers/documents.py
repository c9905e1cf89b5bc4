"""
Documents Router
================
Upload, list and fetch intake documents.

The upload flow runs synchronously inside the request:
1. Write the upload to the local upload directory
2. Store it (Azure Blob Storage, falling back to the local path)
3. Insert the document row (status=processing)
4. Analyze the file
5. Save fields and mark the row processed in one transaction
"""

import time
from uuid import uuid4

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from database.models import DocumentStatus
from exceptions import BlobStorageError
from logging_config import get_logger
from schemas import (
    DocumentDetailResponse,
    DocumentListResponse,
    DocumentRecord,
    ErrorResponse,
    FieldRecord,
    UploadResponse,
)
from services.document_service import DocumentService
import metrics as app_metrics

logger = get_logger(__name__)

router = APIRouter()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


# =============================================================================
# Read Endpoints
# =============================================================================

@router.get(
    "/documents",
    response_model=DocumentListResponse,
    responses={500: {"model": ErrorResponse}},
)
async def list_documents(request: Request):
    """List every document in insertion order."""
    try:
        async with DocumentService(request.app.state.session_factory) as store:
            docs = await store.list_documents()
            records = [DocumentRecord(**doc.to_dict()) for doc in docs]
    except Exception as e:
        logger.error("Failed to list documents", error=str(e), exc_info=True)
        return _error(500, "db error")

    return DocumentListResponse(documents=records)


@router.get(
    "/document/{doc_id}",
    response_model=DocumentDetailResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_document(doc_id: str, request: Request):
    """Fetch one document with all of its extracted fields."""
    try:
        async with DocumentService(request.app.state.session_factory) as store:
            doc = await store.get_document(doc_id)
            if doc is None:
                return _error(404, "not found")
            fields = await store.get_fields(doc_id)
            record = DocumentRecord(**doc.to_dict())
            field_records = [FieldRecord(**field.to_dict()) for field in fields]
    except Exception as e:
        logger.error("Failed to fetch document", doc_id=doc_id, error=str(e), exc_info=True)
        return _error(500, "db error")

    return DocumentDetailResponse(document=record, fields=field_records)


# =============================================================================
# Upload
# =============================================================================

@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_document(request: Request):
    """
    Receive a multipart upload (field ``file``), store and analyze it.

    Returns the analyzer's result in the same response. A blob storage
    failure is logged and the local path is recorded instead; any other
    failure answers 500 and leaves already-written state in place.
    """
    try:
        form = await request.form()
    except Exception as e:
        logger.warning("Unreadable upload body", error=str(e))
        return _error(400, "no file uploaded")

    try:
        upload = form.get("file")
        if not isinstance(upload, UploadFile) or not upload.filename:
            return _error(400, "no file uploaded")

        return await _process_upload(request, upload)
    finally:
        await form.close()


async def _process_upload(request: Request, upload: UploadFile):
    state = request.app.state
    storage = state.blob_storage
    analyzer = state.analyzer
    filename = upload.filename
    doc_id = str(uuid4())

    try:
        local_path = storage.save_upload(filename, upload.file)

        blob_url = str(local_path)
        try:
            blob_url = await storage.store(local_path, local_path.name)
        except BlobStorageError as e:
            app_metrics.blob_storage_fallbacks_total.inc()
            logger.error(
                "Blob upload failed, using local path",
                doc_id=doc_id,
                error=e.to_dict(),
            )

        async with DocumentService(state.session_factory) as store:
            await store.insert_document(
                doc_id,
                filename=filename,
                blob_url=blob_url,
                status=DocumentStatus.PROCESSING,
            )

        start_time = time.time()
        analysis = await analyzer.analyze(blob_url, local_path)
        app_metrics.analysis_duration_seconds.labels(analyzer=analyzer.name).observe(
            time.time() - start_time
        )

        async with DocumentService(state.session_factory) as store:
            await store.save_extracted_fields(
                doc_id,
                [field.model_dump() for field in analysis.fields],
            )
            await store.update_document_status(
                doc_id,
                DocumentStatus.PROCESSED,
                document_type=analysis.document_type,
                confidence=analysis.confidence,
            )

    except Exception as e:
        app_metrics.uploads_total.labels(outcome="failed").inc()
        logger.error(
            "Upload failed",
            doc_id=doc_id,
            filename=filename,
            error=str(e),
            exc_info=True,
        )
        return _error(500, "upload failed")

    app_metrics.uploads_total.labels(outcome="processed").inc()
    logger.info(
        "Upload processed",
        doc_id=doc_id,
        filename=filename,
        document_type=analysis.document_type,
    )
    return UploadResponse(document_id=doc_id, analysis=analysis)
