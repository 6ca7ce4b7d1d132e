from __future__ import annotations

import structlog
from fastapi import FastAPI, File, Form, HTTPException, UploadFile

from document_rules.exceptions import (
    FileTooLarge,
    NotFoundError,
    PersistenceFailure,
    StorageError,
    UnsupportedFileType,
    UploadRejected,
)
from document_rules.registry import build_default_registry

from .documents import DocumentSlotService
from .events import CaseEventLogger, InMemoryEventSink
from .logging import configure_logging
from .models import (
    DocumentSlotsResponse,
    EvaluateRequest,
    EvaluateResponse,
    ReadinessResponse,
    ReviewRequest,
    ReviewResponse,
    UploadResponse,
)
from .repository import InMemoryCaseStore
from .settings import settings
from .storage import InMemoryObjectStore

configure_logging(json_output=settings.log_json)

app = FastAPI(title="Case File Documents", version="1.0.0")

store = InMemoryCaseStore()
object_store = InMemoryObjectStore()
registry = build_default_registry()
event_sink = InMemoryEventSink(events={})
service = DocumentSlotService(
    store=store,
    storage=object_store,
    registry=registry,
    events=CaseEventLogger(sink=event_sink, logger=structlog.get_logger("case_events")),
    settings=settings,
)

_BOUNDARY_ERRORS = (NotFoundError, UploadRejected, PersistenceFailure, StorageError)


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, FileTooLarge):
        return HTTPException(status_code=413, detail=exc.reason)
    if isinstance(exc, UnsupportedFileType):
        return HTTPException(status_code=415, detail=exc.reason)
    if isinstance(exc, UploadRejected):
        return HTTPException(status_code=400, detail=exc.reason)
    return HTTPException(status_code=503, detail="Case data is temporarily unavailable, please retry")


@app.get("/v1/applications/{application_id}/document-slots", response_model=DocumentSlotsResponse)
async def get_document_slots(application_id: str, org_id: str) -> DocumentSlotsResponse:
    try:
        return await service.get_document_slots(application_id=application_id, org_id=org_id)
    except _BOUNDARY_ERRORS as exc:
        raise _http_error(exc) from exc


@app.get("/v1/applications/{application_id}/readiness", response_model=ReadinessResponse)
async def get_readiness(application_id: str, org_id: str) -> ReadinessResponse:
    try:
        readiness = await service.get_readiness(application_id=application_id, org_id=org_id)
    except _BOUNDARY_ERRORS as exc:
        raise _http_error(exc) from exc
    return ReadinessResponse(application_id=application_id, readiness=readiness)


@app.post("/v1/applications/{application_id}/documents", response_model=UploadResponse)
async def upload_document(
    application_id: str,
    org_id: str = Form(...),
    slot_id: str = Form(...),
    file: UploadFile = File(...),
    uploaded_by: str | None = Form(None),
) -> UploadResponse:
    content = await file.read()
    try:
        return await service.upload_document(
            application_id=application_id,
            org_id=org_id,
            slot_id=slot_id,
            file_name=file.filename or "upload",
            content=content,
            mime_type=file.content_type,
            uploaded_by=uploaded_by,
        )
    except _BOUNDARY_ERRORS as exc:
        raise _http_error(exc) from exc


@app.patch("/v1/documents/{document_id}/review", response_model=ReviewResponse)
async def review_document(document_id: str, org_id: str, payload: ReviewRequest) -> ReviewResponse:
    try:
        return await service.review_document(document_id=document_id, org_id=org_id, request=payload)
    except _BOUNDARY_ERRORS as exc:
        raise _http_error(exc) from exc


@app.post("/v1/evaluate", response_model=EvaluateResponse)
async def evaluate(payload: EvaluateRequest) -> EvaluateResponse:
    try:
        return service.evaluate_form_state(application_type=payload.application_type, facts=payload.facts)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
