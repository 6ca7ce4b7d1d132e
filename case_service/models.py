from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from document_rules.models import CaseFacts, DocumentFile, DocumentGroup, FileStatus, SlotStatus
from document_rules.readiness import ReadinessSummary


class DocumentSlotsResponse(BaseModel):
    groups: list[DocumentGroup]
    facts: CaseFacts


class ReadinessResponse(BaseModel):
    application_id: str
    readiness: ReadinessSummary


class UploadedDocument(BaseModel):
    id: str
    file_name: str
    mime_type: str | None = None
    size: int
    uploaded_at: datetime
    preview_url: str | None = None


class UploadResponse(BaseModel):
    slot_id: str
    status: SlotStatus
    document: UploadedDocument


class ReviewRequest(BaseModel):
    status: FileStatus
    rejection_reason: str | None = None
    reviewer_id: str | None = None
    supersede_previous: bool = False

    @model_validator(mode="after")
    def check_review_outcome(self) -> "ReviewRequest":
        if self.status == FileStatus.UPLOADED:
            raise ValueError("review cannot move a document back to 'uploaded'")
        if self.status == FileStatus.REJECTED and not (self.rejection_reason or "").strip():
            raise ValueError("rejection_reason is required when rejecting a document")
        return self


class ReviewResponse(BaseModel):
    document: DocumentFile
    slot_status: SlotStatus


class EvaluateRequest(BaseModel):
    application_type: str = Field(min_length=1)
    facts: dict[str, Any] = Field(default_factory=dict)


class EvaluateResponse(BaseModel):
    application_type: str
    groups: list[DocumentGroup]
