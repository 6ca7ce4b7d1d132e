from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic.alias_generators import to_camel


class RuleBaseModel(BaseModel):
    """Immutable rule configuration model; accepts snake_case or camelCase keys."""

    model_config = ConfigDict(frozen=True, extra="forbid", alias_generator=to_camel, populate_by_name=True)


class Operator(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    CONTAINS = "contains"
    EXISTS = "exists"
    GT = "gt"


class SlotRole(str, Enum):
    APPLICANT = "applicant"
    SPOUSE = "spouse"
    EMPLOYER = "employer"
    CHILD = "child"


class FileStatus(str, Enum):
    UPLOADED = "uploaded"
    IN_REVIEW = "in_review"
    VERIFIED = "verified"
    REJECTED = "rejected"


class SlotStatus(str, Enum):
    MISSING = "missing"
    LOCKED = "locked"
    UPLOADED = "uploaded"
    IN_REVIEW = "in_review"
    VERIFIED = "verified"
    REJECTED = "rejected"


class RuleCondition(RuleBaseModel):
    # operator stays a plain string: an unsupported operator must load and then fail closed.
    field: str
    operator: str
    value: Any = None


class DocumentRuleConfig(RuleBaseModel):
    id: str
    label: str
    required: bool = True
    role: SlotRole
    document_type: str
    visibility_rule: RuleCondition | None = None
    unlock_rule: RuleCondition | None = None
    lock_message: str | None = None


class GeneratorConfig(RuleBaseModel):
    type: str
    template: DocumentRuleConfig
    exclude: tuple[str, ...] | None = None


class DocumentGroupConfig(RuleBaseModel):
    id: str
    title: str
    slots: tuple[DocumentRuleConfig, ...] = ()
    generator: GeneratorConfig | None = None


class ApplicationConfig(RuleBaseModel):
    application_type: str
    groups: tuple[DocumentGroupConfig, ...]
    aliases: tuple[str, ...] = ()


class DocumentFile(BaseModel):
    """One uploaded file as seen by the engine, from server rows or client form state."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "fileId", "file_id"))
    slot_id: str | None = Field(default=None, validation_alias=AliasChoices("slot_id", "slotId"))
    file_name: str = Field(default="", validation_alias=AliasChoices("file_name", "fileName"))
    file_size: int = Field(default=0, validation_alias=AliasChoices("file_size", "fileSize", "size"))
    mime_type: str | None = Field(default=None, validation_alias=AliasChoices("mime_type", "mimeType"))
    uploaded_at: datetime | None = Field(default=None, validation_alias=AliasChoices("uploaded_at", "uploadedAt"))
    uploaded_by_user_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("uploaded_by_user_id", "uploadedByUserId", "uploaded_by", "uploadedBy"),
    )
    status: FileStatus = FileStatus.UPLOADED
    rejection_reason: str | None = Field(default=None, validation_alias=AliasChoices("rejection_reason", "rejectionReason"))
    preview_url: str | None = Field(default=None, validation_alias=AliasChoices("preview_url", "previewUrl"))
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "isActive"))

    @field_validator("status", mode="before")
    @classmethod
    def unknown_status_is_uploaded(cls, value: Any) -> Any:
        if isinstance(value, FileStatus):
            return value
        if isinstance(value, str) and value in {status.value for status in FileStatus}:
            return value
        return FileStatus.UPLOADED

    @field_validator(
        "id",
        "slot_id",
        "file_name",
        "file_size",
        "mime_type",
        "uploaded_at",
        "uploaded_by_user_id",
        "rejection_reason",
        "preview_url",
        "is_active",
        mode="wrap",
    )
    @classmethod
    def unreadable_metadata_is_default(cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo) -> Any:
        # Browser form state carries locale timestamps and loose sizes; the file still counts.
        try:
            return handler(value)
        except ValidationError:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)


class DocumentSlot(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    group_id: str
    label: str
    role: SlotRole
    document_type: str
    required: bool
    visible: bool = True
    locked: bool = False
    lock_message: str | None = None
    status: SlotStatus
    upload_status: SlotStatus
    documents: list[DocumentFile] = Field(default_factory=list)
    file_id: str | None = None
    file_name: str | None = None
    file_size: int | None = None
    uploaded_at: datetime | None = None
    uploaded_by: str | None = None
    rejection_reason: str | None = None
    preview_url: str | None = None
    mime_type: str | None = None


class DocumentGroup(BaseModel):
    id: str
    title: str
    slots: list[DocumentSlot]


class ApplicantRecord(BaseModel):
    """Applicant row as stored by the persistence layer."""

    model_config = ConfigDict(extra="ignore")

    id: str
    org_id: str
    identity: dict[str, Any] = Field(default_factory=dict)
    family: dict[str, Any] = Field(default_factory=dict)
    history: list[dict[str, Any]] | dict[str, Any] | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class ApplicationRecord(BaseModel):
    """Application row as stored by the persistence layer."""

    model_config = ConfigDict(extra="ignore")

    id: str
    org_id: str
    applicant_id: str
    type: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class DocumentRecord(BaseModel):
    """Document row; one row per upload, keyed by (org, application, slot) for lookups."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: str(uuid4()))
    org_id: str
    application_id: str
    slot_id: str
    status: FileStatus = FileStatus.UPLOADED
    storage_path: str
    file_name: str
    file_size: int | None = None
    mime_type: str | None = None
    uploaded_by: str | None = None
    rejection_reason: str | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
    updated_at: datetime | None = None

    def to_document_file(self, preview_url: str | None = None) -> DocumentFile:
        return DocumentFile(
            id=self.id,
            slot_id=self.slot_id,
            file_name=self.file_name,
            file_size=self.file_size or 0,
            mime_type=self.mime_type,
            uploaded_at=self.created_at,
            uploaded_by_user_id=self.uploaded_by,
            status=self.status,
            rejection_reason=self.rejection_reason,
            preview_url=preview_url,
            is_active=self.is_active,
        )


class ApplicantSummary(BaseModel):
    id: str
    full_name: str
    marital_status: str | None = None
    has_spouse: bool
    has_children: bool
    uci: str | None = None


class StatusInCanada(BaseModel):
    is_in_canada: bool
    current_status: str | None = None
    original_entry_date: str | None = None


class FamilySummary(BaseModel):
    spouse_exists: bool
    children_count: int


class ResidenceHistory(BaseModel):
    countries_last_5_years: list[str]
    countries_requiring_police_cert: list[str]


class CaseFacts(BaseModel):
    """Display-facing case summary; not the fact bag the rule engine reads."""

    org_id: str
    application_id: str
    application_type: str
    applicant: ApplicantSummary
    status_in_canada: StatusInCanada
    family: FamilySummary
    residence_history: ResidenceHistory
