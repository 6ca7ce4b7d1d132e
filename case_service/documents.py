from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import structlog

from document_rules.authorization import authorize_upload, storage_path_for, validate_file
from document_rules.engine import evaluate_documents, find_slot
from document_rules.exceptions import DocumentNotFound, PersistenceFailure, StorageError, UploadRejected
from document_rules.models import DocumentGroup, DocumentRecord, DocumentSlot, FileStatus, SlotStatus
from document_rules.readiness import ReadinessSummary, compute_readiness
from document_rules.registry import ConfigRegistry
from document_rules.status import derive_status

from .events import CaseEventLogger, CaseEventType
from .facts_loader import CaseFactsLoader, LoadedCase
from .models import (
    DocumentSlotsResponse,
    EvaluateResponse,
    ReviewRequest,
    ReviewResponse,
    UploadedDocument,
    UploadResponse,
)
from .repository import CaseStore
from .settings import ServiceSettings
from .storage import ObjectStore

_REVIEW_EVENTS = {
    FileStatus.IN_REVIEW: CaseEventType.SLOT_IN_REVIEW,
    FileStatus.VERIFIED: CaseEventType.SLOT_VERIFIED,
    FileStatus.REJECTED: CaseEventType.SLOT_REJECTED,
}


class DocumentSlotService:
    """I/O boundary around the pure evaluation engine."""

    def __init__(
        self,
        *,
        store: CaseStore,
        storage: ObjectStore,
        registry: ConfigRegistry,
        events: CaseEventLogger,
        settings: ServiceSettings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.storage = storage
        self.registry = registry
        self.events = events
        self.settings = settings
        self.clock = clock
        self.loader = CaseFactsLoader(store=store, settings=settings)
        self.logger = structlog.get_logger("document_slot_service")

    async def get_document_slots(self, *, application_id: str, org_id: str) -> DocumentSlotsResponse:
        case = await self.loader.load(application_id=application_id, org_id=org_id)
        groups = self._evaluate(case)
        groups = await self._with_preview_urls(groups, case.documents)
        return DocumentSlotsResponse(groups=groups, facts=case.case_facts)

    async def get_readiness(self, *, application_id: str, org_id: str) -> ReadinessSummary:
        case = await self.loader.load(application_id=application_id, org_id=org_id)
        return compute_readiness(self._evaluate(case))

    def evaluate_form_state(self, *, application_type: str, facts: dict[str, Any]) -> EvaluateResponse:
        config = self.registry.get_config(application_type)
        return EvaluateResponse(application_type=config.application_type, groups=evaluate_documents(facts, config))

    async def upload_document(
        self,
        *,
        application_id: str,
        org_id: str,
        slot_id: str,
        file_name: str,
        content: bytes,
        mime_type: str | None,
        uploaded_by: str | None = None,
    ) -> UploadResponse:
        case = await self.loader.load(application_id=application_id, org_id=org_id)
        try:
            authorize_upload(self._evaluate(case), slot_id)
            effective_mime = validate_file(
                size=len(content),
                mime_type=mime_type,
                max_bytes=self.settings.max_file_bytes,
                allowed_mime_types=self.settings.allowed_mime_types,
            )
        except UploadRejected as exc:
            self.logger.warning("upload_rejected", application_id=application_id, slot_id=slot_id, reason=exc.reason)
            self.events.record(
                org_id=org_id,
                application_id=application_id,
                event_type=CaseEventType.UPLOAD_REJECTED,
                actor_user_id=uploaded_by,
                payload={"slot_id": slot_id, "reason": exc.reason},
            )
            raise

        bucket = self.settings.documents_bucket
        uploaded_at = self.clock()
        storage_path = storage_path_for(application_id, slot_id, file_name, int(uploaded_at * 1000))
        await self.storage.put(bucket, storage_path, content, content_type=effective_mime)
        record = DocumentRecord(
            org_id=org_id,
            application_id=application_id,
            slot_id=slot_id,
            storage_path=storage_path,
            file_name=file_name,
            file_size=len(content),
            mime_type=effective_mime,
            uploaded_by=uploaded_by,
            created_at=datetime.fromtimestamp(uploaded_at, tz=timezone.utc),
        )
        try:
            saved = await self.store.add_document(record)
        except PersistenceFailure:
            await self.storage.remove(bucket, [storage_path])
            raise

        slot_files = [doc.to_document_file() for doc in case.documents if doc.slot_id == slot_id]
        slot_files.append(saved.to_document_file())
        slot_status = derive_status(False, slot_files)

        self.events.record(
            org_id=org_id,
            application_id=application_id,
            event_type=CaseEventType.SLOT_UPLOADED,
            actor_user_id=uploaded_by,
            payload={"slot_id": slot_id, "document_id": saved.id, "file_size": len(content)},
        )
        self.logger.info(
            "document_uploaded",
            application_id=application_id,
            slot_id=slot_id,
            document_id=saved.id,
            slot_status=slot_status.value,
        )
        return UploadResponse(
            slot_id=slot_id,
            status=slot_status,
            document=UploadedDocument(
                id=saved.id,
                file_name=saved.file_name,
                mime_type=saved.mime_type,
                size=saved.file_size or 0,
                uploaded_at=saved.created_at,
                preview_url=await self._preview_url(storage_path),
            ),
        )

    async def review_document(self, *, document_id: str, org_id: str, request: ReviewRequest) -> ReviewResponse:
        document = await self.store.get_document(document_id)
        if document is None or document.org_id != org_id:
            raise DocumentNotFound(f"Document {document_id} not found")

        updated = await self.store.update_document_status(
            document_id,
            status=request.status,
            rejection_reason=request.rejection_reason,
            supersede_previous=request.supersede_previous,
        )
        case = await self.loader.load(application_id=updated.application_id, org_id=updated.org_id)
        slot = find_slot(self._evaluate(case), updated.slot_id)
        # A slot that is locked or no longer shown reports missing, whatever its files say.
        slot_status = slot.upload_status if slot is not None else SlotStatus.MISSING

        self.events.record(
            org_id=updated.org_id,
            application_id=updated.application_id,
            event_type=_REVIEW_EVENTS[request.status],
            actor_user_id=request.reviewer_id,
            payload={
                "slot_id": updated.slot_id,
                "document_id": updated.id,
                "rejection_reason": updated.rejection_reason,
                "superseded_previous": request.supersede_previous,
            },
        )
        return ReviewResponse(
            document=updated.to_document_file(await self._preview_url(updated.storage_path)),
            slot_status=slot_status,
        )

    def _evaluate(self, case: LoadedCase) -> list[DocumentGroup]:
        config = self.registry.get_config(case.case_facts.application_type)
        return evaluate_documents(case.facts, config)

    async def _preview_url(self, storage_path: str) -> str | None:
        try:
            return await self.storage.signed_url(
                self.settings.documents_bucket,
                storage_path,
                self.settings.signed_url_ttl_seconds,
            )
        except StorageError as exc:
            self.logger.warning("preview_url_unavailable", storage_path=storage_path, error=str(exc))
            return None

    async def _with_preview_urls(
        self, groups: list[DocumentGroup], documents: list[DocumentRecord]
    ) -> list[DocumentGroup]:
        paths = {doc.id: doc.storage_path for doc in documents}

        async def _slot(slot: DocumentSlot) -> DocumentSlot:
            urls = await asyncio.gather(
                *(self._preview_url(paths[file.id]) if file.id in paths else _none() for file in slot.documents)
            )
            files = [file.model_copy(update={"preview_url": url}) for file, url in zip(slot.documents, urls)]
            current = next((file for file in files if file.id == slot.file_id), None)
            return slot.model_copy(
                update={"documents": files, "preview_url": current.preview_url if current else None}
            )

        result: list[DocumentGroup] = []
        for group in groups:
            slots = await asyncio.gather(*(_slot(slot) for slot in group.slots))
            result.append(group.model_copy(update={"slots": list(slots)}))
        return result


async def _none() -> None:
    return None
