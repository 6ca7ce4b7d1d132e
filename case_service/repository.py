from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

from document_rules.exceptions import DocumentNotFound
from document_rules.models import ApplicantRecord, ApplicationRecord, DocumentRecord, FileStatus


class CaseStore(Protocol):
    async def get_application(self, application_id: str) -> ApplicationRecord | None:
        ...

    async def get_applicant(self, applicant_id: str) -> ApplicantRecord | None:
        ...

    async def list_documents(self, *, org_id: str, application_id: str) -> list[DocumentRecord]:
        ...

    async def add_document(self, document: DocumentRecord) -> DocumentRecord:
        ...

    async def get_document(self, document_id: str) -> DocumentRecord | None:
        ...

    async def update_document_status(
        self,
        document_id: str,
        *,
        status: FileStatus,
        rejection_reason: str | None = None,
        supersede_previous: bool = False,
    ) -> DocumentRecord:
        ...


class InMemoryCaseStore:
    """Process-local store. Uploads append rows; nothing is ever deleted."""

    def __init__(self) -> None:
        self.applicants: dict[str, ApplicantRecord] = {}
        self.applications: dict[str, ApplicationRecord] = {}
        self.documents: dict[str, DocumentRecord] = {}

    def clear(self) -> None:
        self.applicants.clear()
        self.applications.clear()
        self.documents.clear()

    def add_applicant(self, applicant: ApplicantRecord) -> None:
        self.applicants[applicant.id] = applicant

    def add_application(self, application: ApplicationRecord) -> None:
        self.applications[application.id] = application

    async def get_application(self, application_id: str) -> ApplicationRecord | None:
        return self.applications.get(application_id)

    async def get_applicant(self, applicant_id: str) -> ApplicantRecord | None:
        return self.applicants.get(applicant_id)

    async def list_documents(self, *, org_id: str, application_id: str) -> list[DocumentRecord]:
        return [
            doc
            for doc in self.documents.values()
            if doc.org_id == org_id and doc.application_id == application_id
        ]

    async def add_document(self, document: DocumentRecord) -> DocumentRecord:
        # Concurrent uploads to the same (org, application, slot) both land; the newest is displayed.
        document.updated_at = datetime.now(tz=timezone.utc)
        self.documents[document.id] = document
        return document

    async def get_document(self, document_id: str) -> DocumentRecord | None:
        return self.documents.get(document_id)

    async def update_document_status(
        self,
        document_id: str,
        *,
        status: FileStatus,
        rejection_reason: str | None = None,
        supersede_previous: bool = False,
    ) -> DocumentRecord:
        document = self.documents.get(document_id)
        if document is None:
            raise DocumentNotFound(f"Document {document_id} not found")
        now = datetime.now(tz=timezone.utc)
        document.status = status
        document.rejection_reason = rejection_reason if status == FileStatus.REJECTED else None
        document.is_active = True
        document.updated_at = now
        if supersede_previous:
            for other in self.documents.values():
                if other.id == document.id:
                    continue
                if (other.org_id, other.application_id, other.slot_id) != (
                    document.org_id,
                    document.application_id,
                    document.slot_id,
                ):
                    continue
                other.is_active = False
        return document
