from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

from document_rules.exceptions import ApplicantNotFound, ApplicationNotFound, PersistenceFailure, TransientPersistenceError
from document_rules.facts import build_case_facts, build_evaluation_facts
from document_rules.models import ApplicantRecord, ApplicationRecord, CaseFacts, DocumentRecord

from .repository import CaseStore
from .settings import ServiceSettings

T = TypeVar("T")


@dataclass
class LoadedCase:
    application: ApplicationRecord
    applicant: ApplicantRecord
    documents: list[DocumentRecord]
    facts: dict[str, Any]
    case_facts: CaseFacts


class CaseFactsLoader:
    """Reads case rows and projects them; fails before any evaluation when a row is missing."""

    def __init__(self, *, store: CaseStore, settings: ServiceSettings) -> None:
        self.store = store
        self.settings = settings
        self.logger = structlog.get_logger("case_facts_loader")

    async def load(self, *, application_id: str, org_id: str) -> LoadedCase:
        application = await self._with_retry("get_application", lambda: self.store.get_application(application_id))
        if application is None or application.org_id != org_id:
            raise ApplicationNotFound(f"Application {application_id} not found")

        applicant = await self._with_retry("get_applicant", lambda: self.store.get_applicant(application.applicant_id))
        if applicant is None:
            raise ApplicantNotFound(f"Applicant {application.applicant_id} not found")

        documents = await self._with_retry(
            "list_documents",
            lambda: self.store.list_documents(org_id=application.org_id, application_id=application.id),
        )
        return LoadedCase(
            application=application,
            applicant=applicant,
            documents=documents,
            facts=build_evaluation_facts(application, applicant, documents),
            case_facts=build_case_facts(application, applicant, self.settings.default_application_type),
        )

    async def _with_retry(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        max_attempts = max(1, self.settings.persistence_retry_attempts)
        attempts = 0
        last_err: TransientPersistenceError | None = None
        while attempts < max_attempts:
            attempts += 1
            try:
                return await call()
            except TransientPersistenceError as exc:
                last_err = exc
                self.logger.warning("persistence_retry", operation=operation, attempt=attempts, error=str(exc))
                if attempts < max_attempts:
                    await asyncio.sleep(self.settings.persistence_retry_backoff_seconds * attempts)
        raise PersistenceFailure(f"{operation} failed after {attempts} attempts") from last_err
