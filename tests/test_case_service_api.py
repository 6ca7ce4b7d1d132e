import asyncio
import io
import itertools

import pytest
from fastapi import HTTPException, UploadFile
from pydantic import ValidationError
from starlette.datastructures import Headers

import case_service.facts_loader as facts_loader_module
from case_service.app import (
    evaluate,
    event_sink,
    get_document_slots,
    get_readiness,
    object_store,
    review_document,
    service,
    store,
    upload_document,
)
from case_service.events import CaseEventType
from case_service.facts_loader import CaseFactsLoader
from case_service.models import EvaluateRequest, ReviewRequest
from case_service.repository import InMemoryCaseStore
from case_service.settings import ServiceSettings
from document_rules.exceptions import PersistenceFailure, TransientPersistenceError
from document_rules.models import ApplicantRecord, ApplicationRecord, SlotStatus


def _seed(monkeypatch, *, immigration=None, family=None):
    store.clear()
    object_store.objects.clear()
    event_sink.events.clear()
    ticks = itertools.count()
    monkeypatch.setattr(service, "clock", lambda: 1_700_000_000.0 + next(ticks))

    store.add_applicant(
        ApplicantRecord(
            id="applicant-1",
            org_id="org-1",
            identity={"familyName": "Nguyen", "givenNames": "Minh"},
            family=family or {},
            history=[{"country": "Vietnam"}],
        )
    )
    store.add_application(
        ApplicationRecord(
            id="app-1",
            org_id="org-1",
            applicant_id="applicant-1",
            type="Work Permit - Outside Canada (IMM 1295)",
            details={"immigration": immigration or {"currentlyInCanada": False}},
        )
    )


def _upload_file(name="passport.pdf", content=b"%PDF-1.4 test", content_type="application/pdf"):
    return UploadFile(file=io.BytesIO(content), filename=name, headers=Headers({"content-type": content_type}))


def _upload(slot_id="passport", **kwargs):
    return asyncio.run(
        upload_document("app-1", org_id="org-1", slot_id=slot_id, file=_upload_file(**kwargs), uploaded_by="user-42")
    )


def _events():
    return [event.event_type for event in event_sink.for_application("app-1")]


def test_document_slots_for_seeded_application(monkeypatch):
    _seed(monkeypatch)
    response = asyncio.run(get_document_slots("app-1", "org-1"))

    assert [group.id for group in response.groups] == ["identity", "background"]
    slots = [slot.id for group in response.groups for slot in group.slots]
    assert slots == ["passport", "photo", "police_cert_vietnam"]
    assert response.facts.applicant.full_name == "Nguyen, Minh"
    assert response.facts.application_type == "Work Permit - Outside Canada (IMM 1295)"


def test_upload_review_and_reupload_flow(monkeypatch):
    _seed(monkeypatch)

    first = _upload()
    assert first.status == SlotStatus.UPLOADED
    assert first.document.preview_url.startswith("memory://storage/documents/applications/app-1/passport/")

    reviewed = asyncio.run(
        review_document(first.document.id, "org-1", ReviewRequest(status="verified", reviewer_id="reviewer-1"))
    )
    assert reviewed.slot_status == SlotStatus.VERIFIED

    # A new upload does not undo an earlier verification on its own.
    second = _upload(name="passport-renewed.pdf")
    assert second.status == SlotStatus.VERIFIED

    rejected = asyncio.run(
        review_document(
            second.document.id,
            "org-1",
            ReviewRequest(status="rejected", rejection_reason="Blurry scan", supersede_previous=True),
        )
    )
    assert rejected.slot_status == SlotStatus.REJECTED
    assert rejected.document.rejection_reason == "Blurry scan"

    passport = next(
        slot
        for group in asyncio.run(get_document_slots("app-1", "org-1")).groups
        for slot in group.slots
        if slot.id == "passport"
    )
    assert passport.status == SlotStatus.REJECTED
    assert passport.file_id == second.document.id
    assert passport.file_name == "passport-renewed.pdf"
    assert passport.preview_url is not None
    assert passport.uploaded_by == "user-42"

    assert _events() == [
        CaseEventType.SLOT_UPLOADED,
        CaseEventType.SLOT_VERIFIED,
        CaseEventType.SLOT_UPLOADED,
        CaseEventType.SLOT_REJECTED,
    ]


def test_upload_to_locked_slot_is_rejected(monkeypatch):
    _seed(monkeypatch, immigration={"currentlyInCanada": True})

    with pytest.raises(HTTPException) as exc_info:
        _upload(slot_id="status_doc")

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Slot is locked. Select your specific status in the Immigration tab to unlock."
    assert object_store.objects == {}
    assert store.documents == {}
    assert _events() == [CaseEventType.UPLOAD_REJECTED]


def test_review_of_slot_locked_after_upload_reports_missing(monkeypatch):
    _seed(monkeypatch, immigration={"currentlyInCanada": True, "currentStatus": "worker"})
    uploaded = _upload(slot_id="status_doc", name="permit.pdf")
    assert uploaded.status == SlotStatus.UPLOADED

    application = store.applications["app-1"]
    store.add_application(
        application.model_copy(update={"details": {"immigration": {"currentlyInCanada": True}}})
    )

    reviewed = asyncio.run(review_document(uploaded.document.id, "org-1", ReviewRequest(status="verified")))
    assert reviewed.document.status == "verified"
    assert reviewed.slot_status == SlotStatus.MISSING

    status_doc = next(
        slot
        for group in asyncio.run(get_document_slots("app-1", "org-1")).groups
        for slot in group.slots
        if slot.id == "status_doc"
    )
    assert status_doc.status == SlotStatus.LOCKED
    assert status_doc.upload_status == SlotStatus.MISSING


def test_upload_to_unknown_or_hidden_slot(monkeypatch):
    _seed(monkeypatch)

    with pytest.raises(HTTPException) as exc_info:
        _upload(slot_id="marriage_cert")
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Invalid slotId: marriage_cert for this application type"


def test_upload_file_validation(monkeypatch):
    _seed(monkeypatch)

    with pytest.raises(HTTPException) as exc_info:
        _upload(name="notes.txt", content_type="text/plain")
    assert exc_info.value.status_code == 415

    monkeypatch.setattr(service.settings, "max_file_bytes", 4)
    with pytest.raises(HTTPException) as exc_info:
        _upload()
    assert exc_info.value.status_code == 413
    assert store.documents == {}


def test_missing_application_and_wrong_org(monkeypatch):
    _seed(monkeypatch)

    with pytest.raises(HTTPException) as missing:
        asyncio.run(get_document_slots("app-404", "org-1"))
    assert missing.value.status_code == 404

    with pytest.raises(HTTPException) as wrong_org:
        asyncio.run(get_document_slots("app-1", "org-2"))
    assert wrong_org.value.status_code == 404

    first = _upload()
    with pytest.raises(HTTPException) as other_org_review:
        asyncio.run(review_document(first.document.id, "org-2", ReviewRequest(status="verified")))
    assert other_org_review.value.status_code == 404


def test_readiness_endpoint(monkeypatch):
    _seed(monkeypatch)
    _upload()

    response = asyncio.run(get_readiness("app-1", "org-1"))
    assert response.application_id == "app-1"
    assert response.readiness.required_total == 3
    assert response.readiness.uploaded == 1
    assert response.readiness.missing == 2
    assert response.readiness.percent_complete == 33


def test_evaluate_form_state():
    response = asyncio.run(
        evaluate(
            EvaluateRequest(
                application_type="work permit outside canada",
                facts={"spouseRelationType": "spouse", "currentlyInCanada": False},
            )
        )
    )
    assert response.application_type == "Work Permit Outside Canada"
    marriage_cert = response.groups[1].slots[0]
    assert marriage_cert.id == "marriage_cert"
    assert marriage_cert.status == SlotStatus.LOCKED
    assert marriage_cert.lock_message == "Enter spouse details in the Family tab to unlock."

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(evaluate(EvaluateRequest(application_type="Super Visa", facts={})))
    assert exc_info.value.status_code == 404


def test_review_request_validation():
    with pytest.raises(ValidationError):
        ReviewRequest(status="rejected")
    with pytest.raises(ValidationError):
        ReviewRequest(status="uploaded")


class FlakyStore(InMemoryCaseStore):
    def __init__(self, failures):
        super().__init__()
        self.failures = failures
        self.calls = 0

    async def get_application(self, application_id):
        self.calls += 1
        if self.calls <= self.failures:
            raise TransientPersistenceError("connection reset")
        return await super().get_application(application_id)


def _flaky_loader(failures, backoff=0):
    flaky = FlakyStore(failures)
    flaky.add_applicant(ApplicantRecord(id="applicant-1", org_id="org-1"))
    flaky.add_application(ApplicationRecord(id="app-1", org_id="org-1", applicant_id="applicant-1"))
    settings = ServiceSettings(persistence_retry_attempts=3, persistence_retry_backoff_seconds=backoff)
    return flaky, CaseFactsLoader(store=flaky, settings=settings)


def test_loader_retries_transient_failures():
    flaky, loader = _flaky_loader(failures=2)
    case = asyncio.run(loader.load(application_id="app-1", org_id="org-1"))

    assert flaky.calls == 3
    assert case.case_facts.application_type == "Work Permit Outside Canada"
    assert case.facts["spouseRelationType"] == "none"


def test_loader_gives_up_after_retry_budget(monkeypatch):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr(facts_loader_module.asyncio, "sleep", fake_sleep)
    flaky, loader = _flaky_loader(failures=5, backoff=0.5)
    with pytest.raises(PersistenceFailure) as exc_info:
        asyncio.run(loader.load(application_id="app-1", org_id="org-1"))

    assert flaky.calls == 3
    # no backoff after the last attempt
    assert sleeps == [0.5, 1.0]
    assert isinstance(exc_info.value.__cause__, TransientPersistenceError)
