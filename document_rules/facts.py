"""Projection of raw applicant/application/document rows.

Two different outputs come out of the same rows:

* the *evaluation fact bag*, the raw shape the rule ``field`` paths read
  (``spouseRelationType``, ``personalHistory``...), and
* :class:`CaseFacts`, a display summary with friendlier aggregates.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from .conditions import FactKey
from .models import (
    ApplicantRecord,
    ApplicantSummary,
    ApplicationRecord,
    CaseFacts,
    DocumentRecord,
    FamilySummary,
    ResidenceHistory,
    StatusInCanada,
)
from .templates import DEFAULT_EXCLUDED_COUNTRIES, distinct_countries

NO_SPOUSE = "none"


def normalize_list(value: Any) -> list[Any]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def documents_by_slot(documents: Iterable[DocumentRecord]) -> dict[str, list[dict[str, Any]]]:
    grouped: dict[str, list[dict[str, Any]]] = {}
    for document in documents:
        grouped.setdefault(document.slot_id, []).append(document.to_document_file().model_dump())
    return grouped


def build_evaluation_facts(
    application: ApplicationRecord,
    applicant: ApplicantRecord,
    documents: Iterable[DocumentRecord] = (),
) -> dict[str, Any]:
    spouse = applicant.family.get("spouse") or {}
    immigration = application.details.get("immigration") or {}
    return {
        FactKey.DOCUMENTS.value: documents_by_slot(documents),
        FactKey.SPOUSE_RELATION_TYPE.value: spouse.get("relationType") or NO_SPOUSE,
        FactKey.SPOUSE_FAMILY_NAME.value: spouse.get("familyName"),
        FactKey.CURRENTLY_IN_CANADA.value: bool(immigration.get("currentlyInCanada")),
        FactKey.CURRENT_STATUS.value: immigration.get("currentStatus"),
        FactKey.PERSONAL_HISTORY.value: normalize_list(applicant.history),
        FactKey.CHILDREN.value: normalize_list(applicant.family.get("children")),
        FactKey.MARITAL_STATUS.value: applicant.identity.get("maritalStatus"),
    }


def full_name(identity: dict[str, Any]) -> str:
    parts = [identity.get("familyName"), identity.get("givenNames")]
    return ", ".join(str(part) for part in parts if part) or "Unknown"


def resolve_application_type(application: ApplicationRecord, default_application_type: str) -> str:
    """Stored type, or ``default_application_type`` when the row carries none."""
    stored = (application.type or "").strip()
    return stored or default_application_type


def build_case_facts(
    application: ApplicationRecord,
    applicant: ApplicantRecord,
    default_application_type: str,
) -> CaseFacts:
    spouse_exists = bool(applicant.family.get("spouse"))
    children_count = len(normalize_list(applicant.family.get("children")))
    immigration = application.details.get("immigration") or {}
    countries = distinct_countries(normalize_list(applicant.history))

    return CaseFacts(
        org_id=application.org_id,
        application_id=application.id,
        application_type=resolve_application_type(application, default_application_type),
        applicant=ApplicantSummary(
            id=application.applicant_id,
            full_name=full_name(applicant.identity),
            marital_status=applicant.identity.get("maritalStatus"),
            has_spouse=spouse_exists,
            has_children=children_count > 0,
            uci=applicant.identity.get("uci"),
        ),
        status_in_canada=StatusInCanada(
            is_in_canada=bool(immigration.get("currentlyInCanada")),
            current_status=immigration.get("currentStatus"),
            original_entry_date=immigration.get("originalEntryDate"),
        ),
        family=FamilySummary(spouse_exists=spouse_exists, children_count=children_count),
        residence_history=ResidenceHistory(
            countries_last_5_years=countries,
            countries_requiring_police_cert=distinct_countries(
                normalize_list(applicant.history), DEFAULT_EXCLUDED_COUNTRIES
            ),
        ),
    )
