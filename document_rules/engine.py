"""Document evaluation engine.

Turns a fact bag and an application rule config into the list of document
groups shown to the user. Pure and deterministic: no I/O, no clock reads.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from .conditions import evaluate_condition
from .models import (
    ApplicationConfig,
    DocumentFile,
    DocumentGroup,
    DocumentGroupConfig,
    DocumentRuleConfig,
    DocumentSlot,
    SlotStatus,
)
from .status import derive_status, latest_file
from .templates import expand_group


def evaluate_documents(facts: Mapping[str, Any], config: ApplicationConfig) -> list[DocumentGroup]:
    seen_ids: set[str] = set()
    groups = [_evaluate_group(group, facts, seen_ids) for group in config.groups]
    return [group for group in groups if group.slots]


def iter_slots(groups: Iterable[DocumentGroup]) -> Iterator[DocumentSlot]:
    for group in groups:
        yield from group.slots


def find_slot(groups: Iterable[DocumentGroup], slot_id: str) -> DocumentSlot | None:
    return next((slot for slot in iter_slots(groups) if slot.id == slot_id), None)


def files_for_slot(facts: Mapping[str, Any], slot_id: str) -> list[DocumentFile]:
    """Read the file state of a slot; a single mapping or a list of files are both accepted.

    Non-mapping entries are skipped. Unreadable metadata on a mapping falls back to defaults.
    """
    documents = facts.get("documents")
    if not isinstance(documents, Mapping):
        return []
    raw = documents.get(slot_id)
    if raw is None:
        return []
    entries = raw if isinstance(raw, (list, tuple)) else [raw]
    files: list[DocumentFile] = []
    for entry in entries:
        if isinstance(entry, DocumentFile):
            files.append(entry)
        elif isinstance(entry, Mapping):
            files.append(DocumentFile.model_validate(dict(entry)))
    return files


def _evaluate_group(group: DocumentGroupConfig, facts: Mapping[str, Any], seen_ids: set[str]) -> DocumentGroup:
    slots: list[DocumentSlot] = []
    for template in expand_group(group, facts):
        if template.id in seen_ids:
            continue
        if not evaluate_condition(template.visibility_rule, facts):
            continue
        seen_ids.add(template.id)
        slots.append(_evaluate_slot(group.id, template, facts))
    return DocumentGroup(id=group.id, title=group.title, slots=slots)


def _evaluate_slot(group_id: str, template: DocumentRuleConfig, facts: Mapping[str, Any]) -> DocumentSlot:
    locked = not evaluate_condition(template.unlock_rule, facts)
    files = files_for_slot(facts, template.id)
    upload_status = derive_status(locked, files)
    current = None if locked else latest_file(files)
    return DocumentSlot(
        id=template.id,
        group_id=group_id,
        label=template.label,
        role=template.role,
        document_type=template.document_type,
        required=template.required,
        visible=True,
        locked=locked,
        lock_message=template.lock_message if locked else None,
        status=SlotStatus.LOCKED if locked else upload_status,
        upload_status=upload_status,
        documents=files,
        file_id=current.id if current else None,
        file_name=current.file_name if current else None,
        file_size=current.file_size if current else None,
        uploaded_at=current.uploaded_at if current else None,
        uploaded_by=current.uploaded_by_user_id if current else None,
        rejection_reason=current.rejection_reason if current else None,
        preview_url=current.preview_url if current else None,
        mime_type=current.mime_type if current else None,
    )
