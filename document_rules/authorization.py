"""Upload-authorization checks run server-side against a fresh evaluation."""
from __future__ import annotations

import re
from collections.abc import Iterable

from .engine import find_slot
from .exceptions import FileTooLarge, SlotLocked, SlotNotFound, UnsupportedFileType
from .models import DocumentGroup, DocumentSlot

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.-]+")


def authorize_upload(groups: Iterable[DocumentGroup], slot_id: str) -> DocumentSlot:
    slot = find_slot(groups, slot_id)
    if slot is None:
        raise SlotNotFound(slot_id)
    if slot.locked:
        raise SlotLocked(slot_id, slot.lock_message)
    return slot


def validate_file(*, size: int, mime_type: str | None, max_bytes: int, allowed_mime_types: Iterable[str]) -> str:
    """Return the effective mime type or raise for an oversized / disallowed file."""
    if size > max_bytes:
        raise FileTooLarge("File too large")
    effective = (mime_type or "application/octet-stream").lower()
    if not any(allowed in effective for allowed in allowed_mime_types):
        raise UnsupportedFileType("Unsupported file type")
    return effective


def safe_file_name(file_name: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", file_name)


def storage_path_for(application_id: str, slot_id: str, file_name: str, timestamp_ms: int) -> str:
    return f"applications/{application_id}/{slot_id}/{timestamp_ms}-{safe_file_name(file_name)}"
