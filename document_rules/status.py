from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from .models import DocumentFile, FileStatus, SlotStatus

# Verified wins over any later re-upload until a reviewer supersedes the older file.
STATUS_PRECEDENCE: tuple[FileStatus, ...] = (
    FileStatus.VERIFIED,
    FileStatus.REJECTED,
    FileStatus.IN_REVIEW,
    FileStatus.UPLOADED,
)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def active_files(files: Iterable[DocumentFile]) -> list[DocumentFile]:
    return [file for file in files if file.is_active]


def derive_status(locked: bool, files: Iterable[DocumentFile]) -> SlotStatus:
    if locked:
        return SlotStatus.MISSING
    statuses = {file.status for file in active_files(files)}
    if not statuses:
        return SlotStatus.MISSING
    for status in STATUS_PRECEDENCE:
        if status in statuses:
            return SlotStatus(status.value)
    return SlotStatus.UPLOADED


def latest_file(files: Iterable[DocumentFile]) -> DocumentFile | None:
    candidates = active_files(files)
    if not candidates:
        return None
    return max(candidates, key=lambda file: (_sortable(file.uploaded_at), file.id or ""))


def _sortable(value: datetime | None) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
