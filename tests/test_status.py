from __future__ import annotations

from datetime import datetime, timedelta, timezone
from itertools import permutations

from document_rules.models import DocumentFile, FileStatus, SlotStatus
from document_rules.status import derive_status, latest_file

T0 = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


def _file(file_id: str, status: FileStatus, minutes: int = 0, *, is_active: bool = True) -> DocumentFile:
    return DocumentFile(
        id=file_id,
        slot_id="passport",
        file_name=f"{file_id}.pdf",
        file_size=100,
        uploaded_at=T0 + timedelta(minutes=minutes),
        status=status,
        is_active=is_active,
    )


def test_locked_slot_is_missing_even_when_verified() -> None:
    assert derive_status(True, [_file("f1", FileStatus.VERIFIED)]) == SlotStatus.MISSING


def test_no_files_is_missing() -> None:
    assert derive_status(False, []) == SlotStatus.MISSING


def test_verified_wins_regardless_of_order() -> None:
    files = [_file("a", FileStatus.UPLOADED), _file("b", FileStatus.VERIFIED), _file("c", FileStatus.REJECTED)]
    for ordering in permutations(files):
        assert derive_status(False, list(ordering)) == SlotStatus.VERIFIED


def test_precedence_below_verified() -> None:
    assert derive_status(False, [_file("a", FileStatus.IN_REVIEW), _file("b", FileStatus.REJECTED)]) == SlotStatus.REJECTED
    assert derive_status(False, [_file("a", FileStatus.UPLOADED), _file("b", FileStatus.IN_REVIEW)]) == SlotStatus.IN_REVIEW
    assert derive_status(False, [_file("a", FileStatus.UPLOADED)]) == SlotStatus.UPLOADED


def test_superseded_files_do_not_count() -> None:
    files = [_file("old", FileStatus.VERIFIED, is_active=False), _file("new", FileStatus.UPLOADED, 5)]
    assert derive_status(False, files) == SlotStatus.UPLOADED
    assert derive_status(False, [_file("old", FileStatus.VERIFIED, is_active=False)]) == SlotStatus.MISSING


def test_latest_file_is_most_recent_active_upload() -> None:
    files = [_file("a", FileStatus.VERIFIED, 0), _file("b", FileStatus.UPLOADED, 10), _file("c", FileStatus.UPLOADED, 20, is_active=False)]
    latest = latest_file(files)
    assert latest is not None
    assert latest.id == "b"
    assert latest_file([]) is None


def test_upload_verify_reupload_roundtrip() -> None:
    files = [_file("first", FileStatus.UPLOADED, 0)]
    assert derive_status(False, files) == SlotStatus.UPLOADED

    files = [files[0].model_copy(update={"status": FileStatus.VERIFIED})]
    assert derive_status(False, files) == SlotStatus.VERIFIED

    # Policy, not a law of nature: a fresh re-upload does not erase a prior human
    # verification; the slot stays verified until the older file is superseded.
    files.append(_file("second", FileStatus.UPLOADED, 30))
    assert derive_status(False, files) == SlotStatus.VERIFIED
    assert latest_file(files).id == "second"
