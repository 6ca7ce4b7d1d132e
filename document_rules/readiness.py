from __future__ import annotations

import math
from collections.abc import Iterable

from pydantic import BaseModel

from .engine import iter_slots
from .models import DocumentGroup, SlotStatus


class ReadinessSummary(BaseModel):
    """Progress over required slots; locked required slots are reported but not counted."""

    required_total: int
    verified: int
    uploaded: int
    in_review: int
    rejected: int
    missing: int
    locked_required: int
    percent_complete: int
    percent_verified: int


def _percent(part: int, total: int) -> int:
    if total == 0:
        return 0
    return math.floor(part * 100 / total + 0.5)


def compute_readiness(groups: Iterable[DocumentGroup]) -> ReadinessSummary:
    required = [slot for slot in iter_slots(groups) if slot.required]
    counted = [slot for slot in required if not slot.locked]
    by_status = {status: sum(1 for slot in counted if slot.status == status) for status in SlotStatus}
    verified = by_status[SlotStatus.VERIFIED]
    uploaded = by_status[SlotStatus.UPLOADED]
    return ReadinessSummary(
        required_total=len(counted),
        verified=verified,
        uploaded=uploaded,
        in_review=by_status[SlotStatus.IN_REVIEW],
        rejected=by_status[SlotStatus.REJECTED],
        missing=by_status[SlotStatus.MISSING],
        locked_required=len(required) - len(counted),
        percent_complete=_percent(verified + uploaded, len(counted)),
        percent_verified=_percent(verified, len(counted)),
    )
