from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from hashlib import sha256
from typing import Any, Protocol

import structlog
from pydantic import ConfigDict
from pydantic.dataclasses import dataclass as pydantic_dataclass

from .logging import mask_sensitive


class CaseEventType(str, Enum):
    SLOT_UPLOADED = "SLOT_UPLOADED"
    SLOT_IN_REVIEW = "SLOT_IN_REVIEW"
    SLOT_VERIFIED = "SLOT_VERIFIED"
    SLOT_REJECTED = "SLOT_REJECTED"
    UPLOAD_REJECTED = "UPLOAD_REJECTED"


@pydantic_dataclass(config=ConfigDict(extra="forbid", strict=True))
class CaseEvent:
    org_id: str
    application_id: str
    event_type: CaseEventType
    actor_user_id: str | None
    payload: dict[str, Any]
    occurred_at: datetime


class EventSink(Protocol):
    """Append-only sink for case events."""

    def append(self, event: CaseEvent) -> str:
        ...


@dataclass
class InMemoryEventSink:
    events: dict[str, CaseEvent]

    def append(self, event: CaseEvent) -> str:
        event_id = sha256(
            f"{event.org_id}:{event.application_id}:{event.event_type.value}:{event.occurred_at.isoformat()}:{len(self.events)}".encode()
        ).hexdigest()
        self.events[event_id] = event
        return event_id

    def for_application(self, application_id: str) -> list[CaseEvent]:
        return [event for event in self.events.values() if event.application_id == application_id]


@dataclass
class CaseEventLogger:
    sink: EventSink
    logger: structlog.stdlib.BoundLogger

    def record(
        self,
        *,
        org_id: str,
        application_id: str,
        event_type: CaseEventType,
        actor_user_id: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> str:
        event = CaseEvent(
            org_id=org_id,
            application_id=application_id,
            event_type=event_type,
            actor_user_id=actor_user_id,
            payload=dict(payload or {}),
            occurred_at=datetime.now(timezone.utc),
        )
        event_id = self.sink.append(event)
        self.logger.info(
            "case_event_recorded",
            event_id=event_id,
            org_id=org_id,
            application_id=application_id,
            event_type=event_type.value,
            actor_user_id=mask_sensitive(actor_user_id),
            payload=event.payload,
            occurred_at=event.occurred_at.isoformat(),
        )
        return event_id
