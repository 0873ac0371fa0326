from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from property_holds.models.base import utcnow
from property_holds.models.hold import HoldStatus, PropertyHold


class HoldEventType(str, enum.Enum):
    CREATED = "HOLD_CREATED"
    EXTENDED = "HOLD_EXTENDED"
    CANCELLED = "HOLD_CANCELLED"
    EXPIRED = "HOLD_EXPIRED"
    AUTO_CANCELLED = "HOLD_AUTO_CANCELLED"


@dataclass(frozen=True)
class HoldEvent:
    type: HoldEventType
    hold_id: str
    property_id: str
    ctv_id: str
    status: HoldStatus
    hold_until: datetime
    extend_count: int = 0
    actor_id: str | None = None
    reason: str | None = None
    occurred_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_hold(
        cls,
        event_type: HoldEventType,
        hold: PropertyHold,
        *,
        actor_id: str | None = None,
        reason: str | None = None,
        occurred_at: datetime | None = None,
    ) -> "HoldEvent":
        return cls(
            type=event_type,
            hold_id=hold.id,
            property_id=hold.property_id,
            ctv_id=hold.ctv_id,
            status=hold.status,
            hold_until=hold.hold_until,
            extend_count=hold.extend_count,
            actor_id=actor_id,
            reason=reason,
            occurred_at=occurred_at or utcnow(),
        )


class HoldEventPublisher(Protocol):
    """Receives transition events inside the transaction that caused them.

    Raising aborts the transition.
    """

    def publish(self, event: HoldEvent) -> None: ...


class NullPublisher:
    def publish(self, event: HoldEvent) -> None:
        return None
