from __future__ import annotations

import json

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from property_holds.core.errors import NotFound
from property_holds.models.hold import HoldStatus
from property_holds.models.notification import Notification
from property_holds.services.events import HoldEvent, HoldEventType
from property_holds.utils.time import format_local

ENTITY_TYPE = "PROPERTY_HOLD"

_TITLES = {
    HoldEventType.CREATED: "Hold confirmed",
    HoldEventType.EXTENDED: "Hold extended",
    HoldEventType.CANCELLED: "Hold cancelled",
    HoldEventType.EXPIRED: "Hold expired",
    HoldEventType.AUTO_CANCELLED: "Hold released",
}


class NotificationService:
    """In-app notifications for the holder; doubles as the lifecycle's event publisher."""

    def __init__(self, session: Session, timezone: str | None = None) -> None:
        self.session = session
        self.timezone = timezone

    def publish(self, event: HoldEvent) -> None:
        notification = Notification(
            user_id=event.ctv_id,
            type=event.type.value,
            title=_TITLES[event.type],
            message=self._message(event),
            entity_type=ENTITY_TYPE,
            entity_id=event.hold_id,
            metadata_json=json.dumps(
                {
                    "propertyId": event.property_id,
                    "status": event.status.value,
                    "holdUntil": event.hold_until.isoformat(),
                    "extendCount": event.extend_count,
                    "actorId": event.actor_id,
                }
            ),
        )
        self.session.add(notification)
        self.session.flush()
        logger.debug("Queued {type} notification for {user_id}", type=event.type.value, user_id=event.ctv_id)

    def list_for_user(self, user_id: str, *, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        return list(self.session.scalars(stmt))

    def mark_read(self, notification_id: str, user_id: str) -> Notification:
        notification = self.session.get(Notification, notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotFound(f"Notification {notification_id} not found")
        notification.is_read = True
        self.session.flush()
        return notification

    def mark_all_read(self, user_id: str) -> int:
        result = self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        logger.debug("Marked {count} notifications read for {user_id}", count=result.rowcount, user_id=user_id)
        return result.rowcount

    def _message(self, event: HoldEvent) -> str:
        until = format_local(event.hold_until, self.timezone)
        match event.type:
            case HoldEventType.CREATED:
                return f"You are holding property {event.property_id} until {until}."
            case HoldEventType.EXTENDED:
                return (
                    f"Your hold on property {event.property_id} now runs until {until} "
                    f"(extension #{event.extend_count})."
                )
            case HoldEventType.CANCELLED:
                who = "an administrator" if event.status == HoldStatus.CANCELLED_BY_ADMIN else "you"
                suffix = f" Reason: {event.reason}" if event.reason else ""
                return f"Your hold on property {event.property_id} was cancelled by {who}.{suffix}"
            case HoldEventType.EXPIRED:
                return f"Your hold on property {event.property_id} expired at {until}."
            case HoldEventType.AUTO_CANCELLED:
                suffix = f" Reason: {event.reason}" if event.reason else ""
                return f"Your hold on property {event.property_id} was released automatically.{suffix}"
        raise ValueError(f"Unsupported event type: {event.type}")
