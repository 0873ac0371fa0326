from __future__ import annotations

from datetime import datetime

from .base import CamelModel


class NotificationResponse(CamelModel):
    id: str
    type: str
    title: str
    message: str
    entity_type: str | None = None
    entity_id: str | None = None
    is_read: bool
    created_at: datetime
