from __future__ import annotations

from datetime import datetime

from .base import CamelModel


class HoldConfigResponse(CamelModel):
    duration_hours: float
    max_extends: int
    extend_before_hours: float


class SystemConfigResponse(CamelModel):
    id: str
    key: str
    value: str
    type: str
    label: str
    category: str
    description: str | None = None
    updated_at: datetime


class UpdateSystemConfigDto(CamelModel):
    value: str
