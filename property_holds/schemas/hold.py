from __future__ import annotations

from datetime import datetime

from pydantic import Field, field_validator

from property_holds.models.hold import HoldStatus

from .base import CamelModel


class CreatePropertyHoldDto(CamelModel):
    property_id: str
    reason: str | None = None
    custom_duration_hours: float | None = Field(default=None, description="Admin-only override of the default duration")

    @field_validator("property_id")
    @classmethod
    def _ensure_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("propertyId is required")
        return value.strip()


class ExtendPropertyHoldDto(CamelModel):
    custom_duration_hours: float | None = None


class CancelPropertyHoldDto(CamelModel):
    reason: str | None = None


class PropertyHoldResponse(CamelModel):
    id: str
    property_id: str
    ctv_id: str
    status: HoldStatus
    hold_until: datetime
    reason: str | None = None
    extend_count: int
    cancelled_by: str | None = None
    cancelled_reason: str | None = None
    created_at: datetime
    updated_at: datetime


class HolderInfo(CamelModel):
    id: str
    full_name: str | None = None


class CheckPropertyHoldResponse(CamelModel):
    is_held: bool
    hold_by: HolderInfo | None = None
    hold_until: datetime | None = None
    can_i_hold: bool
    my_active_hold: PropertyHoldResponse | None = None


class SweepResponse(CamelModel):
    now: datetime
    expired: list[str]
    skipped: list[str]
    failed: list[str]
