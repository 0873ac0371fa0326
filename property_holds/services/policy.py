"""Hold policy: pure functions over an explicit :class:`HoldConfig`.

Nothing here touches the database or reads ambient settings, so every rule can
be exercised with plain values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from property_holds.core.errors import InvalidDuration
from property_holds.models.hold import HoldStatus


@dataclass(frozen=True)
class HoldConfig:
    duration_hours: float
    max_extends: int
    extend_before_hours: float


class HoldLike(Protocol):
    status: HoldStatus
    hold_until: datetime
    extend_count: int


def compute_hold_until(
    now: datetime,
    config: HoldConfig,
    custom_duration_hours: float | None = None,
) -> datetime:
    hours = config.duration_hours if custom_duration_hours is None else custom_duration_hours
    if hours is None or not math.isfinite(hours) or hours <= 0:
        raise InvalidDuration(hours)
    try:
        return now + timedelta(hours=hours)
    except OverflowError as exc:
        raise InvalidDuration(hours) from exc


def extend_window_opens_at(hold: HoldLike, config: HoldConfig) -> datetime:
    return hold.hold_until - timedelta(hours=config.extend_before_hours)


def can_extend(hold: HoldLike, now: datetime, config: HoldConfig) -> bool:
    """True only for an ACTIVE hold with extensions left, inside its closing window."""
    if hold.status != HoldStatus.ACTIVE:
        return False
    if hold.extend_count >= config.max_extends:
        return False
    return now >= extend_window_opens_at(hold, config)


def is_expired(hold: HoldLike, now: datetime) -> bool:
    return hold.status == HoldStatus.ACTIVE and now >= hold.hold_until
