from __future__ import annotations

from types import SimpleNamespace

import pytest

from conftest import T0, hours
from property_holds.core.errors import InvalidDuration
from property_holds.models.hold import HoldStatus
from property_holds.services.policy import (
    HoldConfig,
    can_extend,
    compute_hold_until,
    extend_window_opens_at,
    is_expired,
)

CONFIG = HoldConfig(duration_hours=24, max_extends=2, extend_before_hours=1)


def _hold(status=HoldStatus.ACTIVE, hold_until=T0 + hours(24), extend_count=0):
    return SimpleNamespace(status=status, hold_until=hold_until, extend_count=extend_count)


def test_compute_hold_until_uses_configured_duration():
    assert compute_hold_until(T0, CONFIG) == T0 + hours(24)


def test_compute_hold_until_prefers_custom_duration():
    assert compute_hold_until(T0, CONFIG, custom_duration_hours=6.5) == T0 + hours(6.5)


@pytest.mark.parametrize("custom", [0, -3])
def test_compute_hold_until_rejects_non_positive_custom_duration(custom):
    with pytest.raises(InvalidDuration):
        compute_hold_until(T0, CONFIG, custom_duration_hours=custom)


@pytest.mark.parametrize("custom", [float("nan"), float("inf"), 1e9, 1e12])
def test_compute_hold_until_rejects_unrepresentable_durations(custom):
    with pytest.raises(InvalidDuration):
        compute_hold_until(T0, CONFIG, custom_duration_hours=custom)


def test_compute_hold_until_rejects_non_positive_configured_duration():
    with pytest.raises(InvalidDuration):
        compute_hold_until(T0, HoldConfig(duration_hours=0, max_extends=1, extend_before_hours=1))


def test_extend_window_opens_before_expiry():
    assert extend_window_opens_at(_hold(), CONFIG) == T0 + hours(23)


def test_can_extend_only_inside_closing_window():
    hold = _hold()
    assert not can_extend(hold, T0 + hours(2), CONFIG)
    assert can_extend(hold, T0 + hours(23), CONFIG)
    assert can_extend(hold, T0 + hours(23.5), CONFIG)


def test_can_extend_respects_limit():
    assert can_extend(_hold(extend_count=1), T0 + hours(23.5), CONFIG)
    assert not can_extend(_hold(extend_count=2), T0 + hours(23.5), CONFIG)


@pytest.mark.parametrize("status", [s for s in HoldStatus if s is not HoldStatus.ACTIVE])
def test_can_extend_is_false_for_terminal_states(status):
    assert not can_extend(_hold(status=status), T0 + hours(23.5), CONFIG)


def test_is_expired_boundaries():
    hold = _hold()
    assert not is_expired(hold, T0 + hours(23.99))
    assert is_expired(hold, T0 + hours(24))
    assert is_expired(hold, T0 + hours(30))


def test_is_expired_ignores_non_active_holds():
    assert not is_expired(_hold(status=HoldStatus.CANCELLED), T0 + hours(30))
