from __future__ import annotations

import pytest
from sqlalchemy import delete, update

from property_holds.core.config import get_settings
from property_holds.core.errors import InvalidConfigValue, NotFound
from property_holds.models.system_config import SystemConfig
from property_holds.services.policy import HoldConfig
from property_holds.services.system_config import (
    HOLD_DURATION_HOURS,
    HOLD_EXTEND_BEFORE_HOURS,
    HOLD_MAX_EXTENDS,
    SystemConfigService,
    validate_value,
)


def test_defaults_are_seeded_once(session):
    service = SystemConfigService(session)
    service.seed_defaults()

    configs = service.list_configs(category="hold")
    assert {c.key for c in configs} == {HOLD_DURATION_HOURS, HOLD_MAX_EXTENDS, HOLD_EXTEND_BEFORE_HOURS}
    assert all(c.type == "number" for c in configs)


def test_hold_config_reads_rows(session):
    assert SystemConfigService(session).hold_config() == HoldConfig(
        duration_hours=24, max_extends=2, extend_before_hours=2
    )


def test_update_changes_resolved_config(session):
    service = SystemConfigService(session)
    service.update_value(HOLD_DURATION_HOURS, "12")
    service.update_value(HOLD_MAX_EXTENDS, "3")

    config = service.hold_config()
    assert config.duration_hours == 12
    assert config.max_extends == 3


def test_missing_rows_fall_back_to_settings(session, monkeypatch):
    session.execute(delete(SystemConfig))
    session.flush()
    monkeypatch.setenv("HOLD_DURATION_HOURS", "36")
    get_settings.cache_clear()

    assert SystemConfigService(session).hold_config().duration_hours == 36


def test_non_finite_rows_fall_back_to_settings(session):
    session.execute(
        update(SystemConfig).where(SystemConfig.key == HOLD_DURATION_HOURS).values(value="nan")
    )
    session.execute(
        update(SystemConfig).where(SystemConfig.key == HOLD_EXTEND_BEFORE_HOURS).values(value="inf")
    )
    session.flush()

    config = SystemConfigService(session).hold_config()

    assert config.duration_hours == 24
    assert config.extend_before_hours == 2


@pytest.mark.parametrize(
    ("key", "value"),
    [
        (HOLD_DURATION_HOURS, "abc"),
        (HOLD_DURATION_HOURS, "0"),
        (HOLD_MAX_EXTENDS, "-1"),
        (HOLD_MAX_EXTENDS, "1.5"),
        (HOLD_EXTEND_BEFORE_HOURS, "-2"),
        (HOLD_DURATION_HOURS, "nan"),
        (HOLD_DURATION_HOURS, "inf"),
        (HOLD_MAX_EXTENDS, "inf"),
        (HOLD_EXTEND_BEFORE_HOURS, "NaN"),
        (HOLD_EXTEND_BEFORE_HOURS, "-inf"),
    ],
)
def test_invalid_hold_values_are_rejected(session, key, value):
    service = SystemConfigService(session)
    with pytest.raises(InvalidConfigValue):
        service.update_value(key, value)


def test_unknown_key(session):
    with pytest.raises(NotFound):
        SystemConfigService(session).update_value("does_not_exist", "1")


def test_validate_value_by_type():
    validate_value("flag", "true", "boolean")
    validate_value("payload", '{"a": 1}', "json")
    with pytest.raises(InvalidConfigValue):
        validate_value("flag", "yes", "boolean")
    with pytest.raises(InvalidConfigValue):
        validate_value("payload", "{oops", "json")
    with pytest.raises(InvalidConfigValue):
        validate_value("thing", "1", "decimal")
