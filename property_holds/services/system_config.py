from __future__ import annotations

import json
import math

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from property_holds.core.config import get_settings
from property_holds.core.errors import InvalidConfigValue, NotFound
from property_holds.models.system_config import SystemConfig
from property_holds.services.policy import HoldConfig

HOLD_DURATION_HOURS = "hold_duration_hours"
HOLD_MAX_EXTENDS = "hold_max_extends"
HOLD_EXTEND_BEFORE_HOURS = "hold_extend_before_hours"

CONFIG_TYPES = {"number", "string", "boolean", "json"}


class SystemConfigService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def seed_defaults(self) -> None:
        settings = get_settings()
        defaults = [
            (HOLD_DURATION_HOURS, settings.hold_duration_hours, "Hold duration (hours)",
             "Default length of a new hold or extension"),
            (HOLD_MAX_EXTENDS, settings.hold_max_extends, "Maximum extensions",
             "How many times a CTV may extend one hold"),
            (HOLD_EXTEND_BEFORE_HOURS, settings.hold_extend_before_hours, "Extend window (hours)",
             "Extensions are accepted only this many hours before expiry"),
        ]
        for key, value, label, description in defaults:
            if self.find(key) is not None:
                continue
            self.session.add(
                SystemConfig(
                    key=key,
                    value=_format_number(value),
                    type="number",
                    label=label,
                    category="hold",
                    description=description,
                )
            )
            logger.info("Seeded system config {key}={value}", key=key, value=value)
        self.session.flush()

    def find(self, key: str) -> SystemConfig | None:
        stmt = select(SystemConfig).where(SystemConfig.key == key)
        return self.session.scalars(stmt).first()

    def get(self, key: str) -> SystemConfig:
        config = self.find(key)
        if config is None:
            raise NotFound(f"Config key '{key}' not found")
        return config

    def list_configs(self, *, category: str | None = None) -> list[SystemConfig]:
        stmt = select(SystemConfig).order_by(SystemConfig.category, SystemConfig.key)
        if category:
            stmt = stmt.where(SystemConfig.category == category)
        return list(self.session.scalars(stmt))

    def update_value(self, key: str, value: str) -> SystemConfig:
        config = self.get(key)
        validate_value(key, value, config.type)
        previous = config.value
        config.value = value
        self.session.flush()
        logger.info("System config {key} changed {previous} -> {value}", key=key, previous=previous, value=value)
        return config

    def hold_config(self) -> HoldConfig:
        settings = get_settings()
        return HoldConfig(
            duration_hours=self._number(HOLD_DURATION_HOURS, settings.hold_duration_hours),
            max_extends=int(self._number(HOLD_MAX_EXTENDS, settings.hold_max_extends)),
            extend_before_hours=self._number(HOLD_EXTEND_BEFORE_HOURS, settings.hold_extend_before_hours),
        )

    def _number(self, key: str, fallback: float) -> float:
        config = self.find(key)
        if config is None:
            return fallback
        try:
            number = float(config.value)
        except ValueError:
            logger.warning("System config {key} holds non-numeric {value!r}; using {fallback}",
                           key=key, value=config.value, fallback=fallback)
            return fallback
        if not math.isfinite(number):
            logger.warning("System config {key} holds non-finite {value!r}; using {fallback}",
                           key=key, value=config.value, fallback=fallback)
            return fallback
        return number


def validate_value(key: str, value: str, type_: str) -> None:
    if type_ not in CONFIG_TYPES:
        raise InvalidConfigValue(f"Unknown config type '{type_}'")

    if type_ == "number":
        try:
            number = float(value)
        except ValueError:
            raise InvalidConfigValue(f"Value for '{key}' must be a valid number") from None
        if not math.isfinite(number):
            raise InvalidConfigValue(f"Value for '{key}' must be a finite number")
        if key == HOLD_DURATION_HOURS and number <= 0:
            raise InvalidConfigValue(f"'{key}' must be greater than 0")
        if key in (HOLD_MAX_EXTENDS, HOLD_EXTEND_BEFORE_HOURS) and number < 0:
            raise InvalidConfigValue(f"'{key}' must not be negative")
        if key == HOLD_MAX_EXTENDS and not number.is_integer():
            raise InvalidConfigValue(f"'{key}' must be a whole number")
    elif type_ == "boolean":
        if value not in ("true", "false"):
            raise InvalidConfigValue(f"Value for '{key}' must be 'true' or 'false'")
    elif type_ == "json":
        try:
            json.loads(value)
        except ValueError:
            raise InvalidConfigValue(f"Value for '{key}' must be valid JSON") from None


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
