"""Errors raised by the hold lifecycle.

Every error is recoverable and meant to be shown to the caller. ``code`` is a
stable machine-readable identifier that the HTTP layer passes through.
"""

from __future__ import annotations

from datetime import datetime


class HoldError(Exception):
    code = "hold_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AlreadyHeld(HoldError):
    code = "already_held"

    def __init__(self, property_id: str) -> None:
        super().__init__(f"Property {property_id} already has an active hold")
        self.property_id = property_id


class NotHoldable(HoldError):
    code = "not_holdable"

    def __init__(self, property_id: str, status: str) -> None:
        super().__init__(f"Property {property_id} cannot be held while {status}")
        self.property_id = property_id
        self.status = status


class NotFound(HoldError):
    code = "not_found"


class NotActive(HoldError):
    code = "not_active"

    def __init__(self, hold_id: str, status: str) -> None:
        super().__init__(f"Hold {hold_id} is {status}, not ACTIVE")
        self.hold_id = hold_id
        self.status = status


class NotHolder(HoldError):
    code = "not_holder"

    def __init__(self, hold_id: str, user_id: str) -> None:
        super().__init__(f"User {user_id} does not own hold {hold_id}")
        self.hold_id = hold_id
        self.user_id = user_id


class ExtendNotAllowed(HoldError):
    code = "extend_not_allowed"

    def __init__(self, hold_id: str, reason: str, window_opens_at: datetime | None = None) -> None:
        super().__init__(f"Hold {hold_id} cannot be extended: {reason}")
        self.hold_id = hold_id
        self.window_opens_at = window_opens_at


class InvalidDuration(HoldError):
    code = "invalid_duration"

    def __init__(self, hours: float | None) -> None:
        super().__init__(f"Hold duration must be a positive finite number of hours, got {hours}")
        self.hours = hours


class InvalidConfigValue(HoldError):
    code = "invalid_config_value"


class StorageConflict(HoldError):
    code = "storage_conflict"
