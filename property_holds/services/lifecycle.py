"""Hold lifecycle: the only code that moves a PropertyHold between states.

ACTIVE is the sole live state; EXPIRED, CANCELLED, CANCELLED_BY_ADMIN and
AUTO_CANCELLED are terminal. Each public operation is one short transaction on
the manager's session and commits before returning.

Concurrency rests on two storage guarantees:

* a partial unique index allows one ACTIVE row per property, so racing
  ``create_hold`` calls resolve to one winner and ``AlreadyHeld`` for the rest;
* ``PropertyHold.version`` is the mapper's version column, so every update is
  a compare-and-swap. A lost update surfaces as ``StorageConflict`` and the
  operation is retried once against freshly loaded state.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterator

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt

from property_holds.core.errors import (
    AlreadyHeld,
    ExtendNotAllowed,
    NotActive,
    NotFound,
    NotHolder,
    StorageConflict,
)
from property_holds.models.base import utcnow
from property_holds.models.hold import HoldStatus, PropertyHold
from property_holds.services.events import HoldEvent, HoldEventPublisher, HoldEventType, NullPublisher
from property_holds.services.holds import HoldService
from property_holds.services.notifications import NotificationService
from property_holds.services.policy import (
    HoldConfig,
    can_extend,
    compute_hold_until,
    extend_window_opens_at,
    is_expired,
)
from property_holds.services.properties import PropertyGate, PropertyService
from property_holds.services.system_config import SystemConfigService

Clock = Callable[[], datetime]


def _log_conflict(retry_state: RetryCallState) -> None:
    logger.warning(
        "Concurrent write detected in {operation}; retrying once",
        operation=retry_state.fn.__name__ if retry_state.fn else "unknown",
    )


_retry_on_conflict = retry(
    retry=retry_if_exception_type(StorageConflict),
    stop=stop_after_attempt(2),
    before_sleep=_log_conflict,
    reraise=True,
)


@dataclass
class SweepResult:
    now: datetime
    expired: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class HoldLifecycleManager:
    def __init__(
        self,
        *,
        session: Session,
        config: HoldConfig,
        property_gate: PropertyGate | None = None,
        publisher: HoldEventPublisher | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.session = session
        self.config = config
        self.holds = HoldService(session)
        self.property_gate = property_gate or PropertyService(session)
        self.publisher = publisher or NullPublisher()
        self.clock = clock

    @_retry_on_conflict
    def create_hold(
        self,
        *,
        property_id: str,
        ctv_id: str,
        reason: str | None = None,
        custom_duration_hours: float | None = None,
    ) -> PropertyHold:
        with self._unit_of_work():
            now = self.clock()
            if self.holds.active_hold(property_id=property_id) is not None:
                raise AlreadyHeld(property_id)
            self.property_gate.ensure_holdable(property_id)

            hold_until = compute_hold_until(now, self.config, custom_duration_hours)
            hold = self.holds.add_hold(
                property_id=property_id,
                ctv_id=ctv_id,
                hold_until=hold_until,
                reason=reason,
            )
            try:
                self.session.flush()
            except IntegrityError as exc:
                # Lost the race to another insert between the check and the flush.
                raise AlreadyHeld(property_id) from exc

            self._publish(HoldEventType.CREATED, hold, actor_id=ctv_id, reason=reason, now=now)

        logger.info(
            "Hold {hold_id} created on property {property_id} for {ctv_id} until {hold_until}",
            hold_id=hold.id,
            property_id=property_id,
            ctv_id=ctv_id,
            hold_until=hold.hold_until.isoformat(),
        )
        return hold

    @_retry_on_conflict
    def extend_hold(
        self,
        *,
        hold_id: str,
        requested_by: str,
        custom_duration_hours: float | None = None,
        is_admin: bool = False,
    ) -> PropertyHold:
        with self._unit_of_work():
            now = self.clock()
            hold = self._load_active(hold_id)
            self._ensure_holder(hold, requested_by, is_admin)

            if not can_extend(hold, now, self.config):
                raise ExtendNotAllowed(
                    hold.id,
                    self._extend_refusal(hold),
                    window_opens_at=extend_window_opens_at(hold, self.config),
                )

            hold.hold_until = compute_hold_until(now, self.config, custom_duration_hours)
            hold.extend_count += 1
            self.session.flush()
            self._publish(HoldEventType.EXTENDED, hold, actor_id=requested_by, now=now)

        logger.info(
            "Hold {hold_id} extended by {user_id} to {hold_until} ({count}/{limit})",
            hold_id=hold.id,
            user_id=requested_by,
            hold_until=hold.hold_until.isoformat(),
            count=hold.extend_count,
            limit=self.config.max_extends,
        )
        return hold

    @_retry_on_conflict
    def cancel_hold(
        self,
        *,
        hold_id: str,
        cancelled_by: str,
        reason: str | None = None,
        is_admin: bool = False,
    ) -> PropertyHold:
        with self._unit_of_work():
            now = self.clock()
            hold = self._load_active(hold_id)
            self._ensure_holder(hold, cancelled_by, is_admin)

            hold.status = HoldStatus.CANCELLED_BY_ADMIN if is_admin else HoldStatus.CANCELLED
            hold.cancelled_by = cancelled_by
            hold.cancelled_reason = reason
            self.session.flush()
            self._publish(HoldEventType.CANCELLED, hold, actor_id=cancelled_by, reason=reason, now=now)

        logger.info(
            "Hold {hold_id} {status} by {user_id}",
            hold_id=hold.id,
            status=hold.status.value,
            user_id=cancelled_by,
        )
        return hold

    @_retry_on_conflict
    def auto_cancel(self, *, hold_id: str, reason: str, actor_id: str | None = None) -> PropertyHold:
        with self._unit_of_work():
            now = self.clock()
            hold = self._load_active(hold_id)
            hold.status = HoldStatus.AUTO_CANCELLED
            hold.cancelled_by = actor_id
            hold.cancelled_reason = reason
            self.session.flush()
            self._publish(HoldEventType.AUTO_CANCELLED, hold, actor_id=actor_id, reason=reason, now=now)

        logger.info("Hold {hold_id} auto-cancelled: {reason}", hold_id=hold.id, reason=reason)
        return hold

    def release_property(
        self, *, property_id: str, reason: str, actor_id: str | None = None
    ) -> PropertyHold | None:
        hold = self.holds.active_hold(property_id=property_id)
        if hold is None:
            return None
        try:
            return self.auto_cancel(hold_id=hold.id, reason=reason, actor_id=actor_id)
        except NotActive:
            logger.info("Hold {hold_id} left ACTIVE concurrently; nothing to release", hold_id=hold.id)
            return None

    def expire_sweep(self, now: datetime | None = None) -> SweepResult:
        now = now or self.clock()
        result = SweepResult(now=now)
        candidates = self.holds.expired_candidates(now=now)

        for hold_id in candidates:
            try:
                expired = self._expire_one(hold_id, now)
            except Exception:  # noqa: BLE001
                logger.exception("Failed to expire hold {hold_id}", hold_id=hold_id)
                result.failed.append(hold_id)
                continue
            if expired:
                result.expired.append(hold_id)
            else:
                result.skipped.append(hold_id)

        if candidates:
            logger.info(
                "Expiry sweep at {now}: {expired} expired, {skipped} skipped, {failed} failed",
                now=now.isoformat(),
                expired=len(result.expired),
                skipped=len(result.skipped),
                failed=len(result.failed),
            )
        return result

    @_retry_on_conflict
    def _expire_one(self, hold_id: str, now: datetime) -> bool:
        with self._unit_of_work():
            hold = self.holds.get_hold(hold_id=hold_id, for_update=True)
            if hold is None or not is_expired(hold, now):
                return False
            hold.status = HoldStatus.EXPIRED
            self.session.flush()
            self._publish(HoldEventType.EXPIRED, hold, now=now)
        return True

    @contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        try:
            yield
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            raise StorageConflict("Hold was modified concurrently") from exc
        except Exception:
            self.session.rollback()
            raise

    def _load_active(self, hold_id: str) -> PropertyHold:
        hold = self.holds.get_hold(hold_id=hold_id, for_update=True)
        if hold is None:
            raise NotFound(f"Hold {hold_id} not found")
        if hold.status.is_terminal:
            raise NotActive(hold.id, hold.status.value)
        return hold

    def _ensure_holder(self, hold: PropertyHold, user_id: str, is_admin: bool) -> None:
        if not is_admin and hold.ctv_id != user_id:
            raise NotHolder(hold.id, user_id)

    def _extend_refusal(self, hold: PropertyHold) -> str:
        if hold.extend_count >= self.config.max_extends:
            return f"extension limit of {self.config.max_extends} reached"
        opens_at = extend_window_opens_at(hold, self.config)
        return f"extensions open at {opens_at.isoformat()}"

    def _publish(
        self,
        event_type: HoldEventType,
        hold: PropertyHold,
        *,
        now: datetime,
        actor_id: str | None = None,
        reason: str | None = None,
    ) -> None:
        self.publisher.publish(
            HoldEvent.from_hold(event_type, hold, actor_id=actor_id, reason=reason, occurred_at=now)
        )


def get_lifecycle_manager(session: Session, *, clock: Clock = utcnow) -> HoldLifecycleManager:
    return HoldLifecycleManager(
        session=session,
        config=SystemConfigService(session).hold_config(),
        property_gate=PropertyService(session),
        publisher=NotificationService(session),
        clock=clock,
    )
