from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from property_holds.models.hold import HoldStatus, PropertyHold


class HoldService:
    """Data access for PropertyHold rows. Transitions live in the lifecycle manager."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add_hold(
        self,
        *,
        property_id: str,
        ctv_id: str,
        hold_until: datetime,
        reason: str | None = None,
    ) -> PropertyHold:
        hold = PropertyHold(
            property_id=property_id,
            ctv_id=ctv_id,
            status=HoldStatus.ACTIVE,
            hold_until=hold_until,
            reason=reason,
            extend_count=0,
        )
        self.session.add(hold)
        return hold

    def get_hold(self, *, hold_id: str, for_update: bool = False) -> PropertyHold | None:
        stmt = select(PropertyHold).where(PropertyHold.id == hold_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.scalars(stmt).first()

    def active_hold(self, *, property_id: str) -> PropertyHold | None:
        stmt = select(PropertyHold).where(
            PropertyHold.property_id == property_id,
            PropertyHold.status == HoldStatus.ACTIVE,
        )
        return self.session.scalars(stmt).first()

    def expired_candidates(self, *, now: datetime) -> list[str]:
        stmt = (
            select(PropertyHold.id)
            .where(PropertyHold.status == HoldStatus.ACTIVE, PropertyHold.hold_until <= now)
            .order_by(PropertyHold.hold_until)
        )
        return list(self.session.scalars(stmt))

    def list_holds(
        self,
        *,
        ctv_id: str | None = None,
        status: HoldStatus | None = None,
        property_id: str | None = None,
        limit: int = 100,
    ) -> list[PropertyHold]:
        stmt = select(PropertyHold).order_by(PropertyHold.created_at.desc()).limit(limit)
        if ctv_id:
            stmt = stmt.where(PropertyHold.ctv_id == ctv_id)
        if status:
            stmt = stmt.where(PropertyHold.status == status)
        if property_id:
            stmt = stmt.where(PropertyHold.property_id == property_id)
        return list(self.session.scalars(stmt))
