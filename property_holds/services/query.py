from __future__ import annotations

from sqlalchemy.orm import Session

from property_holds.models.hold import HoldStatus, PropertyHold
from property_holds.models.user import User
from property_holds.schemas.hold import CheckPropertyHoldResponse, HolderInfo, PropertyHoldResponse
from property_holds.services.holds import HoldService


class HoldQueryService:
    """Read-only projections over holds.

    Nothing here writes, and a hold past its ``hold_until`` is still reported
    as held until the expiry sweep has transitioned it.
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self.holds = HoldService(session)

    def check_hold(
        self,
        *,
        property_id: str,
        requesting_ctv_id: str,
        reveal_holder: bool = True,
    ) -> CheckPropertyHoldResponse:
        hold = self.holds.active_hold(property_id=property_id)
        if hold is None:
            return CheckPropertyHoldResponse(is_held=False, can_i_hold=True)

        mine = hold.ctv_id == requesting_ctv_id
        holder = None
        if reveal_holder or mine:
            user = self.session.get(User, hold.ctv_id)
            holder = HolderInfo(id=hold.ctv_id, full_name=user.full_name if user else None)

        return CheckPropertyHoldResponse(
            is_held=True,
            hold_by=holder,
            hold_until=hold.hold_until,
            can_i_hold=mine,
            my_active_hold=PropertyHoldResponse.model_validate(hold) if mine else None,
        )

    def list_holds(
        self,
        *,
        ctv_id: str | None = None,
        status: HoldStatus | None = None,
        property_id: str | None = None,
        limit: int = 100,
    ) -> list[PropertyHold]:
        return self.holds.list_holds(ctv_id=ctv_id, status=status, property_id=property_id, limit=limit)
