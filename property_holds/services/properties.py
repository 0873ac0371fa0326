from __future__ import annotations

from typing import Protocol

from loguru import logger
from sqlalchemy.orm import Session

from property_holds.core.errors import NotFound, NotHoldable
from property_holds.models.property import Property, PropertyStatus

HOLDABLE_STATUSES = frozenset({PropertyStatus.AVAILABLE})


class PropertyGate(Protocol):
    def ensure_holdable(self, property_id: str) -> None: ...


class PropertyService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def ensure_holdable(self, property_id: str) -> None:
        prop = self.session.get(Property, property_id)
        if prop is None:
            raise NotFound(f"Property {property_id} not found")
        if prop.status not in HOLDABLE_STATUSES:
            logger.debug("Property {property_id} not holdable in {status}", property_id=property_id, status=prop.status)
            raise NotHoldable(property_id, prop.status.value)
