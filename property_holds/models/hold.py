from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Enum, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UTCDateTime, new_id


class HoldStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    CANCELLED_BY_ADMIN = "CANCELLED_BY_ADMIN"
    AUTO_CANCELLED = "AUTO_CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not HoldStatus.ACTIVE


class PropertyHold(TimestampMixin, Base):
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    property_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    ctv_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[HoldStatus] = mapped_column(
        Enum(HoldStatus, native_enum=False, length=32, validate_strings=True),
        nullable=False,
        default=HoldStatus.ACTIVE,
    )
    hold_until: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    extend_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cancelled_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cancelled_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        # One ACTIVE hold per property; the storage layer arbitrates racing inserts.
        Index(
            "uq_property_hold_active_property",
            "property_id",
            unique=True,
            sqlite_where=text("status = 'ACTIVE'"),
            postgresql_where=text("status = 'ACTIVE'"),
        ),
        Index("ix_property_hold_status_until", "status", "hold_until"),
    )
