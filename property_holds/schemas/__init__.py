from .hold import (
    CancelPropertyHoldDto,
    CheckPropertyHoldResponse,
    CreatePropertyHoldDto,
    ExtendPropertyHoldDto,
    HolderInfo,
    PropertyHoldResponse,
    SweepResponse,
)
from .notification import NotificationResponse
from .system_config import HoldConfigResponse, SystemConfigResponse, UpdateSystemConfigDto

__all__ = [
    "CreatePropertyHoldDto",
    "ExtendPropertyHoldDto",
    "CancelPropertyHoldDto",
    "PropertyHoldResponse",
    "HolderInfo",
    "CheckPropertyHoldResponse",
    "SweepResponse",
    "NotificationResponse",
    "HoldConfigResponse",
    "SystemConfigResponse",
    "UpdateSystemConfigDto",
]
