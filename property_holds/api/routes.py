from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel
from sqlalchemy.orm import Session

from property_holds.core.config import get_settings
from property_holds.core.errors import (
    AlreadyHeld,
    ExtendNotAllowed,
    HoldError,
    InvalidConfigValue,
    InvalidDuration,
    NotActive,
    NotFound,
    NotHoldable,
    NotHolder,
    StorageConflict,
)
from property_holds.models.hold import HoldStatus
from property_holds.models.user import User
from property_holds.schemas import (
    CancelPropertyHoldDto,
    CreatePropertyHoldDto,
    ExtendPropertyHoldDto,
    HoldConfigResponse,
    NotificationResponse,
    PropertyHoldResponse,
    SweepResponse,
    SystemConfigResponse,
    UpdateSystemConfigDto,
)
from property_holds.services.db import get_db
from property_holds.services.lifecycle import get_lifecycle_manager
from property_holds.services.notifications import NotificationService
from property_holds.services.query import HoldQueryService
from property_holds.services.system_config import SystemConfigService

router = APIRouter()

_ERROR_STATUS: list[tuple[type[HoldError], int]] = [
    (NotFound, status.HTTP_404_NOT_FOUND),
    (NotHolder, status.HTTP_403_FORBIDDEN),
    (AlreadyHeld, status.HTTP_409_CONFLICT),
    (NotHoldable, status.HTTP_409_CONFLICT),
    (NotActive, status.HTTP_409_CONFLICT),
    (StorageConflict, status.HTTP_409_CONFLICT),
    (ExtendNotAllowed, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidDuration, status.HTTP_400_BAD_REQUEST),
    (InvalidConfigValue, status.HTTP_400_BAD_REQUEST),
]


def _authorize(token: str | None) -> None:
    settings = get_settings()
    expected = settings.api_token
    if expected and token != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API token")


def current_user(
    session: Session = Depends(get_db),
    x_user_id: str | None = Header(default=None, alias="x-user-id"),
    x_api_token: str | None = Header(default=None, alias="x-api-token"),
) -> User:
    _authorize(x_api_token)
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing x-user-id header")
    user = session.get(User, x_user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown or inactive user")
    return user


def admin_user(user: User = Depends(current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrator role required")
    return user


@contextmanager
def _hold_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except HoldError as exc:
        status_code = next(
            (code for error_type, code in _ERROR_STATUS if isinstance(exc, error_type)),
            status.HTTP_400_BAD_REQUEST,
        )
        logger.warning(
            "{operation} rejected with {code}: {message}",
            operation=operation,
            code=exc.code,
            message=exc.message,
        )
        raise HTTPException(status_code=status_code, detail={"code": exc.code, "message": exc.message}) from exc


def _json(model: BaseModel | list[BaseModel], status_code: int = status.HTTP_200_OK) -> JSONResponse:
    if isinstance(model, list):
        content = [item.model_dump(mode="json", by_alias=True) for item in model]
    else:
        content = model.model_dump(mode="json", by_alias=True)
    return JSONResponse(status_code=status_code, content=content)


@router.post("/holds")
def create_hold(
    payload: CreatePropertyHoldDto,
    session: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    if payload.custom_duration_hours is not None and not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only administrators may set a custom duration")

    manager = get_lifecycle_manager(session)
    with _hold_errors("create_hold"):
        hold = manager.create_hold(
            property_id=payload.property_id,
            ctv_id=user.id,
            reason=payload.reason,
            custom_duration_hours=payload.custom_duration_hours,
        )
    return _json(PropertyHoldResponse.model_validate(hold), status_code=status.HTTP_201_CREATED)


@router.post("/holds/sweep")
def sweep_holds(session: Session = Depends(get_db), admin: User = Depends(admin_user)):
    manager = get_lifecycle_manager(session)
    result = manager.expire_sweep()
    logger.info("Manual sweep triggered by {admin_id}", admin_id=admin.id)
    return _json(
        SweepResponse(now=result.now, expired=result.expired, skipped=result.skipped, failed=result.failed)
    )


@router.get("/holds/check/{property_id}")
def check_hold(property_id: str, session: Session = Depends(get_db), user: User = Depends(current_user)):
    query = HoldQueryService(session)
    response = query.check_hold(property_id=property_id, requesting_ctv_id=user.id, reveal_holder=user.is_admin)
    return _json(response)


@router.get("/holds/mine")
def my_holds(
    status_filter: HoldStatus | None = Query(default=None, alias="status"),
    session: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    holds = HoldQueryService(session).list_holds(ctv_id=user.id, status=status_filter)
    return _json([PropertyHoldResponse.model_validate(hold) for hold in holds])


@router.get("/holds")
def list_holds(
    status_filter: HoldStatus | None = Query(default=None, alias="status"),
    property_id: str | None = Query(default=None, alias="propertyId"),
    ctv_id: str | None = Query(default=None, alias="ctvId"),
    limit: int = Query(default=100, ge=1, le=500),
    session: Session = Depends(get_db),
    _: User = Depends(admin_user),
):
    holds = HoldQueryService(session).list_holds(
        ctv_id=ctv_id, status=status_filter, property_id=property_id, limit=limit
    )
    return _json([PropertyHoldResponse.model_validate(hold) for hold in holds])


@router.post("/holds/{hold_id}/extend")
def extend_hold(
    hold_id: str,
    payload: ExtendPropertyHoldDto | None = None,
    session: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    payload = payload or ExtendPropertyHoldDto()
    if payload.custom_duration_hours is not None and not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only administrators may set a custom duration")

    manager = get_lifecycle_manager(session)
    with _hold_errors("extend_hold"):
        hold = manager.extend_hold(
            hold_id=hold_id,
            requested_by=user.id,
            custom_duration_hours=payload.custom_duration_hours,
            is_admin=user.is_admin,
        )
    return _json(PropertyHoldResponse.model_validate(hold))


@router.post("/holds/{hold_id}/cancel")
def cancel_hold(
    hold_id: str,
    payload: CancelPropertyHoldDto | None = None,
    session: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    payload = payload or CancelPropertyHoldDto()
    manager = get_lifecycle_manager(session)
    with _hold_errors("cancel_hold"):
        hold = manager.cancel_hold(
            hold_id=hold_id,
            cancelled_by=user.id,
            reason=payload.reason,
            is_admin=user.is_admin,
        )
    return _json(PropertyHoldResponse.model_validate(hold))


@router.post("/holds/{hold_id}/auto-cancel")
def auto_cancel_hold(
    hold_id: str,
    payload: CancelPropertyHoldDto | None = None,
    session: Session = Depends(get_db),
    admin: User = Depends(admin_user),
):
    reason = (payload.reason if payload else None) or "Property no longer available"
    manager = get_lifecycle_manager(session)
    with _hold_errors("auto_cancel"):
        hold = manager.auto_cancel(hold_id=hold_id, reason=reason, actor_id=admin.id)
    return _json(PropertyHoldResponse.model_validate(hold))


@router.post("/properties/{property_id}/release")
def release_property(
    property_id: str,
    payload: CancelPropertyHoldDto | None = None,
    session: Session = Depends(get_db),
    admin: User = Depends(admin_user),
):
    reason = (payload.reason if payload else None) or "Property no longer available"
    manager = get_lifecycle_manager(session)
    with _hold_errors("release_property"):
        hold = manager.release_property(property_id=property_id, reason=reason, actor_id=admin.id)
    if hold is None:
        return JSONResponse(content={"released": False})
    return JSONResponse(
        content={"released": True, "hold": PropertyHoldResponse.model_validate(hold).model_dump(mode="json", by_alias=True)}
    )


@router.get("/system-config/hold")
def hold_config(session: Session = Depends(get_db), _: User = Depends(current_user)):
    config = SystemConfigService(session).hold_config()
    return _json(HoldConfigResponse.model_validate(config))


@router.get("/system-config")
def list_system_config(
    category: str | None = Query(default=None),
    session: Session = Depends(get_db),
    _: User = Depends(admin_user),
):
    configs = SystemConfigService(session).list_configs(category=category)
    return _json([SystemConfigResponse.model_validate(config) for config in configs])


@router.put("/system-config/{key}")
def update_system_config(
    key: str,
    payload: UpdateSystemConfigDto,
    session: Session = Depends(get_db),
    admin: User = Depends(admin_user),
):
    with _hold_errors("update_system_config"):
        config = SystemConfigService(session).update_value(key, payload.value)
    logger.info("System config {key} updated by {admin_id}", key=key, admin_id=admin.id)
    return _json(SystemConfigResponse.model_validate(config))


@router.get("/notifications")
def my_notifications(
    unread: bool = Query(default=False),
    session: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    notifications = NotificationService(session).list_for_user(user.id, unread_only=unread)
    return _json([NotificationResponse.model_validate(item) for item in notifications])


@router.post("/notifications/read-all")
def mark_all_notifications_read(session: Session = Depends(get_db), user: User = Depends(current_user)):
    updated = NotificationService(session).mark_all_read(user.id)
    return JSONResponse(content={"updated": updated})


@router.post("/notifications/{notification_id}/read")
def mark_notification_read(
    notification_id: str,
    session: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    with _hold_errors("mark_notification_read"):
        notification = NotificationService(session).mark_read(notification_id, user.id)
    return _json(NotificationResponse.model_validate(notification))


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
