from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from conftest import as_user
from property_holds.core.config import get_settings
from property_holds.models.hold import PropertyHold
from property_holds.services.db import db_session

CTV = as_user("c1")
OTHER = as_user("c2")
ADMIN = as_user("admin")


def _create(client, property_id="p1", headers=CTV, **body):
    return client.post("/holds", json={"propertyId": property_id, **body}, headers=headers)


def test_health(app_client):
    assert app_client.get("/health").json() == {"status": "ok"}


def test_identity_is_required(app_client):
    assert app_client.post("/holds", json={"propertyId": "p1"}).status_code == 401
    assert _create(app_client, headers=as_user("ghost")).status_code == 401


def test_api_token_is_enforced_when_configured(app_client, monkeypatch):
    monkeypatch.setenv("API_TOKEN", "s3cret")
    get_settings.cache_clear()

    assert _create(app_client).status_code == 401
    resp = app_client.post("/holds", json={"propertyId": "p1"}, headers={**CTV, "x-api-token": "s3cret"})
    assert resp.status_code == 201


def test_create_hold_returns_camel_case_record(app_client):
    resp = _create(app_client, reason="viewing on Saturday")

    assert resp.status_code == 201
    body = resp.json()
    assert body["propertyId"] == "p1"
    assert body["ctvId"] == "c1"
    assert body["status"] == "ACTIVE"
    assert body["extendCount"] == 0
    assert body["reason"] == "viewing on Saturday"
    hold_until = datetime.fromisoformat(body["holdUntil"])
    created_at = datetime.fromisoformat(body["createdAt"])
    assert hold_until - created_at >= timedelta(hours=23, minutes=59)


def test_second_hold_conflicts(app_client):
    _create(app_client)

    resp = _create(app_client, headers=OTHER)

    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "already_held"


def test_sold_property_is_not_holdable(app_client):
    resp = _create(app_client, property_id="p-sold")

    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "not_holdable"


def test_custom_duration_is_admin_only(app_client):
    assert _create(app_client, customDurationHours=48).status_code == 403

    resp = _create(app_client, headers=ADMIN, customDurationHours=48)
    assert resp.status_code == 201
    body = resp.json()
    delta = datetime.fromisoformat(body["holdUntil"]) - datetime.fromisoformat(body["createdAt"])
    assert delta >= timedelta(hours=47, minutes=59)


def test_invalid_custom_duration(app_client):
    resp = _create(app_client, headers=ADMIN, customDurationHours=-1)

    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "invalid_duration"


@pytest.mark.parametrize("duration", ["1e12", "1e9", "NaN", "Infinity"])
def test_unrepresentable_custom_duration(app_client, duration):
    resp = app_client.post(
        "/holds",
        content=f'{{"propertyId": "p1", "customDurationHours": {duration}}}',
        headers={**ADMIN, "content-type": "application/json"},
    )

    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "invalid_duration"
    assert app_client.get("/holds/check/p1", headers=CTV).json()["isHeld"] is False


def test_check_hides_holder_from_other_ctvs(app_client):
    _create(app_client)

    other = app_client.get("/holds/check/p1", headers=OTHER).json()
    assert other["isHeld"] is True
    assert other["canIHold"] is False
    assert other["holdBy"] is None
    assert other["myActiveHold"] is None

    mine = app_client.get("/holds/check/p1", headers=CTV).json()
    assert mine["canIHold"] is True
    assert mine["holdBy"] == {"id": "c1", "fullName": "Nguyen Van An"}
    assert mine["myActiveHold"]["ctvId"] == "c1"

    admin = app_client.get("/holds/check/p1", headers=ADMIN).json()
    assert admin["holdBy"] == {"id": "c1", "fullName": "Nguyen Van An"}


def test_extend_outside_window_is_unprocessable(app_client):
    hold_id = _create(app_client).json()["id"]

    resp = app_client.post(f"/holds/{hold_id}/extend", json={}, headers=CTV)

    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "extend_not_allowed"


def test_extend_inside_window(app_client):
    hold_id = _create(app_client).json()["id"]
    soon = datetime.now(timezone.utc) + timedelta(minutes=30)
    with db_session() as db:
        db.execute(update(PropertyHold).where(PropertyHold.id == hold_id).values(hold_until=soon))

    resp = app_client.post(f"/holds/{hold_id}/extend", headers=CTV)

    assert resp.status_code == 200
    assert resp.json()["extendCount"] == 1


def test_cancel_flow(app_client):
    hold_id = _create(app_client).json()["id"]

    forbidden = app_client.post(f"/holds/{hold_id}/cancel", json={"reason": "mine now"}, headers=OTHER)
    assert forbidden.status_code == 403

    resp = app_client.post(f"/holds/{hold_id}/cancel", json={"reason": "customer withdrew"}, headers=CTV)
    assert resp.status_code == 200
    assert resp.json()["status"] == "CANCELLED"
    assert resp.json()["cancelledReason"] == "customer withdrew"

    again = app_client.post(f"/holds/{hold_id}/cancel", headers=CTV)
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "not_active"


def test_admin_cancel(app_client):
    hold_id = _create(app_client).json()["id"]

    resp = app_client.post(f"/holds/{hold_id}/cancel", json={"reason": "policy"}, headers=ADMIN)

    assert resp.json()["status"] == "CANCELLED_BY_ADMIN"


def test_unknown_hold(app_client):
    resp = app_client.post("/holds/missing/cancel", headers=CTV)
    assert resp.status_code == 404


def test_auto_cancel_and_release_are_admin_only(app_client):
    hold_id = _create(app_client).json()["id"]

    assert app_client.post(f"/holds/{hold_id}/auto-cancel", headers=CTV).status_code == 403
    resp = app_client.post(f"/holds/{hold_id}/auto-cancel", json={"reason": "sold offline"}, headers=ADMIN)
    assert resp.json()["status"] == "AUTO_CANCELLED"

    _create(app_client, property_id="p2")
    released = app_client.post("/properties/p2/release", headers=ADMIN).json()
    assert released["released"] is True
    assert released["hold"]["status"] == "AUTO_CANCELLED"
    assert app_client.post("/properties/p2/release", headers=ADMIN).json() == {"released": False}


def test_sweep_endpoint(app_client):
    hold_id = _create(app_client).json()["id"]
    past = datetime.now(timezone.utc) - timedelta(minutes=5)
    with db_session() as db:
        db.execute(update(PropertyHold).where(PropertyHold.id == hold_id).values(hold_until=past))

    assert app_client.post("/holds/sweep", headers=CTV).status_code == 403
    resp = app_client.post("/holds/sweep", headers=ADMIN)

    assert resp.status_code == 200
    assert resp.json()["expired"] == [hold_id]
    assert app_client.get("/holds/check/p1", headers=OTHER).json()["isHeld"] is False


def test_listing(app_client):
    _create(app_client)
    _create(app_client, property_id="p2", headers=OTHER)

    mine = app_client.get("/holds/mine", headers=CTV).json()
    assert [h["propertyId"] for h in mine] == ["p1"]

    assert app_client.get("/holds", headers=CTV).status_code == 403
    everything = app_client.get("/holds", params={"status": "ACTIVE"}, headers=ADMIN).json()
    assert {h["propertyId"] for h in everything} == {"p1", "p2"}


def test_system_config_endpoints(app_client):
    config = app_client.get("/system-config/hold", headers=CTV).json()
    assert config == {"durationHours": 24.0, "maxExtends": 2, "extendBeforeHours": 2.0}

    assert app_client.put("/system-config/hold_duration_hours", json={"value": "6"}, headers=CTV).status_code == 403
    bad = app_client.put("/system-config/hold_duration_hours", json={"value": "zero"}, headers=ADMIN)
    assert bad.status_code == 400

    ok = app_client.put("/system-config/hold_duration_hours", json={"value": "6"}, headers=ADMIN)
    assert ok.status_code == 200
    assert ok.json()["value"] == "6"

    body = _create(app_client).json()
    delta = datetime.fromisoformat(body["holdUntil"]) - datetime.fromisoformat(body["createdAt"])
    assert timedelta(hours=5, minutes=59) <= delta <= timedelta(hours=6, minutes=1)

    listed = app_client.get("/system-config", params={"category": "hold"}, headers=ADMIN).json()
    assert len(listed) == 3


def test_notifications(app_client):
    _create(app_client)

    notifications = app_client.get("/notifications", headers=CTV).json()
    assert [n["type"] for n in notifications] == ["HOLD_CREATED"]
    assert notifications[0]["isRead"] is False

    read = app_client.post(f"/notifications/{notifications[0]['id']}/read", headers=CTV)
    assert read.json()["isRead"] is True
    assert app_client.get("/notifications", params={"unread": True}, headers=CTV).json() == []
    assert app_client.post(f"/notifications/{notifications[0]['id']}/read", headers=OTHER).status_code == 404


@pytest.mark.parametrize("value", ["nan", "inf"])
def test_non_finite_config_is_refused_and_holds_still_work(app_client, value):
    resp = app_client.put("/system-config/hold_duration_hours", json={"value": value}, headers=ADMIN)

    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "invalid_config_value"
    assert _create(app_client).status_code == 201


def test_mark_all_notifications_read(app_client):
    hold_id = _create(app_client).json()["id"]
    app_client.post(f"/holds/{hold_id}/cancel", headers=CTV)
    _create(app_client, property_id="p2", headers=OTHER)

    resp = app_client.post("/notifications/read-all", headers=CTV)

    assert resp.json() == {"updated": 2}
    assert app_client.get("/notifications", params={"unread": True}, headers=CTV).json() == []
    assert len(app_client.get("/notifications", params={"unread": True}, headers=OTHER).json()) == 1
    assert app_client.post("/notifications/read-all", headers=CTV).json() == {"updated": 0}
