from __future__ import annotations

from typing import Any

import requests

from property_holds.client.session import SessionProvider


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class HoldApiClient:
    def __init__(
        self,
        base_url: str,
        sessions: SessionProvider,
        *,
        http: Any | None = None,
        timeout: float = 15,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.sessions = sessions
        self.http = http or requests.Session()
        self.timeout = timeout

    # -----------------------
    # Holds
    # -----------------------
    def create_hold(
        self, property_id: str, *, reason: str | None = None, custom_duration_hours: float | None = None
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"propertyId": property_id}
        if reason is not None:
            body["reason"] = reason
        if custom_duration_hours is not None:
            body["customDurationHours"] = custom_duration_hours
        return self._request("POST", "/holds", json=body)

    def extend_hold(self, hold_id: str, *, custom_duration_hours: float | None = None) -> dict[str, Any]:
        body = {"customDurationHours": custom_duration_hours} if custom_duration_hours is not None else {}
        return self._request("POST", f"/holds/{hold_id}/extend", json=body)

    def cancel_hold(self, hold_id: str, *, reason: str | None = None) -> dict[str, Any]:
        return self._request("POST", f"/holds/{hold_id}/cancel", json={"reason": reason})

    def check_hold(self, property_id: str) -> dict[str, Any]:
        return self._request("GET", f"/holds/check/{property_id}")

    def my_holds(self, *, status: str | None = None) -> list[dict[str, Any]]:
        params = {"status": status} if status else None
        return self._request("GET", "/holds/mine", params=params)

    def hold_config(self) -> dict[str, Any]:
        return self._request("GET", "/system-config/hold")

    # -----------------------
    # Notifications
    # -----------------------
    def notifications(self, *, unread: bool = False) -> list[dict[str, Any]]:
        return self._request("GET", "/notifications", params={"unread": "true" if unread else "false"})

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        session = self.sessions.load()
        if session is None:
            raise ApiError(401, "Not signed in")
        headers["x-user-id"] = session.user_id
        if session.token:
            headers["x-api-token"] = session.token
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = self.http.request(
            method,
            f"{self.base_url}{path}",
            headers=self._headers(),
            timeout=self.timeout,
            **kwargs,
        )
        try:
            data = resp.json()
        except ValueError:
            data = {"detail": resp.text}
        if resp.status_code >= 400:
            detail = data.get("detail") if isinstance(data, dict) else None
            if isinstance(detail, dict):
                raise ApiError(resp.status_code, detail.get("message") or str(detail), code=detail.get("code"))
            if resp.status_code == 401:
                self.sessions.clear()
            raise ApiError(resp.status_code, str(detail or f"HTTP {resp.status_code}"))
        return data
