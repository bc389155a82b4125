import logging
import os
from urllib.parse import quote

import requests

from shiptrack.ui.session import SessionContext

logger = logging.getLogger(__name__)


class SessionExpired(Exception):
    """The backend answered 401; the local session is no longer usable."""


class ApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TrackingApiClient:
    def __init__(self, base_url: str | None = None, timeout: float = 30.0, http=None):
        self.base_url = (base_url or os.getenv("TRACKING_API_URL", "http://127.0.0.1:8000")).rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()

    def _get(self, session: SessionContext, path: str) -> dict:
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {session.access_token}"}
        try:
            response = self.http.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Tracking API unreachable at %s: %s", url, e)
            raise ApiError("Tracking service unavailable") from e

        if response.status_code == 401:
            raise SessionExpired()

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok:
            message = body.get("error") if isinstance(body, dict) else None
            raise ApiError(message or f"Request failed ({response.status_code})", response.status_code)
        return body

    def list_shipments(self, session: SessionContext) -> tuple[list[dict], str]:
        body = self._get(session, "/api/shipments")
        return body.get("data") or [], body.get("email") or ""

    def get_shipment(self, session: SessionContext, shipment_id: str) -> tuple[dict, list[dict]]:
        body = self._get(session, f"/api/shipments/{quote(shipment_id, safe='')}")
        return body.get("shipment") or {}, body.get("events") or []
