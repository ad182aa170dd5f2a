# alignment/client/api_client.py

from typing import Any, Dict, Optional

import httpx

from alignment.core.errors import PersistenceFailure, TransportFailure
from alignment.schemas.notifications import ReminderPreference


class AlignmentApiClient:
    """Thin httpx wrapper the device uses to reach the reminder API."""

    TIMEOUT = 20.0

    def __init__(self, base_url: str, token: str, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.token}"},
            timeout=self.TIMEOUT,
            transport=self._transport,
        )

    def save_preferences(self, pref: ReminderPreference) -> ReminderPreference:
        body = pref.model_dump(exclude={"user_id"})
        try:
            with self._client() as client:
                r = client.put("/api/settings/notifications", json=body)
        except httpx.HTTPError as e:
            raise PersistenceFailure(f"Settings not saved: {e}") from e
        if r.status_code >= 300:
            raise PersistenceFailure(f"Settings not saved: {r.status_code} {r.text}")
        return ReminderPreference.model_validate(r.json())

    def register_channel(self, player_id: str) -> None:
        try:
            with self._client() as client:
                r = client.put("/api/settings/push-channel", json={"player_id": player_id})
        except httpx.HTTPError as e:
            raise PersistenceFailure(f"Push channel not saved: {e}") from e
        if r.status_code >= 300:
            raise PersistenceFailure(f"Push channel not saved: {r.status_code} {r.text}")

    def send_test_notification(self, message: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        if message:
            body["message"] = message
        try:
            with self._client() as client:
                r = client.post("/api/notify/test", json=body)
        except httpx.HTTPError as e:
            raise TransportFailure(f"Test notification not sent: {e}") from e
        if r.status_code >= 300:
            raise TransportFailure(f"Test notification not sent: {r.status_code} {r.text}")
        return r.json()
