# alignment/core/onesignal.py

from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from alignment.core.config import ONESIGNAL_API_URL, onesignal_credentials
from alignment.core.errors import TransportFailure


class OneSignalClient:
    """
    Push gateway used by the workers and the notify router.

    send() returns {"success": bool, "provider_response": ...}; a rejected
    request is a normal result, only transport problems raise.
    """

    TIMEOUT = 30.0

    def __init__(self, app_id: str, api_key: str, transport: Optional[httpx.BaseTransport] = None):
        self.app_id = app_id
        self.api_key = api_key
        self._transport = transport

    @classmethod
    def from_env(cls, transport: Optional[httpx.BaseTransport] = None) -> "OneSignalClient":
        # raises ConfigurationError before anything gets processed
        app_id, api_key = onesignal_credentials()
        return cls(app_id, api_key, transport=transport)

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Basic {self.api_key}",
        }

    def send(
        self,
        channel_id: str,
        title: str,
        body: str,
        send_after: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "app_id": self.app_id,
            "include_player_ids": [channel_id],
            "headings": {"en": title},
            "contents": {"en": body},
            "ios_badgeType": "Increase",
            "ios_badgeCount": 1,
        }
        if send_after is not None:
            payload["send_after"] = int(send_after.timestamp())

        try:
            with httpx.Client(timeout=self.TIMEOUT, transport=self._transport) as client:
                r = client.post(ONESIGNAL_API_URL, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            raise TransportFailure(f"OneSignal unreachable: {e}") from e

        try:
            data = r.json()
        except ValueError:
            data = {"error": "Invalid JSON response", "status_code": r.status_code, "text": r.text}

        ok = 200 <= r.status_code < 300 and not (isinstance(data, dict) and data.get("errors"))
        return {"success": ok, "status_code": r.status_code, "provider_response": data}
