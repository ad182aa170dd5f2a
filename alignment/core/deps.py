# alignment/core/deps.py

from fastapi import Header, HTTPException, status

from alignment.core.config import admin_token
from alignment.core.errors import ConfigurationError
from alignment.core.onesignal import OneSignalClient
from alignment.core.supabase_client import get_service_supabase
from alignment.store.reminders import ReminderStore


def get_store() -> ReminderStore:
    try:
        return ReminderStore(get_service_supabase())
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail={"error": str(e)})


def get_push_client() -> OneSignalClient:
    try:
        return OneSignalClient.from_env()
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail={"error": str(e)})


def require_admin(x_admin_token: str | None = Header(default=None, alias="X-Admin-Token")) -> None:
    expected = admin_token()
    if not expected or x_admin_token != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
