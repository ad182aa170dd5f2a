# alignment/core/config.py

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from alignment.core.errors import ConfigurationError

# Load .env once (VSCode / cron processes don't always inherit the environment)
load_dotenv()

# Tunables can be cached at import
POLL_SECONDS = int(os.getenv("DISPATCHER_POLL_SECONDS", "60"))
SECOND_NOTIFICATION_HOURS = float(os.getenv("SECOND_NOTIFICATION_HOURS", "8"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

ONESIGNAL_API_URL = "https://onesignal.com/api/v1/notifications"


def supabase_credentials() -> tuple[str, str]:
    """
    Read SUPABASE_URL and the key ALWAYS from the environment when a client is
    built, so workers never run with values cached at import.
    """
    url = (os.getenv("SUPABASE_URL") or "").rstrip("/")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or ""

    if not url or not key:
        msg = [
            "Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY in the environment",
            f"SUPABASE_URL: {'<empty>' if not url else url}",
            f"SUPABASE_SERVICE_ROLE_KEY: {'<empty>' if not key else '<present>'}",
            "Export them before starting the process or put them in a .env file at the project root.",
        ]
        raise ConfigurationError("\n".join(msg))
    return url, key


def onesignal_credentials() -> tuple[str, str]:
    app_id = os.getenv("ONESIGNAL_APP_ID") or ""
    api_key = os.getenv("ONESIGNAL_REST_API_KEY") or ""
    if not app_id or not api_key:
        raise ConfigurationError("OneSignal credentials not configured (ONESIGNAL_APP_ID/ONESIGNAL_REST_API_KEY)")
    return app_id, api_key


def jwt_settings() -> dict:
    return {
        "url": (os.getenv("SUPABASE_URL") or "").rstrip("/"),
        "aud": os.getenv("SUPABASE_AUD", "authenticated"),
        "secret": os.getenv("SUPABASE_JWT_SECRET", ""),
        "allow_dev_header": os.getenv("ALLOW_DEV_HEADER", "0") == "1",
    }


def admin_token() -> str:
    return os.getenv("ADMIN_TOKEN", "")


def countdown_store_path() -> Path:
    raw = os.getenv("COUNTDOWN_STORE_PATH")
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".alignment" / "countdowns.json"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or LOG_LEVEL),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
