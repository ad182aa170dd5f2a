# alignment/store/reminders.py

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from alignment.core.errors import PersistenceFailure
from alignment.schemas.notifications import DeliveryLogEntry, ReminderPreference, ServerTimerRow

logger = logging.getLogger(__name__)

SETTINGS_TABLE = "notification_settings"
LOGS_TABLE = "notification_logs"
TIMERS_TABLE = "test_notification_timers"
PROFILES_TABLE = "profiles"


class ReminderStore:
    """
    Supabase persistence for the reminder engine.

    Reads return parsed models; writes raise PersistenceFailure so callers
    never advance their own state after a failed write.
    """

    def __init__(self, sb):
        self.sb = sb

    # -------------------------
    # Preferences
    # -------------------------
    def get_preference(self, user_id: str) -> Optional[ReminderPreference]:
        rows = (
            self.sb.table(SETTINGS_TABLE)
            .select("user_id, frequency_count, is_random, scheduled_times, enabled")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        ).data or []
        return ReminderPreference.from_row(rows[0]) if rows else None

    def save_preference(self, pref: ReminderPreference) -> ReminderPreference:
        try:
            self.sb.table(SETTINGS_TABLE).upsert(pref.to_row(), on_conflict="user_id").execute()
        except Exception as e:
            raise PersistenceFailure(f"Could not save notification settings: {e}") from e
        return pref

    def list_enabled_preferences(self) -> List[ReminderPreference]:
        rows = (
            self.sb.table(SETTINGS_TABLE)
            .select("user_id, frequency_count, is_random, scheduled_times, enabled")
            .eq("enabled", True)
            .not_.is_("scheduled_times", "null")
            .execute()
        ).data or []
        prefs = []
        for row in rows:
            try:
                prefs.append(ReminderPreference.from_row(row))
            except ValueError as e:
                logger.warning("[store] skipping invalid settings row user=%s: %s", row.get("user_id"), e)
        return prefs

    # -------------------------
    # Profiles
    # -------------------------
    def channel_id_for(self, user_id: str) -> Optional[str]:
        rows = (
            self.sb.table(PROFILES_TABLE)
            .select("onesignal_player_id")
            .eq("id", user_id)
            .limit(1)
            .execute()
        ).data or []
        if not rows:
            return None
        return rows[0].get("onesignal_player_id") or None

    def set_channel_id(self, user_id: str, channel_id: str) -> None:
        try:
            (
                self.sb.table(PROFILES_TABLE)
                .update({"onesignal_player_id": channel_id})
                .eq("id", user_id)
                .execute()
            )
        except Exception as e:
            raise PersistenceFailure(f"Could not save push channel: {e}") from e

    # -------------------------
    # Delivery log (append-only)
    # -------------------------
    def successful_deliveries_since(self, user_id: str, since: datetime) -> List[DeliveryLogEntry]:
        rows = (
            self.sb.table(LOGS_TABLE)
            .select("user_id, player_id, message, status, sent_at")
            .eq("user_id", user_id)
            .eq("status", "success")
            .gte("sent_at", since.isoformat())
            .order("sent_at", desc=False)
            .execute()
        ).data or []
        return [DeliveryLogEntry.from_row(r) for r in rows]

    def last_delivery(self, user_id: str) -> Optional[DeliveryLogEntry]:
        rows = (
            self.sb.table(LOGS_TABLE)
            .select("user_id, player_id, message, status, sent_at")
            .eq("user_id", user_id)
            .order("sent_at", desc=True)
            .limit(1)
            .execute()
        ).data or []
        return DeliveryLogEntry.from_row(rows[0]) if rows else None

    def append_delivery(self, entry: DeliveryLogEntry) -> None:
        try:
            self.sb.table(LOGS_TABLE).insert(entry.to_row()).execute()
        except Exception as e:
            raise PersistenceFailure(f"Could not append delivery log: {e}") from e

    # -------------------------
    # Ad-hoc timers
    # -------------------------
    def list_expired_timers(self, now: datetime) -> List[ServerTimerRow]:
        rows = (
            self.sb.table(TIMERS_TABLE)
            .select("*, profiles:user_id (onesignal_player_id)")
            .eq("is_active", True)
            .eq("is_paused", False)
            .lte("next_notification_at", now.isoformat())
            .execute()
        ).data or []
        return [ServerTimerRow.from_row(r) for r in rows]

    def advance_timer(self, timer_id: str, expected: datetime, next_at: datetime) -> bool:
        """
        Conditional update: only moves next_notification_at if nobody else did
        since we read it. Returns False when another invocation won.
        """
        try:
            res = (
                self.sb.table(TIMERS_TABLE)
                .update({"next_notification_at": next_at.isoformat()})
                .eq("id", timer_id)
                .eq("next_notification_at", expected.isoformat())
                .execute()
            )
        except Exception as e:
            raise PersistenceFailure(f"Could not update timer {timer_id}: {e}") from e
        return bool(res.data)

    def list_timers(self, user_id: str) -> List[ServerTimerRow]:
        rows = (
            self.sb.table(TIMERS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("min_seconds", desc=False)
            .execute()
        ).data or []
        return [ServerTimerRow.from_row(r) for r in rows]

    def get_timer(self, user_id: str, timer_id: str) -> Optional[ServerTimerRow]:
        rows = (
            self.sb.table(TIMERS_TABLE)
            .select("*")
            .eq("id", timer_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        ).data or []
        return ServerTimerRow.from_row(rows[0]) if rows else None

    def upsert_timer(self, user_id: str, min_seconds: int, max_seconds: int, next_at: datetime) -> ServerTimerRow:
        row = {
            "user_id": user_id,
            "min_seconds": min_seconds,
            "max_seconds": max_seconds,
            "next_notification_at": next_at.isoformat(),
            "is_active": True,
            "is_paused": False,
        }
        existing = (
            self.sb.table(TIMERS_TABLE)
            .select("id")
            .eq("user_id", user_id)
            .eq("min_seconds", min_seconds)
            .eq("max_seconds", max_seconds)
            .limit(1)
            .execute()
        ).data or []
        try:
            if existing:
                res = self.sb.table(TIMERS_TABLE).update(row).eq("id", existing[0]["id"]).execute()
            else:
                res = self.sb.table(TIMERS_TABLE).insert(row).execute()
        except Exception as e:
            raise PersistenceFailure(f"Could not start timer: {e}") from e
        if not res.data:
            raise PersistenceFailure("Timer upsert returned no row")
        return ServerTimerRow.from_row(res.data[0])

    def update_timer(self, user_id: str, timer_id: str, changes: Dict[str, Any]) -> Optional[ServerTimerRow]:
        payload = {
            k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in changes.items()
        }
        try:
            res = (
                self.sb.table(TIMERS_TABLE)
                .update(payload)
                .eq("id", timer_id)
                .eq("user_id", user_id)
                .execute()
            )
        except Exception as e:
            raise PersistenceFailure(f"Could not update timer {timer_id}: {e}") from e
        return ServerTimerRow.from_row(res.data[0]) if res.data else None

    # -------------------------
    # Health
    # -------------------------
    def counts(self) -> Dict[str, int]:
        enabled = (
            self.sb.table(SETTINGS_TABLE).select("id", count="exact").eq("enabled", True).execute()
        ).count or 0
        active = (
            self.sb.table(TIMERS_TABLE).select("id", count="exact").eq("is_active", True).execute()
        ).count or 0
        return {"enabled_preferences": enabled, "active_timers": active}
