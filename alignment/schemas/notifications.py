from typing import Optional, Literal, List
from datetime import datetime
import re

from pydantic import BaseModel, Field, field_validator, model_validator

# ===== Enums =====
ReminderMode = Literal["fixed", "random"]
DeliveryStatus = Literal["success", "failed", "error"]

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

DEFAULT_TIMES = ["09:00", "13:00", "18:00"]


# ===========================
# Preferences
# ===========================

class ReminderPreference(BaseModel):
    user_id: Optional[str] = None
    enabled: bool = True
    mode: ReminderMode = "fixed"
    count: int = Field(3, ge=1, le=10)
    fixed_times: List[str] = Field(default_factory=lambda: list(DEFAULT_TIMES))

    @field_validator("fixed_times")
    @classmethod
    def _check_times(cls, v: List[str]) -> List[str]:
        for t in v:
            if not _HHMM.match(t):
                raise ValueError(f"Invalid time of day '{t}', expected HH:MM")
        return v

    @model_validator(mode="after")
    def _enough_slots(self):
        if self.mode == "fixed" and len(self.fixed_times) < self.count:
            raise ValueError("fixed mode needs at least `count` scheduled times")
        return self

    @property
    def active_times(self) -> List[str]:
        """Times actually used in fixed mode (count bounds the slots)."""
        return self.fixed_times[: self.count]

    # --- Supabase row mapping (notification_settings) ---
    @classmethod
    def from_row(cls, row: dict) -> "ReminderPreference":
        times = row.get("scheduled_times") or []
        is_random = bool(row.get("is_random"))
        count = row.get("frequency_count") or (len(times) or 3)
        if not is_random:
            # legacy rows may hold fewer times than frequency_count
            times = times or list(DEFAULT_TIMES)
            count = min(count, len(times))
        return cls(
            user_id=row.get("user_id"),
            enabled=bool(row.get("enabled", False)),
            mode="random" if is_random else "fixed",
            count=count,
            fixed_times=times,
        )

    def to_row(self) -> dict:
        return {
            "user_id": self.user_id,
            "enabled": self.enabled,
            "is_random": self.mode == "random",
            "frequency_count": self.count,
            "scheduled_times": self.active_times if self.mode == "fixed" else self.fixed_times,
        }


# ===========================
# Delivery log
# ===========================

class DeliveryLogEntry(BaseModel):
    user_id: str
    channel_id: str
    message: str
    status: DeliveryStatus
    sent_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "DeliveryLogEntry":
        return cls(
            user_id=row["user_id"],
            channel_id=row.get("player_id") or "",
            message=row.get("message") or "",
            status=row.get("status") or "error",
            sent_at=row.get("sent_at"),
        )

    def to_row(self) -> dict:
        row = {
            "user_id": self.user_id,
            "player_id": self.channel_id,
            "message": self.message,
            "status": self.status,
        }
        if self.sent_at is not None:
            row["sent_at"] = self.sent_at.isoformat()
        return row


# ===========================
# Ad-hoc timers (server twin)
# ===========================

class ServerTimerRow(BaseModel):
    id: str
    user_id: str
    min_seconds: Optional[int] = None
    max_seconds: Optional[int] = None
    next_notification_at: datetime
    is_active: bool = True
    is_paused: bool = False
    # joined from profiles.onesignal_player_id when available
    channel_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "ServerTimerRow":
        profile = row.get("profiles") or {}
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            min_seconds=row.get("min_seconds"),
            max_seconds=row.get("max_seconds"),
            next_notification_at=row["next_notification_at"],
            is_active=bool(row.get("is_active", True)),
            is_paused=bool(row.get("is_paused", False)),
            channel_id=profile.get("onesignal_player_id"),
        )


class TimerStartIn(BaseModel):
    config: Literal["short", "long"] = "short"


class TimerOut(BaseModel):
    id: str
    user_id: str
    min_seconds: Optional[int] = None
    max_seconds: Optional[int] = None
    next_notification_at: datetime
    is_active: bool
    is_paused: bool


# ===========================
# Push requests
# ===========================

class PushIn(BaseModel):
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


class ScheduledTestNotificationIn(BaseModel):
    title: str = "Daily Alignment Reminder"
    message: Optional[str] = None
    scheduled_for: Optional[datetime] = Field(
        None, description="ISO datetime; must be more than 1 minute in the future"
    )


class PushChannelIn(BaseModel):
    player_id: str = Field(..., min_length=1, description="OneSignal player id of this device")


# (min_seconds, max_seconds) of the two ambient countdowns the app offers
COUNTDOWN_CONFIGS = {
    "short": (30, 35),
    "long": (25 * 60, 35 * 60),
}
