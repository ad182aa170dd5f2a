from datetime import datetime
from typing import Dict, List, Optional

import pytest

from alignment.core.errors import PersistenceFailure, TransportFailure
from alignment.client.local_scheduler import LocalNotification
from alignment.schemas.notifications import DeliveryLogEntry, ReminderPreference, ServerTimerRow


class FakeStore:
    """In-memory stand-in for ReminderStore."""

    def __init__(self):
        self.preferences: Dict[str, ReminderPreference] = {}
        self.channels: Dict[str, str] = {}
        self.logs: List[DeliveryLogEntry] = []
        self.timers: Dict[str, ServerTimerRow] = {}
        self.broken_log_users: set = set()
        self.failing_timer_ids: set = set()
        self.fail_writes = False
        self.calls: List[str] = []
        self._next_id = 1

    # preferences
    def get_preference(self, user_id):
        self.calls.append("get_preference")
        return self.preferences.get(user_id)

    def save_preference(self, pref):
        self.calls.append("save_preference")
        if self.fail_writes:
            raise PersistenceFailure("write refused")
        self.preferences[pref.user_id] = pref
        return pref

    def list_enabled_preferences(self):
        self.calls.append("list_enabled_preferences")
        return [p for p in self.preferences.values() if p.enabled]

    # profiles
    def channel_id_for(self, user_id):
        return self.channels.get(user_id)

    def set_channel_id(self, user_id, channel_id):
        if self.fail_writes:
            raise PersistenceFailure("write refused")
        self.channels[user_id] = channel_id

    # delivery log
    def successful_deliveries_since(self, user_id, since: datetime):
        if user_id in self.broken_log_users:
            raise RuntimeError("log table unavailable")
        rows = [
            e for e in self.logs
            if e.user_id == user_id and e.status == "success" and e.sent_at >= since
        ]
        return sorted(rows, key=lambda e: e.sent_at)

    def last_delivery(self, user_id):
        rows = [e for e in self.logs if e.user_id == user_id]
        return max(rows, key=lambda e: e.sent_at) if rows else None

    def append_delivery(self, entry):
        if self.fail_writes:
            raise PersistenceFailure("write refused")
        self.logs.append(entry)

    # timers
    def add_timer(self, **fields) -> ServerTimerRow:
        fields.setdefault("id", f"t{self._next_id}")
        self._next_id += 1
        timer = ServerTimerRow(**fields)
        self.timers[timer.id] = timer
        return timer

    def list_expired_timers(self, now):
        return [
            t for t in self.timers.values()
            if t.is_active and not t.is_paused and t.next_notification_at <= now
        ]

    def advance_timer(self, timer_id, expected, next_at):
        if timer_id in self.failing_timer_ids:
            raise PersistenceFailure(f"Could not update timer {timer_id}")
        timer = self.timers[timer_id]
        if timer.next_notification_at != expected:
            return False
        self.timers[timer_id] = timer.model_copy(update={"next_notification_at": next_at})
        return True

    def list_timers(self, user_id):
        return [t for t in self.timers.values() if t.user_id == user_id]

    def get_timer(self, user_id, timer_id):
        t = self.timers.get(timer_id)
        return t if t is not None and t.user_id == user_id else None

    def upsert_timer(self, user_id, min_seconds, max_seconds, next_at):
        for t in self.timers.values():
            if (t.user_id, t.min_seconds, t.max_seconds) == (user_id, min_seconds, max_seconds):
                updated = t.model_copy(update={
                    "next_notification_at": next_at, "is_active": True, "is_paused": False,
                })
                self.timers[t.id] = updated
                return updated
        return self.add_timer(
            user_id=user_id, min_seconds=min_seconds, max_seconds=max_seconds,
            next_notification_at=next_at,
        )

    def update_timer(self, user_id, timer_id, changes):
        t = self.get_timer(user_id, timer_id)
        if t is None:
            return None
        self.timers[timer_id] = t.model_copy(update=changes)
        return self.timers[timer_id]

    def counts(self):
        return {
            "enabled_preferences": len(self.list_enabled_preferences()),
            "active_timers": sum(1 for t in self.timers.values() if t.is_active),
        }


class FakePush:
    """Records every send; mode is "ok", "reject" or "down"."""

    def __init__(self, mode: str = "ok"):
        self.mode = mode
        self.sent: List[dict] = []

    def send(self, channel_id, title, body, send_after=None):
        self.sent.append({"channel_id": channel_id, "title": title, "body": body, "send_after": send_after})
        if self.mode == "down":
            raise TransportFailure("OneSignal unreachable: connection refused")
        if self.mode == "reject":
            return {"success": False, "status_code": 400, "provider_response": {"errors": ["bad player"]}}
        return {"success": True, "status_code": 200, "provider_response": {"id": "n-1", "recipients": 1}}


class FakeNotificationCenter:
    """Device local-notification subsystem kept in a dict."""

    def __init__(self, granted: bool = True, schedule_ok: bool = True, explode: bool = False):
        self.granted = granted
        self.schedule_ok = schedule_ok
        self.explode = explode
        self.pending: Dict[int, LocalNotification] = {}
        self.cancelled: List[int] = []

    def request_permission(self) -> bool:
        return self.granted

    def list_pending(self) -> List[LocalNotification]:
        return list(self.pending.values())

    def cancel(self, ids: List[int]) -> None:
        for i in ids:
            self.pending.pop(i, None)
        self.cancelled.extend(ids)

    def schedule(self, notifications: List[LocalNotification]) -> bool:
        if self.explode:
            raise RuntimeError("native bridge crashed")
        if not self.schedule_ok:
            return False
        for n in notifications:
            self.pending[n.id] = n
        return True


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def push():
    return FakePush()


@pytest.fixture
def center():
    return FakeNotificationCenter()


@pytest.fixture
def clock():
    return FakeClock()


def fixed_pref(user_id: str = "u1", times: Optional[List[str]] = None, **kw) -> ReminderPreference:
    times = times or ["09:00"]
    return ReminderPreference(user_id=user_id, mode="fixed", count=len(times), fixed_times=times, **kw)
