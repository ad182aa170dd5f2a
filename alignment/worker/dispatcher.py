# alignment/worker/dispatcher.py

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from alignment.core.clock import hhmm, start_of_utc_day, utcnow
from alignment.core.config import POLL_SECONDS, SECOND_NOTIFICATION_HOURS, configure_logging
from alignment.core.errors import ConfigurationError, PersistenceFailure, TransportFailure
from alignment.core.messages import FIRST_TITLE, SECOND_TITLE, message_for_hour
from alignment.core.onesignal import OneSignalClient
from alignment.core.supabase_client import create_service_client
from alignment.schemas.notifications import DeliveryLogEntry, ReminderPreference
from alignment.store.reminders import ReminderStore

logger = logging.getLogger(__name__)


@dataclass
class DispatchReport:
    current_time: str
    results: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def notifications_sent(self) -> int:
        return len(self.results)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "message": "Scheduled notifications processed",
            "currentTime": self.current_time,
            "notificationsSent": self.notifications_sent,
            "results": self.results,
        }


def _decide(
    pref: ReminderPreference,
    successes: List[DeliveryLogEntry],
    now: datetime,
    window: timedelta,
    gap: timedelta,
) -> Optional[str]:
    """Return "first", "second" or None for this user on this tick."""
    current_time = hhmm(now)

    if not successes:
        if current_time in pref.active_times:
            return "first"
        return None

    # second goes out once, inside [gap, gap + window) after the first success
    if len(successes) == 1 and successes[0].sent_at is not None:
        elapsed = now - successes[0].sent_at
        if gap <= elapsed < gap + window:
            return "second"
    return None


def _deliver(
    store: ReminderStore,
    push,
    user_id: str,
    channel_id: str,
    kind: str,
    message: str,
    now: datetime,
) -> Dict[str, Any]:
    title = SECOND_TITLE if kind == "second" else FIRST_TITLE
    result: Dict[str, Any] = {"userId": user_id, "isSecond": kind == "second"}
    try:
        delivery = push.send(channel_id, title, message)
        status = "success" if delivery.get("success") else "failed"
        result["success"] = status == "success"
        if status == "failed":
            result["error"] = delivery.get("provider_response")
            logger.warning("[dispatcher] gateway rejected user=%s kind=%s response=%s",
                           user_id, kind, delivery.get("provider_response"))
        else:
            logger.info("[dispatcher] sent user=%s kind=%s", user_id, kind)
    except TransportFailure as e:
        status = "error"
        result.update(success=False, error=str(e))
        logger.error("[dispatcher] transport error user=%s kind=%s: %s", user_id, kind, e)

    try:
        store.append_delivery(DeliveryLogEntry(
            user_id=user_id,
            channel_id=channel_id,
            message=message,
            status=status,
            sent_at=now,
        ))
    except PersistenceFailure as e:
        # next tick may fire "first" again for this user; nothing else to do here
        logger.error("[dispatcher] could not log delivery user=%s status=%s: %s", user_id, status, e)
    return result


def dispatch_scheduled_notifications(
    store: ReminderStore,
    push,
    now: Optional[datetime] = None,
    tick_seconds: int = POLL_SECONDS,
    gap_hours: float = SECOND_NOTIFICATION_HOURS,
    rng: Optional[random.Random] = None,
) -> DispatchReport:
    """
    One tick of the server dispatch loop (fixed-mode users only).

    Stateless: everything it knows about earlier ticks comes from the
    delivery log.
    """
    now = now or utcnow()
    today = start_of_utc_day(now)
    window = timedelta(seconds=tick_seconds)
    gap = timedelta(hours=gap_hours)
    report = DispatchReport(current_time=hhmm(now))

    prefs = store.list_enabled_preferences()
    logger.info("[dispatcher] tick time=%s users=%d", report.current_time, len(prefs))

    for pref in prefs:
        # random mode lives on the device
        if pref.mode == "random" or not pref.enabled:
            continue
        user_id = pref.user_id
        try:
            successes = store.successful_deliveries_since(user_id, today)
        except Exception:
            logger.exception("[dispatcher] could not read delivery log user=%s; skipping", user_id)
            continue

        kind = _decide(pref, successes, now, window, gap)
        if kind is None:
            continue

        try:
            channel_id = store.channel_id_for(user_id)
        except Exception:
            logger.exception("[dispatcher] could not read profile user=%s", user_id)
            continue
        if not channel_id:
            logger.info("[dispatcher] user=%s has no push channel id, skipping", user_id)
            continue

        message = message_for_hour(now.hour, rng)
        report.results.append(_deliver(store, push, user_id, channel_id, kind, message, now))

    logger.info("[dispatcher] tick done time=%s sent=%d", report.current_time, report.notifications_sent)
    return report


def run_once() -> DispatchReport:
    # credentials first: a misconfigured tick must not touch any row
    push = OneSignalClient.from_env()
    store = ReminderStore(create_service_client())
    return dispatch_scheduled_notifications(store, push)


def run_loop():
    configure_logging()
    try:
        push = OneSignalClient.from_env()
        store = ReminderStore(create_service_client())
    except ConfigurationError as e:
        logger.error("[dispatcher] %s", e)
        raise
    logger.info("[dispatcher] running… poll=%ss", POLL_SECONDS)

    while True:
        try:
            dispatch_scheduled_notifications(store, push)
        except Exception:
            logger.exception("[dispatcher] loop error")
        # sleep to the next tick boundary so HH:MM matching never skips a minute
        time.sleep(POLL_SECONDS - (time.time() % POLL_SECONDS))


if __name__ == "__main__":
    run_loop()
