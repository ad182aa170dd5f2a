# alignment/worker/timer_loop.py
import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from alignment.core.clock import utcnow
from alignment.core.config import POLL_SECONDS, configure_logging
from alignment.core.errors import ConfigurationError, PersistenceFailure, TransportFailure
from alignment.core.messages import COUNTDOWN_TITLE, short_phrase
from alignment.core.onesignal import OneSignalClient
from alignment.core.supabase_client import create_service_client
from alignment.schemas.notifications import ServerTimerRow
from alignment.store.reminders import ReminderStore

logger = logging.getLogger(__name__)

# bounds used when a row was created without them
DEFAULT_MIN_SECONDS = 30
DEFAULT_MAX_SECONDS = 35


@dataclass
class TimerReport:
    results: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.results)

    def as_dict(self) -> Dict[str, Any]:
        return {"success": True, "processed": self.processed, "results": self.results}


def draw_next(now: datetime, min_seconds: int, max_seconds: int, rng: Optional[random.Random] = None) -> datetime:
    """Next expiry in [now + min_seconds, now + max_seconds], both ends included."""
    seconds = (rng or random).randint(min_seconds, max_seconds)
    return now + timedelta(seconds=seconds)


def timer_bounds(timer: ServerTimerRow) -> tuple[int, int]:
    lo = timer.min_seconds or DEFAULT_MIN_SECONDS
    hi = timer.max_seconds or DEFAULT_MAX_SECONDS
    return lo, max(lo, hi)


def _process_one(store: ReminderStore, push, timer: ServerTimerRow, now: datetime, rng) -> Optional[Dict[str, Any]]:
    channel_id = timer.channel_id or store.channel_id_for(timer.user_id)
    if not channel_id:
        logger.info("[timers] user=%s has no player id, skipping timer=%s", timer.user_id, timer.id)
        return None

    # claim first; the row moves on even if the delivery below fails
    lo, hi = timer_bounds(timer)
    next_at = draw_next(now, lo, hi, rng)
    if not store.advance_timer(timer.id, timer.next_notification_at, next_at):
        logger.info("[timers] timer=%s already advanced by another run, skipping", timer.id)
        return None

    message = short_phrase(rng)
    result: Dict[str, Any] = {
        "timerId": timer.id,
        "userId": timer.user_id,
        "nextTime": next_at.isoformat(),
        "message": message,
    }
    try:
        delivery = push.send(channel_id, COUNTDOWN_TITLE, message)
        result["delivered"] = bool(delivery.get("success"))
        if result["delivered"]:
            logger.info("[timers] sent timer=%s next=%s", timer.id, result["nextTime"])
        else:
            logger.warning("[timers] gateway rejected timer=%s response=%s", timer.id, delivery.get("provider_response"))
    except TransportFailure as e:
        result["delivered"] = False
        logger.error("[timers] transport error timer=%s: %s", timer.id, e)
    return result


def process_expired_timers(
    store: ReminderStore,
    push,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> TimerReport:
    """One tick of the ad-hoc timer reconciliation."""
    now = now or utcnow()
    report = TimerReport()

    expired = store.list_expired_timers(now)
    logger.info("[timers] found %d expired timers", len(expired))

    for timer in expired:
        try:
            result = _process_one(store, push, timer, now, rng)
        except PersistenceFailure as e:
            logger.error("[timers] %s", e)
            continue
        except Exception:
            logger.exception("[timers] unexpected failure timer=%s", timer.id)
            continue
        if result is not None:
            report.results.append(result)

    logger.info("[timers] processed %d timers", report.processed)
    return report


def run_once() -> TimerReport:
    push = OneSignalClient.from_env()
    store = ReminderStore(create_service_client())
    return process_expired_timers(store, push)


def run():
    configure_logging()
    try:
        push = OneSignalClient.from_env()
        store = ReminderStore(create_service_client())
    except ConfigurationError as e:
        logger.error("[timers] %s", e)
        raise
    logger.info("[timers] running; poll=%ss", POLL_SECONDS)

    while True:
        try:
            process_expired_timers(store, push)
        except Exception:
            logger.exception("[timers] loop error")
        time.sleep(POLL_SECONDS)


if __name__ == "__main__":
    run()
