# alignment/client/local_scheduler.py

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Callable, List, Optional, Protocol

from alignment.core.clock import next_occurrence, parse_hhmm
from alignment.core.errors import PermissionDenied, ReminderError
from alignment.core.messages import LOCAL_TITLE, encouragement_for_slot
from alignment.schemas.notifications import ReminderPreference

logger = logging.getLogger(__name__)

# random mode draws inside [08:00, 20:00)
RANDOM_START_HOUR = 8
RANDOM_END_HOUR = 20

SCHEDULE_FAILED_MESSAGE = "Error scheduling notifications: please try again or check your device settings."


@dataclass
class LocalNotification:
    id: int
    title: str
    body: str
    fire_at: datetime
    repeat_daily: bool = True


class LocalNotificationCenter(Protocol):
    """What the device's local-notification subsystem has to offer."""

    def request_permission(self) -> bool: ...

    def list_pending(self) -> List[LocalNotification]: ...

    def cancel(self, ids: List[int]) -> None: ...

    def schedule(self, notifications: List[LocalNotification]) -> bool: ...


@dataclass
class ScheduleResult:
    success: bool
    message: str
    notifications: List[LocalNotification] = field(default_factory=list)
    error: Optional[ReminderError] = None


def _local_now() -> datetime:
    return datetime.now().astimezone()


def random_slot_times(count: int, rng: random.Random) -> List[time]:
    total_minutes = (RANDOM_END_HOUR - RANDOM_START_HOUR) * 60
    slots = []
    for _ in range(count):
        offset = rng.randrange(total_minutes)
        slots.append(time(hour=RANDOM_START_HOUR + offset // 60, minute=offset % 60))
    return slots


class LocalReminderScheduler:
    """
    Turns a ReminderPreference into the day's local notifications.

    Always a full replace: whatever was pending is cancelled before the new
    set is submitted.
    """

    def __init__(
        self,
        center: LocalNotificationCenter,
        clock: Callable[[], datetime] = _local_now,
        rng: Optional[random.Random] = None,
    ):
        self.center = center
        self.clock = clock
        self.rng = rng or random.Random()

    def build(self, pref: ReminderPreference, now: datetime) -> List[LocalNotification]:
        if pref.mode == "random":
            slots = random_slot_times(pref.count, self.rng)
        else:
            slots = [parse_hhmm(t) for t in pref.active_times]

        return [
            LocalNotification(
                id=index + 1,
                title=LOCAL_TITLE,
                body=encouragement_for_slot(index),
                fire_at=next_occurrence(now, slot),
                repeat_daily=True,
            )
            for index, slot in enumerate(slots)
        ]

    def _cancel_pending(self) -> None:
        pending = self.center.list_pending()
        if pending:
            self.center.cancel([n.id for n in pending])

    def schedule(self, pref: ReminderPreference) -> ScheduleResult:
        try:
            granted = self.center.request_permission()
        except Exception:
            logger.exception("[scheduler] permission request failed")
            granted = False
        if not granted:
            logger.info("[scheduler] permission denied, nothing scheduled")
            denied = PermissionDenied()
            return ScheduleResult(success=False, message=str(denied), error=denied)

        try:
            self._cancel_pending()
            if not pref.enabled:
                return ScheduleResult(success=True, message="All scheduled reminders have been removed.")

            notifications = self.build(pref, self.clock())
            if not self.center.schedule(notifications):
                return ScheduleResult(
                    success=False,
                    message=SCHEDULE_FAILED_MESSAGE,
                    notifications=notifications,
                )
        except Exception:
            logger.exception("[scheduler] scheduling failed")
            return ScheduleResult(
                success=False,
                message=SCHEDULE_FAILED_MESSAGE,
            )

        n = len(notifications)
        logger.info("[scheduler] scheduled %d local reminders mode=%s", n, pref.mode)
        return ScheduleResult(
            success=True,
            message=f"{n} daily reminder{'s' if n != 1 else ''} set up successfully.",
            notifications=notifications,
        )

    def cancel_all(self) -> ScheduleResult:
        try:
            self._cancel_pending()
        except Exception:
            logger.exception("[scheduler] cancelling reminders failed")
            return ScheduleResult(success=False, message="Could not cancel scheduled reminders.")
        return ScheduleResult(success=True, message="All scheduled reminders have been removed.")
