# alignment/client/settings_sync.py

import logging
import threading
from dataclasses import dataclass

from alignment.client.local_scheduler import LocalReminderScheduler
from alignment.core.errors import PersistenceFailure
from alignment.schemas.notifications import ReminderPreference

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "A settings update is already in progress."
SAVE_FAILED_MESSAGE = "Could not save your reminder settings. Please try again."


@dataclass
class SyncResult:
    success: bool
    message: str


class ReminderSettingsController:
    """
    Glue between the settings screen, the API and the local scheduler.

    Only one operation runs at a time; a second tap while one is in flight
    is refused instead of queued.
    """

    def __init__(self, api, scheduler: LocalReminderScheduler):
        self.api = api
        self.scheduler = scheduler
        self._busy = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def save(self, pref: ReminderPreference) -> SyncResult:
        if not self._busy.acquire(blocking=False):
            return SyncResult(False, BUSY_MESSAGE)
        try:
            return self._save(pref)
        finally:
            self._busy.release()

    def set_enabled(self, pref: ReminderPreference, enabled: bool) -> SyncResult:
        if not self._busy.acquire(blocking=False):
            return SyncResult(False, BUSY_MESSAGE)
        try:
            updated = pref.model_copy(update={"enabled": enabled})
            if not enabled:
                # local notifications go away right now, even if the server is unreachable
                cancelled = self.scheduler.cancel_all()
                try:
                    self.api.save_preferences(updated)
                except PersistenceFailure as e:
                    logger.error("[settings] disable not saved: %s", e)
                    return SyncResult(False, SAVE_FAILED_MESSAGE)
                return SyncResult(cancelled.success, "All scheduled notifications have been cancelled"
                                  if cancelled.success else cancelled.message)
            return self._save(updated)
        finally:
            self._busy.release()

    def _save(self, pref: ReminderPreference) -> SyncResult:
        try:
            saved = self.api.save_preferences(pref)
        except PersistenceFailure as e:
            logger.error("[settings] save failed: %s", e)
            return SyncResult(False, SAVE_FAILED_MESSAGE)

        result = self.scheduler.schedule(saved)
        return SyncResult(result.success, result.message)
