# alignment/api/routers/cron.py

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from alignment.core.deps import get_push_client, get_store, require_admin
from alignment.core.onesignal import OneSignalClient
from alignment.store.reminders import ReminderStore
from alignment.worker.dispatcher import dispatch_scheduled_notifications
from alignment.worker.timer_loop import process_expired_timers

logger = logging.getLogger(__name__)

# one tick per call; the external scheduler owns the cadence
router = APIRouter(prefix="/cron", tags=["Cron"], dependencies=[Depends(require_admin)])


@router.post("/send-scheduled-notifications")
def send_scheduled_notifications(
    push: OneSignalClient = Depends(get_push_client),
    store: ReminderStore = Depends(get_store),
):
    try:
        report = dispatch_scheduled_notifications(store, push)
    except Exception as e:
        logger.exception("[cron] send-scheduled-notifications failed")
        return JSONResponse(status_code=500, content={"error": str(e)})
    return report.as_dict()


@router.post("/process-timers")
def process_timers(
    push: OneSignalClient = Depends(get_push_client),
    store: ReminderStore = Depends(get_store),
):
    try:
        report = process_expired_timers(store, push)
    except Exception as e:
        logger.exception("[cron] process-timers failed")
        return JSONResponse(status_code=500, content={"error": str(e)})
    return report.as_dict()
