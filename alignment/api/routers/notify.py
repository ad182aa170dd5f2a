# alignment/api/routers/notify.py

from datetime import timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException

from alignment.core.auth import get_user_id
from alignment.core.clock import utcnow
from alignment.core.deps import get_push_client, get_store
from alignment.core.errors import TransportFailure
from alignment.core.messages import short_phrase
from alignment.core.onesignal import OneSignalClient
from alignment.schemas.notifications import PushIn, ScheduledTestNotificationIn
from alignment.store.reminders import ReminderStore

router = APIRouter(prefix="/api/notify", tags=["Notifications - Push"])

# OneSignal needs some slack to accept a send_after
MIN_SCHEDULE_LEAD = timedelta(minutes=1)


def _channel_or_400(store: ReminderStore, user_id: str) -> str:
    channel_id = store.channel_id_for(user_id)
    if not channel_id:
        raise HTTPException(
            status_code=400,
            detail="No player ID registered. Please enable notifications first.",
        )
    return channel_id


def _send_or_raise(push: OneSignalClient, channel_id: str, title: str, message: str, send_after=None) -> dict:
    try:
        res = push.send(channel_id, title, message, send_after=send_after)
    except TransportFailure as e:
        raise HTTPException(status_code=502, detail=str(e))
    if not res.get("success"):
        raise HTTPException(status_code=400, detail=res)
    return res


@router.post("/push")
def send_push(
    payload: PushIn,
    user_id: str = Depends(get_user_id),
    push: OneSignalClient = Depends(get_push_client),
    store: ReminderStore = Depends(get_store),
):
    channel_id = _channel_or_400(store, user_id)
    res = _send_or_raise(push, channel_id, payload.title, payload.message)
    return {"success": True, "data": res.get("provider_response")}


@router.post("/test")
def send_test_notification(
    payload: ScheduledTestNotificationIn,
    user_id: str = Depends(get_user_id),
    push: OneSignalClient = Depends(get_push_client),
    store: ReminderStore = Depends(get_store),
):
    send_after = None
    if payload.scheduled_for is not None:
        send_after = payload.scheduled_for
        if send_after.tzinfo is None:
            send_after = send_after.replace(tzinfo=timezone.utc)
        now = utcnow()
        if send_after <= now + MIN_SCHEDULE_LEAD:
            raise HTTPException(
                status_code=400,
                detail=(
                    "Scheduled time must be at least 1 minute in the future. "
                    f"Current time: {now.isoformat()}, Scheduled time: {send_after.isoformat()}"
                ),
            )

    channel_id = _channel_or_400(store, user_id)
    message = payload.message or short_phrase()
    res = _send_or_raise(push, channel_id, payload.title, message, send_after=send_after)
    return {
        "success": True,
        "data": res.get("provider_response"),
        "message": message,
        "scheduledTime": send_after.isoformat() if send_after else None,
    }
