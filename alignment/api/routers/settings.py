# alignment/api/routers/settings.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from alignment.core.auth import get_user_id
from alignment.core.deps import get_store
from alignment.core.errors import PersistenceFailure
from alignment.schemas.notifications import DeliveryLogEntry, PushChannelIn, ReminderPreference
from alignment.store.reminders import ReminderStore

router = APIRouter(prefix="/api/settings", tags=["Configuration"])


@router.get("/notifications", response_model=ReminderPreference)
def get_notification_settings(
    user_id: str = Depends(get_user_id),
    store: ReminderStore = Depends(get_store),
):
    try:
        pref = store.get_preference(user_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"[settings.get] {e}")
    # no row yet: app defaults
    return pref or ReminderPreference(user_id=user_id)


@router.put("/notifications", response_model=ReminderPreference)
def set_notification_settings(
    payload: ReminderPreference,
    user_id: str = Depends(get_user_id),
    store: ReminderStore = Depends(get_store),
):
    changes = {"user_id": user_id}
    if payload.mode == "fixed":
        # only the first `count` times are kept
        changes["fixed_times"] = payload.active_times
    pref = payload.model_copy(update=changes)
    try:
        return store.save_preference(pref)
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=f"[settings.put] {e}")


@router.get("/notifications/last", response_model=Optional[DeliveryLogEntry])
def get_last_notification(
    user_id: str = Depends(get_user_id),
    store: ReminderStore = Depends(get_store),
):
    return store.last_delivery(user_id)


@router.put("/push-channel", status_code=204)
def register_push_channel(
    payload: PushChannelIn,
    user_id: str = Depends(get_user_id),
    store: ReminderStore = Depends(get_store),
):
    try:
        store.set_channel_id(user_id, payload.player_id)
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=f"[settings.push-channel] {e}")
    return
