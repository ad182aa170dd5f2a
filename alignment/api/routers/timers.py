# alignment/api/routers/timers.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status

from alignment.core.auth import get_user_id
from alignment.core.clock import utcnow
from alignment.core.deps import get_store
from alignment.core.errors import PersistenceFailure
from alignment.schemas.notifications import COUNTDOWN_CONFIGS, TimerOut, TimerStartIn
from alignment.store.reminders import ReminderStore
from alignment.worker.timer_loop import timer_bounds, draw_next

router = APIRouter(prefix="/api/timers", tags=["Ad-hoc Timers"])


def _update_or_404(store: ReminderStore, user_id: str, timer_id: str, changes: dict):
    try:
        row = store.update_timer(user_id, timer_id, changes)
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    if row is None:
        raise HTTPException(status_code=404, detail="Timer not found")
    return row


@router.get("", response_model=List[TimerOut])
def list_timers(
    user_id: str = Depends(get_user_id),
    store: ReminderStore = Depends(get_store),
):
    return store.list_timers(user_id)


@router.post("", response_model=TimerOut, status_code=status.HTTP_201_CREATED)
def start_timer(
    body: TimerStartIn,
    user_id: str = Depends(get_user_id),
    store: ReminderStore = Depends(get_store),
):
    lo, hi = COUNTDOWN_CONFIGS[body.config]
    try:
        return store.upsert_timer(user_id, lo, hi, draw_next(utcnow(), lo, hi))
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{timer_id}/pause", response_model=TimerOut)
def pause_timer(
    timer_id: str = Path(...),
    user_id: str = Depends(get_user_id),
    store: ReminderStore = Depends(get_store),
):
    return _update_or_404(store, user_id, timer_id, {"is_paused": True})


@router.post("/{timer_id}/resume", response_model=TimerOut)
def resume_timer(
    timer_id: str = Path(...),
    user_id: str = Depends(get_user_id),
    store: ReminderStore = Depends(get_store),
):
    timer = store.get_timer(user_id, timer_id)
    if timer is None:
        raise HTTPException(status_code=404, detail="Timer not found")
    lo, hi = timer_bounds(timer)
    return _update_or_404(store, user_id, timer_id, {
        "is_active": True,
        "is_paused": False,
        "next_notification_at": draw_next(utcnow(), lo, hi),
    })


@router.post("/{timer_id}/stop", response_model=TimerOut)
def stop_timer(
    timer_id: str = Path(...),
    user_id: str = Depends(get_user_id),
    store: ReminderStore = Depends(get_store),
):
    return _update_or_404(store, user_id, timer_id, {"is_active": False, "is_paused": False})
