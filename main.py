# main.py

from datetime import datetime, timezone

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from alignment.core.config import configure_logging
from alignment.core.deps import get_store, require_admin
from alignment.store.reminders import ReminderStore

# Routers
from alignment.api.routers import settings as reminder_settings
from alignment.api.routers import timers, notify, cron


# -------------------------------------------------------------------
# Environment + base app
# -------------------------------------------------------------------
load_dotenv()
configure_logging()

app = FastAPI(
    title="Daily Alignment Reminders",
    description="""
Reminder scheduling and delivery backend for the Daily Alignment journaling app.

**What it does**
- **Settings:** Per-user reminder preferences (`enabled`, fixed/random mode, 1..10 reminders per day, fixed HH:MM times) stored in `notification_settings`.
- **Push channel:** Registers the device's OneSignal player id on `profiles`.
- **Daily dispatch:** `/cron/send-scheduled-notifications` runs one tick of the server dispatch loop: first notification at a fixed time, second one 8 hours later, every attempt appended to `notification_logs`.
- **Ad-hoc timers:** Self-rearming countdown reminders (`test_notification_timers`), advanced by `/cron/process-timers`.
- **Push:** Immediate or delayed (`send_after`) test notifications through OneSignal.

**Notes**
- Use the Swagger **Authorize** button to paste your Bearer token before trying endpoints.
- Cron and health endpoints require `X-Admin-Token`.
""",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(reminder_settings.router)   # /api/settings/...
app.include_router(timers.router)              # /api/timers
app.include_router(notify.router)              # /api/notify/...
app.include_router(cron.router)                # /cron/... (admin token)


# -------------------------------------------------------------------
# Public endpoints
# -------------------------------------------------------------------
@app.get("/")
def read_root():
    return {"message": "Welcome to Daily Alignment Reminders"}


@app.get("/health/dispatcher", tags=["Health"], dependencies=[Depends(require_admin)])
def health_dispatcher(store: ReminderStore = Depends(get_store)):
    now = datetime.now(timezone.utc).isoformat()
    return {"status": "ok", "time": now, "stats": store.counts()}
