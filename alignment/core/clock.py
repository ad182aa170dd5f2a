# alignment/core/clock.py

from datetime import datetime, time, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_utc_day(now: datetime) -> datetime:
    return now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def hhmm(now: datetime) -> str:
    return f"{now.hour:02d}:{now.minute:02d}"


def parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(hour=int(hours), minute=int(minutes))


def next_occurrence(now: datetime, at: time) -> datetime:
    """Today's occurrence of `at` in now's timezone, or tomorrow's if it already passed."""
    candidate = now.replace(hour=at.hour, minute=at.minute, second=0, microsecond=0)
    if candidate < now:
        candidate += timedelta(days=1)
    return candidate
