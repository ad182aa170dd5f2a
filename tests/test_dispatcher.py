import random
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from alignment.core.errors import ConfigurationError
from alignment.core.messages import AFTERNOON, EVENING, FIRST_TITLE, MORNING, SECOND_TITLE
from alignment.schemas.notifications import DeliveryLogEntry, ReminderPreference
from alignment.worker import dispatcher
from alignment.worker.dispatcher import dispatch_scheduled_notifications

from conftest import FakePush, fixed_pref

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _setup(store, times=("09:00",), user="u1", channel="player-1"):
    store.preferences[user] = fixed_pref(user, list(times))
    if channel:
        store.channels[user] = channel


def _log_success(store, at, user="u1"):
    store.logs.append(DeliveryLogEntry(user_id=user, channel_id="player-1", message="hi", status="success", sent_at=at))


def test_first_notification_fires_at_fixed_time(store, push):
    _setup(store)

    report = dispatch_scheduled_notifications(store, push, now=T0)

    assert report.current_time == "09:00"
    assert report.notifications_sent == 1
    assert report.results[0]["isSecond"] is False
    assert push.sent[0]["channel_id"] == "player-1"
    assert push.sent[0]["title"] == FIRST_TITLE
    assert push.sent[0]["body"] in MORNING
    assert [e.status for e in store.logs] == ["success"]
    assert store.logs[0].sent_at == T0


def test_next_minute_does_not_fire_again(store, push):
    _setup(store)
    dispatch_scheduled_notifications(store, push, now=T0)

    report = dispatch_scheduled_notifications(store, push, now=T0 + timedelta(minutes=1))

    assert report.notifications_sent == 0
    assert len(push.sent) == 1
    assert len(store.logs) == 1


def test_first_only_when_nothing_sent_today(store, push):
    _setup(store, times=("09:00", "13:00"))
    _log_success(store, T0)

    report = dispatch_scheduled_notifications(store, push, now=T0.replace(hour=13))

    assert report.notifications_sent == 0


def test_yesterdays_delivery_does_not_count(store, push):
    _setup(store)
    _log_success(store, T0 - timedelta(days=1))

    report = dispatch_scheduled_notifications(store, push, now=T0)

    assert report.notifications_sent == 1


def test_second_notification_exactly_eight_hours_later(store, push):
    _setup(store)
    _log_success(store, T0)

    report = dispatch_scheduled_notifications(store, push, now=T0 + timedelta(hours=8), tick_seconds=60)

    assert report.notifications_sent == 1
    assert report.results[0]["isSecond"] is True
    assert push.sent[0]["title"] == SECOND_TITLE
    assert push.sent[0]["body"] in EVENING


@pytest.mark.parametrize("after", [
    timedelta(hours=8.02),
    timedelta(hours=8, minutes=5),
    timedelta(hours=7, minutes=59),
])
def test_second_notification_outside_window(store, push, after):
    _setup(store)
    _log_success(store, T0)

    report = dispatch_scheduled_notifications(store, push, now=T0 + after, tick_seconds=60)

    assert report.notifications_sent == 0
    assert push.sent == []


def test_second_notification_not_repeated_within_window(store, push):
    _setup(store)
    _log_success(store, T0)
    dispatch_scheduled_notifications(store, push, now=T0 + timedelta(hours=8), tick_seconds=60)

    # an overlapping invocation a few seconds later sees two successes
    report = dispatch_scheduled_notifications(store, push, now=T0 + timedelta(hours=8, seconds=30), tick_seconds=60)

    assert report.notifications_sent == 0
    assert len(push.sent) == 1


def test_window_follows_polling_interval(store, push):
    _setup(store)
    _log_success(store, T0)

    report = dispatch_scheduled_notifications(
        store, push, now=T0 + timedelta(hours=8, minutes=4), tick_seconds=300,
    )

    assert report.notifications_sent == 1


def test_random_mode_users_are_left_to_the_device(store, push):
    store.preferences["u1"] = ReminderPreference(user_id="u1", mode="random", count=2)
    store.channels["u1"] = "player-1"

    report = dispatch_scheduled_notifications(store, push, now=T0)

    assert report.notifications_sent == 0


def test_disabled_users_are_skipped(store, push):
    _setup(store)
    store.preferences["u1"] = store.preferences["u1"].model_copy(update={"enabled": False})

    assert dispatch_scheduled_notifications(store, push, now=T0).notifications_sent == 0


def test_missing_channel_is_skipped_without_log(store, push):
    _setup(store, channel=None)

    report = dispatch_scheduled_notifications(store, push, now=T0)

    assert report.notifications_sent == 0
    assert push.sent == []
    assert store.logs == []


@pytest.mark.parametrize("mode,status", [("reject", "failed"), ("down", "error")])
def test_failed_attempts_are_logged(store, mode, status):
    _setup(store)
    push = FakePush(mode)

    report = dispatch_scheduled_notifications(store, push, now=T0)

    assert report.results[0]["success"] is False
    assert [e.status for e in store.logs] == [status]
    assert len(push.sent) == 1


def test_failed_first_does_not_block_retry_at_next_fixed_time(store):
    _setup(store, times=("09:00", "13:00"))
    dispatch_scheduled_notifications(store, FakePush("down"), now=T0)

    report = dispatch_scheduled_notifications(store, FakePush(), now=T0.replace(hour=13))

    assert report.notifications_sent == 1
    assert report.results[0]["isSecond"] is False


def test_one_broken_user_does_not_abort_the_batch(store, push):
    _setup(store, user="u1", channel="p1")
    _setup(store, user="u2", channel="p2")
    store.broken_log_users.add("u1")

    report = dispatch_scheduled_notifications(store, push, now=T0)

    assert [r["userId"] for r in report.results] == ["u2"]


def test_log_write_failure_is_not_fatal(store, push):
    _setup(store)
    store.fail_writes = True

    report = dispatch_scheduled_notifications(store, push, now=T0)

    assert report.notifications_sent == 1
    assert store.logs == []


def test_message_follows_time_of_day(store, push):
    _setup(store, times=("14:30",))

    dispatch_scheduled_notifications(store, push, now=T0.replace(hour=14, minute=30), rng=random.Random(1))

    assert push.sent[0]["body"] in AFTERNOON


def test_report_shape(store, push):
    _setup(store)

    body = dispatch_scheduled_notifications(store, push, now=T0).as_dict()

    assert body["currentTime"] == "09:00"
    assert body["notificationsSent"] == 1
    assert body["results"][0]["userId"] == "u1"


def test_run_once_fails_fast_without_push_credentials(monkeypatch):
    monkeypatch.delenv("ONESIGNAL_APP_ID", raising=False)
    monkeypatch.delenv("ONESIGNAL_REST_API_KEY", raising=False)
    factory = MagicMock()
    monkeypatch.setattr(dispatcher, "create_service_client", factory)

    with pytest.raises(ConfigurationError):
        dispatcher.run_once()

    factory.assert_not_called()
