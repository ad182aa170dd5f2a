from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from alignment.core.errors import PersistenceFailure
from alignment.schemas.notifications import DeliveryLogEntry, ReminderPreference
from alignment.store.reminders import ReminderStore

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _sb(data=None, count=None):
    """Supabase client whose every query chain ends in execute() -> data."""
    sb = MagicMock()
    query = MagicMock()
    for name in ("select", "eq", "gte", "lte", "order", "limit", "update", "insert", "upsert", "is_"):
        getattr(query, name).return_value = query
    query.not_ = query
    query.execute.return_value = MagicMock(data=data, count=count)
    sb.table.return_value = query
    return sb, query


def test_get_preference_parses_row():
    sb, _ = _sb([{
        "user_id": "u1", "frequency_count": 2, "is_random": False,
        "scheduled_times": ["08:00", "20:00"], "enabled": True,
    }])

    pref = ReminderStore(sb).get_preference("u1")

    sb.table.assert_called_with("notification_settings")
    assert pref.mode == "fixed"
    assert pref.active_times == ["08:00", "20:00"]


def test_legacy_row_with_fewer_times_than_count():
    sb, _ = _sb([{
        "user_id": "u1", "frequency_count": 5, "is_random": False,
        "scheduled_times": ["08:00"], "enabled": True,
    }])

    pref = ReminderStore(sb).get_preference("u1")

    assert pref.count == 1


def test_get_preference_missing():
    sb, _ = _sb([])
    assert ReminderStore(sb).get_preference("u1") is None


def test_save_preference_upserts_on_user_id():
    sb, query = _sb([{}])
    pref = ReminderPreference(user_id="u1", count=2)

    ReminderStore(sb).save_preference(pref)

    row, = query.upsert.call_args.args
    assert row == {
        "user_id": "u1", "enabled": True, "is_random": False,
        "frequency_count": 2, "scheduled_times": ["09:00", "13:00"],
    }
    assert query.upsert.call_args.kwargs == {"on_conflict": "user_id"}


def test_save_preference_failure():
    sb, query = _sb()
    query.execute.side_effect = RuntimeError("connection reset")

    with pytest.raises(PersistenceFailure):
        ReminderStore(sb).save_preference(ReminderPreference(user_id="u1"))


def test_invalid_settings_rows_are_skipped():
    sb, _ = _sb([
        {"user_id": "u1", "frequency_count": 1, "is_random": False, "scheduled_times": ["09:00"], "enabled": True},
        {"user_id": "u2", "frequency_count": 1, "is_random": False, "scheduled_times": ["9am"], "enabled": True},
    ])

    prefs = ReminderStore(sb).list_enabled_preferences()

    assert [p.user_id for p in prefs] == ["u1"]


def test_successful_deliveries_query():
    since = NOW.replace(hour=0)
    sb, query = _sb([{
        "user_id": "u1", "player_id": "p1", "message": "m",
        "status": "success", "sent_at": NOW.isoformat(),
    }])

    rows = ReminderStore(sb).successful_deliveries_since("u1", since)

    query.eq.assert_any_call("status", "success")
    query.gte.assert_called_with("sent_at", since.isoformat())
    assert rows[0].channel_id == "p1"
    assert rows[0].sent_at == NOW


def test_append_delivery_maps_channel_to_player_id():
    sb, query = _sb([{}])
    entry = DeliveryLogEntry(user_id="u1", channel_id="p1", message="m", status="failed", sent_at=NOW)

    ReminderStore(sb).append_delivery(entry)

    row, = query.insert.call_args.args
    assert row["player_id"] == "p1"
    assert row["status"] == "failed"
    assert row["sent_at"] == NOW.isoformat()


def test_expired_timers_carry_joined_channel():
    sb, query = _sb([{
        "id": 7, "user_id": "u1", "min_seconds": 30, "max_seconds": 35,
        "next_notification_at": NOW.isoformat(), "is_active": True, "is_paused": False,
        "profiles": {"onesignal_player_id": "p1"},
    }])

    timers = ReminderStore(sb).list_expired_timers(NOW)

    query.lte.assert_called_with("next_notification_at", NOW.isoformat())
    assert timers[0].id == "7"
    assert timers[0].channel_id == "p1"


def test_advance_timer_is_conditional():
    sb, query = _sb([])
    expected = NOW
    nxt = NOW + timedelta(seconds=33)

    won = ReminderStore(sb).advance_timer("7", expected, nxt)

    assert won is False
    query.update.assert_called_with({"next_notification_at": nxt.isoformat()})
    query.eq.assert_any_call("next_notification_at", expected.isoformat())


def test_advance_timer_wins_when_row_returned():
    sb, _ = _sb([{"id": "7"}])
    assert ReminderStore(sb).advance_timer("7", NOW, NOW + timedelta(seconds=30)) is True


def test_channel_id_for_blank_is_none():
    sb, _ = _sb([{"onesignal_player_id": ""}])
    assert ReminderStore(sb).channel_id_for("u1") is None


def test_counts():
    sb, _ = _sb([], count=4)
    assert ReminderStore(sb).counts() == {"enabled_preferences": 4, "active_timers": 4}
