"""Tests for notification preferences, profiles and theme settings."""

from __future__ import annotations

import asyncio

import pytest

from quotebook.engine.daily_quote import DailyQuoteSelector
from quotebook.engine.errors import InvalidTimeError
from quotebook.engine.preferences import (
    NotificationPreferences,
    Profile,
    ThemeSettings,
    apply_notification_settings,
    format_time,
    load_notification_preferences,
    load_profile,
    parse_time,
    save_notification_preferences,
    save_profile,
    to_12h,
    to_24h,
)
from quotebook.engine.quote_store import QuoteStore
from quotebook.engine.reminders import LocalNotificationService, ReminderScheduler


@pytest.fixture
def store(tmp_path):
    return QuoteStore(tmp_path / "store.json", seed_quotes=[
        {"id": "q1", "text": "Onward.", "author": "Ada"},
    ])


class TestTimeHelpers:
    @pytest.mark.parametrize("hour12,is_am,expected", [
        (12, True, 0), (1, True, 1), (11, True, 11),
        (12, False, 12), (1, False, 13), (11, False, 23),
    ])
    def test_to_24h(self, hour12, is_am, expected):
        assert to_24h(hour12, is_am) == expected

    def test_to_24h_rejects_zero(self):
        with pytest.raises(InvalidTimeError):
            to_24h(0, True)

    def test_to_12h(self):
        assert to_12h(0) == (12, True)
        assert to_12h(12) == (12, False)
        assert to_12h(17) == (5, False)

    def test_format_and_parse(self):
        assert format_time(7, 5) == "07:05:00"
        assert parse_time("07:05:00") == (7, 5)
        assert parse_time("23:59") == (23, 59)

    @pytest.mark.parametrize("value", ["", "7", "24:00", "aa:bb", "12:60:00"])
    def test_parse_invalid(self, value):
        with pytest.raises(InvalidTimeError):
            parse_time(value)


class TestNotificationPreferences:
    def test_defaults_when_missing(self, store):
        prefs = asyncio.run(load_notification_preferences(store, "u1"))
        assert prefs.daily_quote_enabled is True
        assert (prefs.hour, prefs.minute) == (8, 0)

    def test_save_and_load(self, store):
        prefs = NotificationPreferences(user_id="u1", daily_quote_enabled=False,
                                        notification_time="21:45:00", timezone="Europe/Rome")
        asyncio.run(save_notification_preferences(store, prefs))
        loaded = asyncio.run(load_notification_preferences(store, "u1"))
        assert loaded.daily_quote_enabled is False
        assert loaded.notification_time == "21:45:00"
        assert loaded.timezone == "Europe/Rome"
        assert loaded.updated_at is not None


class TestApplySettings:
    def _deps(self, store, granted=True):
        service = LocalNotificationService(prompt_answer=granted)
        return DailyQuoteSelector(store), ReminderScheduler(service), service

    def test_enabled_schedules_todays_quote(self, store):
        selector, scheduler, service = self._deps(store)
        out = asyncio.run(apply_notification_settings(
            store, selector, scheduler, "u1", enabled=True, hour=7, minute=30, today="2024-03-01",
        ))
        assert out["scheduled"] is True
        assert out["permission_granted"] is True
        scheduled = asyncio.run(service.list_scheduled())
        assert len(scheduled) == 1
        assert scheduled[0].body == "Onward. — Ada"
        assert (scheduled[0].hour, scheduled[0].minute) == (7, 30)
        assert asyncio.run(load_notification_preferences(store, "u1")).notification_time == "07:30:00"

    def test_disabled_cancels(self, store):
        selector, scheduler, service = self._deps(store)
        asyncio.run(apply_notification_settings(store, selector, scheduler, "u1", True, 7, 30, today="2024-03-01"))
        out = asyncio.run(apply_notification_settings(store, selector, scheduler, "u1", False, 7, 30, today="2024-03-01"))
        assert out["scheduled"] is False
        assert asyncio.run(service.list_scheduled()) == []
        assert asyncio.run(load_notification_preferences(store, "u1")).daily_quote_enabled is False

    def test_permission_denied_saves_but_does_not_schedule(self, store):
        selector, scheduler, service = self._deps(store, granted=False)
        out = asyncio.run(apply_notification_settings(store, selector, scheduler, "u1", True, 9, 0, today="2024-03-01"))
        assert out["permission_granted"] is False
        assert out["scheduled"] is False
        assert asyncio.run(service.list_scheduled()) == []

    def test_empty_pool_does_not_schedule(self, tmp_path):
        store = QuoteStore(tmp_path / "empty.json")
        selector, scheduler, service = self._deps(store)
        out = asyncio.run(apply_notification_settings(store, selector, scheduler, "u1", True, 9, 0, today="2024-03-01"))
        assert out["scheduled"] is False

    def test_invalid_time_saves_nothing(self, store):
        selector, scheduler, _ = self._deps(store)
        with pytest.raises(InvalidTimeError):
            asyncio.run(apply_notification_settings(store, selector, scheduler, "u1", True, 24, 0))
        assert asyncio.run(store.select("notification_preferences")) == []


class TestProfile:
    def test_defaults_when_missing(self, store):
        profile = asyncio.run(load_profile(store, "u1"))
        assert profile == Profile(id="u1")

    def test_save_upserts_on_id(self, store):
        asyncio.run(save_profile(store, Profile(id="u1", username="ada", website="https://ada.dev")))
        asyncio.run(save_profile(store, Profile(id="u1", username="ada2", full_name="Ada L.")))
        rows = asyncio.run(store.select("profiles"))
        assert len(rows) == 1
        loaded = asyncio.run(load_profile(store, "u1"))
        assert loaded.username == "ada2"
        assert loaded.full_name == "Ada L."
        assert loaded.updated_at is not None

    def test_missing_table_gives_empty_profile(self, tmp_path):
        store = QuoteStore(tmp_path / "old.json", tables=("quotes",))
        assert asyncio.run(load_profile(store, "u1")).username == ""

    def test_id_required(self, store):
        with pytest.raises(ValueError):
            asyncio.run(save_profile(store, Profile(id="")))


class TestThemeSettings:
    def test_defaults(self, store):
        settings = asyncio.run(ThemeSettings.load(store, "u1"))
        assert settings == ThemeSettings(theme="system", accent_color="teal", font_size=16)

    def test_save_load_roundtrip(self, store):
        asyncio.run(ThemeSettings(theme="dark", accent_color="gold", font_size=18).save(store, "u1"))
        loaded = asyncio.run(ThemeSettings.load(store, "u1"))
        assert loaded.theme == "dark"
        assert loaded.accent_color == "gold"
        assert loaded.font_size == 18
        assert asyncio.run(ThemeSettings.load(store, "u2")).theme == "system"

    @pytest.mark.parametrize("kwargs", [
        {"theme": "sepia"}, {"accent_color": "pink"}, {"font_size": 100}, {"font_size": "16"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            ThemeSettings(**kwargs)

    def test_colors_follow_mode(self):
        light = ThemeSettings(theme="light", accent_color="ocean").colors()
        assert light["background"] == "#FFFFFF"
        assert light["accent"] == "#3B82F6"

        system = ThemeSettings(theme="system", accent_color="ocean")
        assert system.is_dark("dark") is True
        assert system.colors("dark")["accent"] == "#60A5FA"
        assert system.colors("light")["background"] == "#FFFFFF"
