"""Tests for the daily quote engine — determinism, persistence and races."""

from __future__ import annotations

import asyncio
import os
import time
from datetime import date, datetime

import pytest

from quotebook.engine.daily_quote import (
    DailyQuoteSelector,
    date_key,
    date_seed,
    pick_index,
)
from quotebook.engine.errors import DataAccessError, NoQuotesAvailable, PersistenceSkipped
from quotebook.engine.quote_store import TABLES, QuoteStore

POOL = [
    {"id": "q1", "text": "First.", "author": "Ada", "category": "Wisdom", "tags": ["#one"]},
    {"id": "q2", "text": "Second.", "author": "Bo", "category": "Humor", "tags": None},
    {"id": "q3", "text": "Third.", "author": "Cy", "category": "Love", "tags": ["#three"]},
]


@pytest.fixture
def store(tmp_path):
    return QuoteStore(tmp_path / "store.json", seed_quotes=POOL)


class TestDateKey:
    def test_date(self):
        assert date_key(date(2024, 3, 1)) == "2024-03-01"

    def test_datetime_drops_time_of_day(self):
        assert date_key(datetime(2024, 3, 1, 23, 59)) == "2024-03-01"
        assert date_key(datetime(2024, 3, 1, 0, 1)) == "2024-03-01"

    def test_string_with_time_component(self):
        assert date_key("2024-03-01T18:30:00Z") == "2024-03-01"

    def test_invalid_string(self):
        with pytest.raises(ValueError):
            date_key("March first")

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            date_key(20240301)


class TestPickIndex:
    def test_seed_is_midnight_utc_millis(self):
        assert date_seed("1970-01-01") == 0
        assert date_seed("2024-03-01") == 1709251200000

    def test_concrete_index(self):
        # 1709251200000 is divisible by 3
        assert pick_index("2024-03-01", 3) == 0

    def test_index_in_range_and_stable(self):
        for key in ("2023-12-31", "2024-02-29", "2025-07-14"):
            for n in range(1, 40):
                idx = pick_index(key, n)
                assert 0 <= idx < n
                assert pick_index(key, n) == idx

    def test_empty_pool_rejected(self):
        with pytest.raises(ValueError):
            pick_index("2024-03-01", 0)


class TestSelector:
    def test_same_quote_for_every_user(self, store):
        selector = DailyQuoteSelector(store)
        a = asyncio.run(selector.get_daily_quote("alice", "2024-03-01"))
        b = asyncio.run(selector.get_daily_quote("bob", "2024-03-01"))
        assert a.id == "q1"
        assert b.id == "q1"

    def test_idempotent_after_persist(self, store):
        selector = DailyQuoteSelector(store)
        first = asyncio.run(selector.select("alice", "2024-03-01"))
        assert first.persisted is True
        assert first.warnings == []

        # Pool grows later in the day; the stored assignment still wins.
        asyncio.run(store.add_quotes([{"id": "q4", "text": "Fourth.", "author": "Di"}]))
        second = asyncio.run(selector.select("alice", datetime(2024, 3, 1, 22, 0)))
        assert second.quote == first.quote
        assert second.persisted is True

    def test_one_assignment_row_per_user_day(self, store):
        selector = DailyQuoteSelector(store)
        for _ in range(3):
            asyncio.run(selector.select("alice", "2024-03-01"))
        rows = asyncio.run(store.select("daily_quotes", user_id="alice"))
        assert len(rows) == 1
        assert rows[0]["date"] == "2024-03-01"
        assert rows[0]["quote_id"] == "q1"

    def test_empty_pool_returns_none(self, tmp_path):
        selector = DailyQuoteSelector(QuoteStore(tmp_path / "empty.json"))
        result = asyncio.run(selector.select("alice", "2024-03-01"))
        assert result.quote is None
        assert len(result.warnings) == 1
        assert isinstance(result.warnings[0], NoQuotesAvailable)
        assert asyncio.run(selector.get_daily_quote("alice", "2024-03-01")) is None

    def test_missing_daily_table_still_returns_quote(self, tmp_path):
        store = QuoteStore(
            tmp_path / "store.json",
            seed_quotes=POOL,
            tables=[t for t in TABLES if t != "daily_quotes"],
        )
        result = asyncio.run(DailyQuoteSelector(store).select("alice", "2024-03-01"))
        assert result.quote.id == "q1"
        assert result.persisted is False
        assert isinstance(result.warnings[0], PersistenceSkipped)

    def test_write_failure_is_not_fatal(self, tmp_path):
        class FailingWrites(QuoteStore):
            async def insert_assignment(self, user_id, date, quote_id):
                raise DataAccessError("store offline")

        store = FailingWrites(tmp_path / "store.json", seed_quotes=POOL)
        result = asyncio.run(DailyQuoteSelector(store).select("alice", "2024-03-01"))
        assert result.quote.id == "q1"
        assert isinstance(result.warnings[0], PersistenceSkipped)

    def test_lost_race_returns_stored_winner(self, tmp_path):
        class RacingStore(QuoteStore):
            """Another device stores q2 between our lookup and our insert."""

            first_lookup = True

            async def find_assignment(self, user_id, date):
                if self.first_lookup:
                    self.first_lookup = False
                    await self.insert("daily_quotes", {"user_id": user_id, "date": date, "quote_id": "q2"})
                    return None
                return await super().find_assignment(user_id, date)

        store = RacingStore(tmp_path / "store.json", seed_quotes=POOL)
        result = asyncio.run(DailyQuoteSelector(store).select("alice", "2024-03-01"))
        assert result.quote.id == "q2"
        assert result.persisted is True
        assert len(asyncio.run(store.select("daily_quotes"))) == 1

    def test_concurrent_callers_share_one_selection(self, tmp_path):
        class CountingStore(QuoteStore):
            lookups = 0
            listings = 0

            async def find_assignment(self, user_id, date):
                self.lookups += 1
                await asyncio.sleep(0.01)
                return await super().find_assignment(user_id, date)

            async def list_quotes(self, limit=1000):
                self.listings += 1
                return await super().list_quotes(limit)

        store = CountingStore(tmp_path / "store.json", seed_quotes=POOL)
        selector = DailyQuoteSelector(store)

        async def burst():
            return await asyncio.gather(*[selector.select("alice", "2024-03-01") for _ in range(5)])

        results = asyncio.run(burst())
        assert {r.quote.id for r in results} == {"q1"}
        assert store.lookups == 1
        assert store.listings == 1

    def test_timeout_becomes_data_access_error(self, tmp_path):
        class HangingStore(QuoteStore):
            async def find_assignment(self, user_id, date):
                await asyncio.sleep(5)

        selector = DailyQuoteSelector(HangingStore(tmp_path / "store.json", seed_quotes=POOL), timeout_seconds=0.01)
        with pytest.raises(DataAccessError):
            asyncio.run(selector.select("alice", "2024-03-01"))

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs named pipes")
    def test_blocked_store_file_times_out(self, tmp_path):
        path = tmp_path / "store.json"
        os.mkfifo(path)
        selector = DailyQuoteSelector(QuoteStore(path, seed_quotes=POOL), timeout_seconds=0.2)

        async def run():
            started = time.monotonic()
            try:
                with pytest.raises(DataAccessError):
                    await selector.select("alice", "2024-03-01")
                return time.monotonic() - started
            finally:
                # release the worker thread still waiting to open the pipe
                fd = os.open(path, os.O_WRONLY)
                os.write(fd, b"{}")
                os.close(fd)

        assert asyncio.run(run()) < 2

    def test_missing_quotes_table_with_assignment_reselects(self, tmp_path):
        store = QuoteStore(tmp_path / "store.json", tables=("daily_quotes",))
        asyncio.run(store.insert_assignment("alice", "2024-03-01", "q1"))
        result = asyncio.run(DailyQuoteSelector(store).select("alice", "2024-03-01"))
        assert result.quote is None
        assert isinstance(result.warnings[0], NoQuotesAvailable)

    def test_unreadable_store_propagates(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DataAccessError):
            asyncio.run(DailyQuoteSelector(QuoteStore(path)).select("alice", "2024-03-01"))

    def test_user_id_required(self, store):
        with pytest.raises(ValueError):
            asyncio.run(DailyQuoteSelector(store).select("", "2024-03-01"))

    def test_result_to_dict(self, store):
        result = asyncio.run(DailyQuoteSelector(store).select("alice", "2024-03-01"))
        data = result.to_dict()
        assert data["quote"]["id"] == "q1"
        assert data["quote"]["tags"] == ["#one"]
        assert data["date"] == "2024-03-01"
        assert data["warnings"] == []
