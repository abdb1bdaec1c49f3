"""
Tests for both storage tiers.

The Google Sheets store runs against a fake worksheet; nothing here
talks to the network.
"""

import asyncio
import json
import os

import gspread
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from budget_tracker.config import GoogleSheetsSettings
from budget_tracker.models import Expense, Store
from budget_tracker.services.storage import (
    CacheError,
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
    InMemoryLocalCache,
    InMemoryRemoteStore,
    JsonFileCache,
    StorageError,
    SyncError,
)
from budget_tracker.services.storage.google_sheets import MAX_CELL_CHARS, REMOTE_COLUMNS


T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def store_with_budget(amount: str) -> Store:
    store = Store()
    store.month_for_update(2024, 0).set_budget(Decimal(amount))
    return store


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the remote store."""

    def __init__(self, rows=None):
        self.rows = [list(REMOTE_COLUMNS)] + [list(r) for r in (rows or [])]
        self.updates = []

    def get_all_values(self):
        return [list(r) for r in self.rows]

    def append_row(self, values, value_input_option="RAW"):
        self.rows.append(list(values))

    def update(self, values=None, range_name=None, value_input_option="RAW"):
        self.updates.append(range_name)
        row_number = int(range_name.split(":")[0][1:])
        self.rows[row_number - 1] = list(values[0])


class FakeClient:
    def __init__(self, sheet: FakeWorksheet):
        self.sheet = sheet

    def get_budget_sheet(self):
        return self.sheet


class BrokenClient:
    def get_budget_sheet(self):
        raise RuntimeError("quota exceeded")


class FakeSpreadsheet:
    def __init__(self):
        self.sheets = {}

    def worksheet(self, title):
        if title not in self.sheets:
            raise gspread.WorksheetNotFound(title)
        return self.sheets[title]

    def add_worksheet(self, title, rows, cols):
        sheet = FakeWorksheet()
        sheet.rows = []
        self.sheets[title] = sheet
        return sheet


class TestJsonFileCache:
    """Tests for the on-disk cache."""

    def test_missing_file_is_empty(self, tmp_path):
        """Test first run on a device."""
        cache = JsonFileCache(tmp_path / "budget.json")
        assert cache.read().is_empty

    def test_write_then_read(self, tmp_path):
        """Test that a written Store reads back equal."""
        cache = JsonFileCache(tmp_path / "budget.json")
        store = store_with_budget("1000")
        store.month_for_update(2024, 0).add_expense(
            "2024-01-03", Expense(name="Tea", amount=Decimal("40"), category="food")
        )
        cache.write(store)
        assert cache.read() == store

    def test_creates_parent_directory(self, tmp_path):
        """Test that the cache directory is created on first write."""
        cache = JsonFileCache(tmp_path / "nested" / "dir" / "budget.json")
        cache.write(store_with_budget("1"))
        assert cache.path.exists()

    def test_no_temp_files_left(self, tmp_path):
        """Test that the temp file is renamed into place."""
        cache = JsonFileCache(tmp_path / "budget.json")
        cache.write(store_with_budget("1"))
        cache.write(store_with_budget("2"))
        assert sorted(os.listdir(tmp_path)) == ["budget.json"]

    def test_corrupt_file(self, tmp_path):
        """Test that garbage on disk reads as empty but load() reports it."""
        path = tmp_path / "budget.json"
        path.write_text("{definitely not json", encoding="utf-8")
        cache = JsonFileCache(path)
        assert cache.read().is_empty
        with pytest.raises(CacheError):
            cache.load()

    def test_empty_file_is_empty(self, tmp_path):
        """Test a zero-length cache file."""
        path = tmp_path / "budget.json"
        path.write_text("", encoding="utf-8")
        assert JsonFileCache(path).read().is_empty

    def test_write_failure_is_swallowed(self, tmp_path):
        """Test that an unwritable location does not raise."""
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory", encoding="utf-8")
        cache = JsonFileCache(blocker / "budget.json")
        cache.write(store_with_budget("1"))
        assert cache.read().is_empty

    def test_failed_replace_keeps_old_file(self, tmp_path, monkeypatch):
        """Test that a failed rename leaves the previous cache intact."""
        cache = JsonFileCache(tmp_path / "budget.json")
        cache.write(store_with_budget("1"))

        def fail(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr("budget_tracker.services.storage.local_cache.os.replace", fail)
        cache.write(store_with_budget("2"))

        assert cache.read().get("2024-01").budget == Decimal("1")
        assert sorted(os.listdir(tmp_path)) == ["budget.json"]

    def test_clear(self, tmp_path):
        """Test removing the cache file."""
        cache = JsonFileCache(tmp_path / "budget.json")
        cache.write(store_with_budget("1"))
        cache.clear()
        assert not cache.path.exists()
        cache.clear()
        assert cache.read().is_empty

    def test_on_disk_format(self, tmp_path):
        """Test that the file is a plain JSON object keyed by month."""
        cache = JsonFileCache(tmp_path / "budget.json")
        cache.write(store_with_budget("1000"))
        raw = json.loads(cache.path.read_text(encoding="utf-8"))
        assert raw == {"2024-01": {"budget": 1000, "subscriptions": [], "expenses": {}}}


class TestInMemoryLocalCache:
    """Tests for the in-memory cache."""

    def test_round_trip_is_a_copy(self):
        """Test that later edits don't leak into the cached copy."""
        store = store_with_budget("10")
        cache = InMemoryLocalCache(store)
        store.month_for_update(2024, 0).set_budget(Decimal("20"))
        assert cache.read().get("2024-01").budget == Decimal("10")

    def test_clear(self):
        cache = InMemoryLocalCache(store_with_budget("10"))
        cache.clear()
        assert cache.read().is_empty


class TestInMemoryRemoteStore:
    """Tests for last-write-wins in the in-memory remote."""

    def test_fetch_missing_user(self):
        """Test that an unknown user is not found."""
        remote = InMemoryRemoteStore()
        assert asyncio.run(remote.fetch_for_user("nobody")) is None

    def test_upsert_then_fetch(self):
        """Test storing and reading back a user's Store."""
        remote = InMemoryRemoteStore()
        asyncio.run(remote.upsert_for_user("u1", store_with_budget("10"), T0))
        assert asyncio.run(remote.fetch_for_user("u1")) == store_with_budget("10")
        assert remote.record_for("u1").updated_at == T0

    def test_older_write_is_ignored(self):
        """Test that an out-of-order write does not overwrite newer data."""
        remote = InMemoryRemoteStore()

        async def scenario():
            await remote.upsert_for_user("u1", store_with_budget("20"), T0 + timedelta(seconds=5))
            await remote.upsert_for_user("u1", store_with_budget("10"), T0)

        asyncio.run(scenario())
        assert asyncio.run(remote.fetch_for_user("u1")) == store_with_budget("20")
        assert [call.applied for call in remote.calls] == [True, False]

    def test_call_log_is_bounded(self):
        """Test that only the most recent upserts are remembered."""
        remote = InMemoryRemoteStore(call_history_size=3)

        async def scenario():
            for i in range(5):
                await remote.upsert_for_user("u1", store_with_budget(str(i)), T0 + timedelta(seconds=i))

        asyncio.run(scenario())
        assert [call.store for call in remote.calls] == [
            store_with_budget("2"), store_with_budget("3"), store_with_budget("4"),
        ]
        assert asyncio.run(remote.fetch_for_user("u1")) == store_with_budget("4")

    def test_call_log_can_be_disabled(self):
        """Test that a zero-size history records nothing but still stores."""
        remote = InMemoryRemoteStore(call_history_size=0)
        asyncio.run(remote.upsert_for_user("u1", store_with_budget("1"), T0))
        assert remote.calls == []
        assert remote.record_for("u1") is not None

    def test_rejects_negative_history_size(self):
        with pytest.raises(ValueError):
            InMemoryRemoteStore(call_history_size=-1)

    def test_users_are_separate(self):
        """Test that each user has their own record."""
        remote = InMemoryRemoteStore()

        async def scenario():
            await remote.upsert_for_user("u1", store_with_budget("1"), T0)
            await remote.upsert_for_user("u2", store_with_budget("2"), T0)

        asyncio.run(scenario())
        assert asyncio.run(remote.fetch_for_user("u1")) == store_with_budget("1")
        assert asyncio.run(remote.fetch_for_user("u2")) == store_with_budget("2")


class TestGoogleSheetsRemoteStore:
    """Tests for the Sheets row mapping and last-write-wins."""

    def test_first_write_appends_row(self):
        """Test that a new user gets a new row."""
        sheet = FakeWorksheet()
        remote = GoogleSheetsRemoteStore(FakeClient(sheet))
        asyncio.run(remote.upsert_for_user("u1", store_with_budget("10"), T0))

        assert len(sheet.rows) == 2
        user_id, data, updated_at = sheet.rows[1]
        assert user_id == "u1"
        assert json.loads(data) == store_with_budget("10").to_raw()
        assert updated_at == T0.isoformat()

    def test_second_write_updates_in_place(self):
        """Test that a known user's row is replaced, not duplicated."""
        sheet = FakeWorksheet([["other", "{}", T0.isoformat()]])
        remote = GoogleSheetsRemoteStore(FakeClient(sheet))

        async def scenario():
            await remote.upsert_for_user("u1", store_with_budget("10"), T0)
            await remote.upsert_for_user("u1", store_with_budget("20"), T0 + timedelta(minutes=1))

        asyncio.run(scenario())
        assert len(sheet.rows) == 3
        assert sheet.updates == ["A3:C3"]
        assert asyncio.run(remote.fetch_for_user("u1")) == store_with_budget("20")

    def test_stale_write_is_ignored(self):
        """Test that a write older than the stored row is dropped."""
        newer = T0 + timedelta(minutes=1)
        sheet = FakeWorksheet([["u1", store_with_budget("20").to_json(), newer.isoformat()]])
        remote = GoogleSheetsRemoteStore(FakeClient(sheet))

        asyncio.run(remote.upsert_for_user("u1", store_with_budget("10"), T0))
        assert sheet.updates == []
        assert asyncio.run(remote.fetch_for_user("u1")) == store_with_budget("20")

    def test_fetch_missing_user(self):
        """Test that an unknown user is not found."""
        remote = GoogleSheetsRemoteStore(FakeClient(FakeWorksheet()))
        assert asyncio.run(remote.fetch_for_user("u1")) is None

    def test_fetch_empty_cell(self):
        """Test that a row with no data is an empty Store."""
        sheet = FakeWorksheet([["u1", "", T0.isoformat()]])
        remote = GoogleSheetsRemoteStore(FakeClient(sheet))
        assert asyncio.run(remote.fetch_for_user("u1")).is_empty

    def test_duplicate_rows_newest_wins(self):
        """Test that the newest of two rows for a user is read."""
        sheet = FakeWorksheet([
            ["u1", store_with_budget("1").to_json(), T0.isoformat()],
            ["u1", store_with_budget("2").to_json(), (T0 + timedelta(hours=1)).isoformat()],
        ])
        remote = GoogleSheetsRemoteStore(FakeClient(sheet))
        assert asyncio.run(remote.fetch_for_user("u1")) == store_with_budget("2")

    def test_corrupt_data_raises_sync_error(self):
        """Test that unreadable remote data is a sync failure."""
        sheet = FakeWorksheet([["u1", "{oops", T0.isoformat()]])
        remote = GoogleSheetsRemoteStore(FakeClient(sheet))
        with pytest.raises(SyncError):
            asyncio.run(remote.fetch_for_user("u1"))

    def test_transport_errors_become_sync_errors(self):
        """Test that gspread failures surface as SyncError."""
        remote = GoogleSheetsRemoteStore(BrokenClient())
        with pytest.raises(SyncError):
            asyncio.run(remote.fetch_for_user("u1"))
        with pytest.raises(SyncError):
            asyncio.run(remote.upsert_for_user("u1", Store(), T0))

    def test_oversized_store_is_rejected(self):
        """Test the per-cell size limit."""
        store = Store()
        record = store.month_for_update(2024, 0)
        for i in range(MAX_CELL_CHARS // 20):
            record.add_expense("2024-01-01", Expense(name=f"item {i}", amount=Decimal("1")))
        sheet = FakeWorksheet()
        remote = GoogleSheetsRemoteStore(FakeClient(sheet))
        with pytest.raises(SyncError):
            asyncio.run(remote.upsert_for_user("u1", store, T0))
        assert len(sheet.rows) == 1

    def test_budget_sheet_created_with_header(self):
        """Test that a missing worksheet is created with the header row."""
        with pytest.warns(UserWarning):
            settings = GoogleSheetsSettings(
                credentials_path="/nonexistent/credentials.json",
                spreadsheet_id="sheet-id",
            )
        client = GoogleSheetsClient(settings)
        client._spreadsheet = FakeSpreadsheet()
        sheet = client.get_budget_sheet()
        assert sheet.rows == [REMOTE_COLUMNS]
        assert client.get_budget_sheet() is sheet


class TestExceptionHierarchy:
    """Tests for storage error classes."""

    def test_hierarchy(self):
        assert issubclass(CacheError, StorageError)
        assert issubclass(SyncError, StorageError)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
