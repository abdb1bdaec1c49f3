"""
Google Sheets Remote Store

DESIGN DECISION: Google Sheets is used as the remote backend because:
1. Users can see (and back up) their data directly in Sheets
2. No database setup required
3. Built-in durability (Google's infrastructure)

The worksheet holds one row per user:

    user_id | data (Store as JSON) | updated_at (ISO-8601, UTC)

TRADEOFFS:
- No transactions: concurrent upserts for the same user race, and the
  updated_at column decides which one sticks (last write wins)
- A cell holds at most 50,000 characters, which bounds the Store size
- gspread is blocking, so every call runs in a worker thread
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from budget_tracker.config import GoogleSheetsSettings, get_settings
from budget_tracker.models.ledger import Store
from budget_tracker.models.sync_event import utc_now
from budget_tracker.services.storage.interface import (
    ConnectionError,
    RemoteStoreInterface,
    SyncError,
)


logger = structlog.get_logger(__name__)


REMOTE_COLUMNS = [
    "user_id",
    "data",
    "updated_at",
]

# Google Sheets hard limit per cell
MAX_CELL_CHARS = 50_000


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_budget_sheet(self) -> gspread.Worksheet:
        """Get or create the per-user budget worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.worksheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.worksheet_name,
                rows=100,
                cols=len(REMOTE_COLUMNS),
            )
            sheet.append_row(REMOTE_COLUMNS)
        return sheet


def _parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an updated_at cell; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class GoogleSheetsRemoteStore(RemoteStoreInterface):
    """
    Google Sheets implementation of the remote store.

    If concurrent first writes ever produced two rows for one user,
    the row with the newest updated_at is the one read and updated.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _record_to_row(self, user_id: str, store: Store, updated_at: datetime) -> list:
        """Convert a user's Store to a spreadsheet row."""
        data = store.to_json()
        if len(data) > MAX_CELL_CHARS:
            raise SyncError(
                f"Store for {user_id} is {len(data)} characters, "
                f"over the {MAX_CELL_CHARS} per-cell limit"
            )
        return [user_id, data, updated_at.isoformat()]

    def _find_row(self, rows: list[list[str]], user_id: str) -> tuple[Optional[int], Optional[list[str]]]:
        """
        Locate a user's row in get_all_values() output.

        Returns (1-based sheet row index, row) or (None, None).
        """
        best_idx, best_row, best_ts = None, None, None
        for idx, row in enumerate(rows[1:], start=2):  # Row 1 is the header
            if not row or row[0] != user_id:
                continue
            ts = _parse_timestamp(row[2] if len(row) > 2 else "")
            if best_row is None or (ts is not None and (best_ts is None or ts > best_ts)):
                best_idx, best_row, best_ts = idx, row, ts
        return best_idx, best_row

    def _fetch_sync(self, user_id: str) -> Optional[Store]:
        sheet = self._client.get_budget_sheet()
        _, row = self._find_row(sheet.get_all_values(), user_id)
        if row is None:
            return None

        data = row[1] if len(row) > 1 else ""
        if not data.strip():
            return Store()
        try:
            return Store.from_json(data)
        except ValueError as e:
            raise SyncError(f"Remote data for {user_id} is not valid JSON: {e}")

    def _upsert_sync(self, user_id: str, store: Store, updated_at: datetime) -> bool:
        """Write the row; returns False when a newer row already exists."""
        new_row = self._record_to_row(user_id, store, updated_at)
        sheet = self._client.get_budget_sheet()
        idx, row = self._find_row(sheet.get_all_values(), user_id)

        if idx is None:
            sheet.append_row(new_row, value_input_option="RAW")
            return True

        stored_at = _parse_timestamp(row[2] if len(row) > 2 else "")
        if stored_at is not None and stored_at > updated_at:
            return False

        sheet.update(
            values=[new_row],
            range_name=f"A{idx}:C{idx}",
            value_input_option="RAW",
        )
        return True

    async def fetch_for_user(self, user_id: str) -> Optional[Store]:
        """Fetch a user's Store from the sheet."""
        try:
            return await asyncio.to_thread(self._fetch_sync, user_id)
        except SyncError:
            raise
        except Exception as e:
            raise SyncError(f"Failed to fetch budget data: {e}")

    async def upsert_for_user(
        self,
        user_id: str,
        store: Store,
        updated_at: Optional[datetime] = None,
    ) -> None:
        """Create or replace a user's row, unless a newer one is stored."""
        updated_at = updated_at or utc_now()
        try:
            applied = await asyncio.to_thread(
                self._upsert_sync, user_id, store, updated_at
            )
        except SyncError:
            raise
        except Exception as e:
            raise SyncError(f"Failed to save budget data: {e}")

        if not applied:
            logger.info(
                "remote_write_stale",
                user_id=user_id,
                updated_at=updated_at.isoformat(),
            )
