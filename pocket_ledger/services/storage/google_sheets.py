"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the remote backend because:
1. Users can view their ledger directly in Sheets
2. No database setup required
3. The upstream message parser can append rows with no extra service

TRADEOFFS:
- Not suitable for high-volume data (fine for a personal ledger)
- No transactions (each call is independent)
- Limited query capabilities (we filter, sort and page in Python)

gspread is synchronous; every call runs in a worker thread so the
event loop is never blocked.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional, TypeVar
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from pocket_ledger.config import get_settings
from pocket_ledger.models.transaction import (
    EPOCH,
    ExpenseDraft,
    ManualExpenseRecord,
    MessageTransactionRecord,
)
from pocket_ledger.services.storage.interface import (
    LedgerStoreInterface,
    NotFoundError,
    SettingsStoreInterface,
    StorageConnectionError,
    StorageError,
)


T = TypeVar("T")

# Column mappings for the Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "user_id",
    "label",
    "amount",
    "icon",
    "category_id",
    "transaction_at",
    "created_at",
]

# Column mappings for the message-derived sheet (written by the mail parser)
MESSAGE_COLUMNS = [
    "id",
    "user_id",
    "description",
    "category",
    "type",
    "subject",
    "amount",
    "transaction_at",
]

SETTINGS_COLUMNS = [
    "user_id",
    "gemini_api_key",
    "updated_at",
]


def _cell(row: list, index: int) -> str:
    try:
        return row[index] or ""
    except IndexError:
        return ""


def _parse_datetime(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _parse_decimal(value: str) -> Decimal:
    try:
        return Decimal(value.replace(",", ""))
    except (InvalidOperation, AttributeError):
        return Decimal("0")


async def _in_thread(func: Callable[..., T], *args) -> T:
    return await asyncio.to_thread(func, *args)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

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
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise NotFoundError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str]) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.expenses_sheet_name, EXPENSE_COLUMNS)

    def get_messages_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.messages_sheet_name, MESSAGE_COLUMNS)

    def get_settings_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.settings_sheet_name, SETTINGS_COLUMNS)


class GoogleSheetsLedgerStore(LedgerStoreInterface):
    """
    Google Sheets implementation of the ledger store.

    One expense per row. Ownership is a user_id column; every read filters
    by it.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_manual(self, row: list) -> ManualExpenseRecord:
        return ManualExpenseRecord(
            id=_cell(row, 0),
            label=_cell(row, 2) or None,
            amount=_parse_decimal(_cell(row, 3)),
            icon=_cell(row, 4) or None,
            category_id=_cell(row, 5) or None,
            transaction_at=_parse_datetime(_cell(row, 6)),
        )

    def _row_to_message(self, row: list) -> MessageTransactionRecord:
        return MessageTransactionRecord(
            id=_cell(row, 0),
            description=_cell(row, 2) or None,
            category=_cell(row, 3) or None,
            type=_cell(row, 4) or None,
            subject=_cell(row, 5) or None,
            amount=_parse_decimal(_cell(row, 6)),
            transaction_at=_parse_datetime(_cell(row, 7)),
        )

    def _draft_to_row(self, owner_id: str, draft: ExpenseDraft) -> tuple[list, ManualExpenseRecord]:
        now = datetime.now(timezone.utc)
        record = ManualExpenseRecord(
            id=uuid4().hex,
            label=draft.label,
            amount=draft.amount,
            icon=draft.icon,
            category_id=draft.category_id,
            transaction_at=draft.transaction_at or now,
        )
        row = [
            record.id,
            owner_id,
            record.label or "",
            str(record.amount),
            record.icon or "",
            record.category_id or "",
            record.transaction_at.isoformat(),
            now.isoformat(),
        ]
        return row, record

    def _read_page(
        self,
        get_sheet: Callable[[], gspread.Worksheet],
        convert: Callable[[list], T],
        owner_id: str,
        offset: int,
        count: int,
    ) -> list[T]:
        sheet = get_sheet()
        rows = sheet.get_all_values()[1:]  # Skip header

        records = []
        for row in rows:
            if not row or not row[0] or _cell(row, 1) != owner_id:
                continue
            try:
                records.append(convert(row))
            except ValidationError:
                continue  # Skip malformed rows

        records.sort(key=lambda r: r.transaction_at or EPOCH, reverse=True)
        return records[offset:offset + count]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def fetch_manual_page(self, owner_id, offset, count):
        try:
            return await _in_thread(
                self._read_page,
                self._client.get_expenses_sheet,
                self._row_to_manual,
                owner_id,
                offset,
                count,
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read expenses: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def fetch_message_page(self, owner_id, offset, count):
        try:
            return await _in_thread(
                self._read_page,
                self._client.get_messages_sheet,
                self._row_to_message,
                owner_id,
                offset,
                count,
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read message transactions: {e}")

    async def insert_expense(self, owner_id, draft):
        records = await self.insert_expenses(owner_id, [draft])
        return records[0]

    async def insert_expenses(self, owner_id, drafts):
        converted = [self._draft_to_row(owner_id, d) for d in drafts]
        rows = [row for row, _ in converted]

        def append() -> None:
            sheet = self._client.get_expenses_sheet()
            sheet.append_rows(rows, value_input_option="RAW")

        try:
            await _in_thread(append)
        except Exception as e:
            raise StorageError(f"Failed to save expenses: {e}")
        return [record for _, record in converted]

    async def delete_expense(self, owner_id, expense_id):
        def delete() -> bool:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()
            for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
                if row and row[0] == expense_id and _cell(row, 1) == owner_id:
                    sheet.delete_rows(idx)
                    return True
            return False

        try:
            return await _in_thread(delete)
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")


class GoogleSheetsSettingsStore(SettingsStoreInterface):
    """One row per user: user_id, gemini_api_key, updated_at."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, sheet: gspread.Worksheet, owner_id: str) -> tuple[Optional[int], list]:
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if row and row[0] == owner_id:
                return idx, row
        return None, []

    async def get_secret(self, owner_id):
        def read() -> Optional[str]:
            sheet = self._client.get_settings_sheet()
            _, row = self._find_row(sheet, owner_id)
            return _cell(row, 1) or None

        try:
            return await _in_thread(read)
        except Exception as e:
            raise StorageError(f"Failed to read settings: {e}")

    async def upsert_secret(self, owner_id, value):
        def write() -> None:
            sheet = self._client.get_settings_sheet()
            idx, _ = self._find_row(sheet, owner_id)
            updated_at = datetime.now(timezone.utc).isoformat()
            if idx is None:
                sheet.append_row([owner_id, value, updated_at], value_input_option="RAW")
            else:
                sheet.update_cell(idx, 2, value)
                sheet.update_cell(idx, 3, updated_at)

        try:
            await _in_thread(write)
        except Exception as e:
            raise StorageError(f"Failed to save settings: {e}")

    async def clear_secret(self, owner_id):
        def clear() -> None:
            sheet = self._client.get_settings_sheet()
            idx, _ = self._find_row(sheet, owner_id)
            if idx is not None:
                sheet.update_cell(idx, 2, "")
                sheet.update_cell(idx, 3, datetime.now(timezone.utc).isoformat())

        try:
            await _in_thread(clear)
        except Exception as e:
            raise StorageError(f"Failed to clear settings: {e}")
