import logging
import re
from typing import Any, List, Optional

from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build

from sheettrack.models.sheet import SheetRows
from sheettrack.util.errors import (
    ColumnNotFound,
    CredentialsMissing,
    DeviceNotFound,
    DeviceRequired,
    NoSheets,
)
from sheettrack.util.settings import Settings

logger = logging.getLogger(__name__)

DEVICE_COLUMN = "Device"
COMPLETED_COLUMN = "Completed"
COMMENT_COLUMN = "Comment"

METADATA_FIELDS = "spreadsheetId,properties.title,sheets(properties.title,properties.index,properties.sheetId)"

SPREADSHEET_URL = re.compile(r"spreadsheets/d/([a-zA-Z0-9-_]+)")
FORMULA_PREFIX = re.compile(r"^[=+\-@]")


def normalize_spreadsheet_id(value) -> Optional[str]:
    """
    Accepts a raw spreadsheet ID or a full Google Sheets URL and returns the ID.
    """
    if not value or not isinstance(value, str):
        return None

    if "http" not in value:
        return value.strip() or None

    match = SPREADSHEET_URL.search(value)
    return match.group(1) if match else None


def column_to_a1(index: int) -> str:
    letters = ""
    n = index + 1
    while n > 0:
        n, remainder = divmod(n - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


def quote_sheet_title(title: str) -> str:
    return "'" + title.replace("'", "''") + "'"


def cell_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def find_column(header: List[Any], name: str) -> int:
    for index, cell in enumerate(header):
        if cell_text(cell) == name:
            return index
    raise ColumnNotFound(name)


def locate_device_cell(
    rows: List[List[Any]], sheet_title: str, device: str, column: str
) -> str:
    """
    Finds the row whose Device cell matches `device` (trimmed, case-insensitive)
    and returns the A1 range of its `column` cell, e.g. 'Sheet1'!D7.

    rows[0] is the header. The first matching data row wins.
    """
    wanted = cell_text(device).casefold()
    if not wanted:
        raise DeviceRequired()

    header = rows[0] if rows else []
    device_col = find_column(header, DEVICE_COLUMN)
    target_col = find_column(header, column)

    for index in range(1, len(rows)):
        row = rows[index] or []
        value = row[device_col] if device_col < len(row) else ""
        if cell_text(value).casefold() == wanted:
            return f"{quote_sheet_title(sheet_title)}!{column_to_a1(target_col)}{index + 1}"

    raise DeviceNotFound()


def sanitize_cell_text(value: str) -> str:
    # USER_ENTERED would otherwise evaluate these as formulas.
    if FORMULA_PREFIX.match(value):
        return "'" + value
    return value


class GoogleSheets:
    """
    Thin wrapper around the Sheets API. Authentication is deferred until the
    first call, so pages that never touch Google work without credentials.
    """

    def __init__(self, service=None):
        self._service = service

    @property
    def service(self):
        if self._service is None:
            self.auth()
        return self._service

    def auth(self):
        """Create an authenticated Sheets client from the configured service account."""
        google = Settings().google
        if google.credentials_file:
            self.credentials = Credentials.from_service_account_file(
                google.credentials_file, scopes=google.scopes
            )
        elif google.client_email and google.private_key:
            self.credentials = Credentials.from_service_account_info(
                {
                    "type": "service_account",
                    "client_email": google.client_email,
                    "private_key": google.private_key_pem(),
                    "token_uri": "https://oauth2.googleapis.com/token",
                },
                scopes=google.scopes,
            )
        else:
            raise CredentialsMissing()

        self._service = build(
            "sheets", "v4", credentials=self.credentials, cache_discovery=False
        )

    def get_metadata(self, spreadsheet_id: str) -> dict:
        return (
            self.service.spreadsheets()
            .get(spreadsheetId=spreadsheet_id, fields=METADATA_FIELDS)
            .execute()
        )

    def first_tab(self, metadata: dict) -> str:
        tabs = metadata.get("sheets") or []
        if not tabs:
            raise NoSheets()
        first = sorted(tabs, key=lambda tab: tab.get("properties", {}).get("index") or 0)[0]
        return first["properties"]["title"]

    def read_rows(self, spreadsheet_id: str) -> SheetRows:
        metadata = self.get_metadata(spreadsheet_id)
        sheet_title = self.first_tab(metadata)

        response = (
            self.service.spreadsheets()
            .values()
            .get(
                spreadsheetId=spreadsheet_id,
                range=sheet_title,
                majorDimension="ROWS",
                valueRenderOption="UNFORMATTED_VALUE",
                dateTimeRenderOption="SERIAL_NUMBER",
            )
            .execute()
        )

        return SheetRows(
            spreadsheetId=metadata.get("spreadsheetId", spreadsheet_id),
            spreadsheetTitle=metadata.get("properties", {}).get("title"),
            sheetTitle=sheet_title,
            rows=response.get("values", []),
        )

    def update_cell(self, spreadsheet_id: str, a1_range: str, value) -> dict:
        return (
            self.service.spreadsheets()
            .values()
            .update(
                spreadsheetId=spreadsheet_id,
                range=a1_range,
                valueInputOption="USER_ENTERED",
                body={"values": [[value]]},
            )
            .execute()
        )

    def set_device_value(self, spreadsheet_id: str, device: str, column: str, value) -> str:
        if not cell_text(device):
            raise DeviceRequired()
        sheet = self.read_rows(spreadsheet_id)
        a1_range = locate_device_cell(sheet.rows, sheet.sheetTitle, device, column)
        self.update_cell(spreadsheet_id, a1_range, value)
        logger.info("Set %s for %s at %s", column, cell_text(device), a1_range)
        return a1_range

    def set_completed(self, spreadsheet_id: str, device: str, completed: bool) -> str:
        return self.set_device_value(
            spreadsheet_id, device, COMPLETED_COLUMN, "TRUE" if completed else "FALSE"
        )

    def set_comment(self, spreadsheet_id: str, device: str, comment) -> str:
        text = "" if comment is None else str(comment)
        return self.set_device_value(
            spreadsheet_id, device, COMMENT_COLUMN, sanitize_cell_text(text)
        )


sheets_client = None


def get_sheets():
    global sheets_client
    if sheets_client is None:
        sheets_client = GoogleSheets()
    return sheets_client
