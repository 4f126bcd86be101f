import logging
from typing import Any, List, Optional

import requests
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

logger = logging.getLogger(__name__)


class ClientError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, data=None):
        self.message = message
        self.status = status
        self.data = data
        super().__init__(message)


def normalize_error(e: Exception) -> ClientError:
    if isinstance(e, ClientError):
        return e
    response = getattr(e, "response", None)
    status = response.status_code if response is not None else None
    data = None
    if response is not None:
        try:
            data = response.json()
        except ValueError:
            data = None
    message = None
    if isinstance(data, dict):
        message = data.get("details") or data.get("error")
    return ClientError(
        message or str(e) or "Unknown error contacting Google Sheets service",
        status=status,
        data=data,
    )


class SheetTrackClient:
    """
    Talks to a running SheetTrack server over its JSON API.
    """

    def __init__(self, base_url: str = "http://localhost:8000", api_key: Optional[str] = None, timeout: int = 30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {"Content-Type": "application/json", "x-api-key": api_key or ""}
        )

    def request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self.session.request(
                method, self.base_url + "/api/googleSheets" + path, timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise normalize_error(e) from e
        if not isinstance(data, dict) or not data.get("ok"):
            error = data.get("error") if isinstance(data, dict) else None
            raise ClientError(error or "Request failed", response.status_code, data)
        return data

    def link(self, spreadsheet_id: str) -> dict:
        spreadsheet_id = (spreadsheet_id or "").strip()
        if not spreadsheet_id:
            raise ClientError("No spreadsheetId provided.")
        return self.request("POST", "/link", json={"spreadsheetId": spreadsheet_id})

    def unlink(self) -> dict:
        return self.request("DELETE", "/link")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_incrementing(start=0.25, increment=0.25),
        retry=retry_if_exception(lambda e: isinstance(e, ClientError) and e.status != 400),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def rows(self) -> dict:
        """
        Fetches all rows, retrying transient failures. A 400 (nothing linked) is not retried.
        """
        return self.request("GET", "/rows")

    def complete(self, device: str) -> dict:
        return self.request("POST", "/complete", json={"device": require_device(device)})

    def incomplete(self, device: str) -> dict:
        return self.request("POST", "/incomplete", json={"device": require_device(device)})

    def comment(self, device: str, comment: str) -> dict:
        return self.request(
            "POST",
            "/comment",
            json={"device": require_device(device), "comment": "" if comment is None else str(comment)},
        )


def require_device(device) -> str:
    device = str(device or "").strip()
    if not device:
        raise ClientError("Device is required.")
    return device


class SheetState:
    """
    Local copy of the linked sheet. Edits are applied to the local rows first,
    then sent to the server; if the server rejects one, rows are reloaded.
    """

    def __init__(self, client: SheetTrackClient):
        self.client = client
        self.rows: List[List[Any]] = []
        self.spreadsheet_id = None
        self.spreadsheet_title = None
        self.sheet_title = None
        self.error: Optional[ClientError] = None

    def refresh(self):
        try:
            data = self.client.rows()
        except ClientError as e:
            self.error = e
            raise
        self.error = None
        self.spreadsheet_id = data.get("spreadsheetId")
        self.spreadsheet_title = data.get("spreadsheetTitle")
        self.sheet_title = data.get("sheetTitle")
        rows = data.get("rows") if isinstance(data.get("rows"), list) else []
        self.rows = [list(row) for row in rows]
        return self.rows

    def link(self, spreadsheet_id: str):
        data = self.client.link(spreadsheet_id)
        self.spreadsheet_id = data.get("spreadsheetId")
        self.spreadsheet_title = data.get("spreadsheetTitle")
        return self.refresh()

    def set_local(self, device: str, column: str, value) -> bool:
        if not self.rows:
            return False
        header = [str(h).strip() for h in self.rows[0]]
        if "Device" not in header or column not in header:
            return False
        device_col, target_col = header.index("Device"), header.index(column)
        wanted = device.strip().lower()
        for row in self.rows[1:]:
            if device_col < len(row) and str(row[device_col]).strip().lower() == wanted:
                row.extend([""] * (target_col + 1 - len(row)))
                row[target_col] = value
                return True
        return False

    def apply(self, device: str, column: str, value, send):
        device = require_device(device)
        self.set_local(device, column, value)
        try:
            return send(device)
        except ClientError:
            logger.warning("Update for %s rejected, reloading rows", device)
            try:
                self.refresh()
            except ClientError:
                logger.exception("Reload after failed update also failed")
            raise

    def complete(self, device: str):
        return self.apply(device, "Completed", True, self.client.complete)

    def incomplete(self, device: str):
        return self.apply(device, "Completed", False, self.client.incomplete)

    def comment(self, device: str, comment: str):
        return self.apply(
            device, "Comment", comment, lambda d: self.client.comment(d, comment)
        )
