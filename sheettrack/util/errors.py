import pathlib
from typing import Optional

from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates

from sheettrack.util.settings import Settings

templates = Jinja2Templates(
    directory=str(pathlib.Path(__file__).resolve().parent.parent / "templates")
)


class SheetError(Exception):
    """
    Base class for failures that map onto a JSON error response.

    `error` is safe to show to users, `details` carries the underlying cause.
    """

    status_code = 500
    error = "Google Sheets request failed"

    def __init__(self, error: Optional[str] = None, details: Optional[str] = None):
        if error is not None:
            self.error = error
        self.details = details
        super().__init__(self.error)


class InvalidSpreadsheetId(SheetError):
    status_code = 400
    error = "Provide 'spreadsheetId' as a raw ID or a full Google Sheets URL containing /spreadsheets/d/<ID>/"


class NotLinked(SheetError):
    status_code = 400
    error = "No spreadsheet linked. POST /api/googleSheets/link with { spreadsheetId } to link a file first."


class DeviceRequired(SheetError):
    status_code = 400
    error = "Device is required"


class DeviceNotFound(SheetError):
    status_code = 404
    error = "Device not found"


class ColumnNotFound(SheetError):
    status_code = 500

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"{column} column not found")


class NoSheets(SheetError):
    status_code = 500
    error = "The spreadsheet has no visible sheets."


class CredentialsMissing(SheetError):
    status_code = 500
    error = "Google credentials not found. Set GOOGLE_APPLICATION_CREDENTIALS or GOOGLE_SA_CLIENT_EMAIL and GOOGLE_SA_PRIVATE_KEY."


class Errors:
    def __init__(self):
        super(Errors, self).__init__

    def generate(
        request,
        num=404,
        msg="Page not found.",
        essay="",
        return_url="/home",
        return_text="Return to home",
    ):
        return templates.TemplateResponse(
            request,
            "error.html",
            {
                "code": num,
                "reason": msg,
                "essay": essay,
                "return_url": return_url,
                "return_text": return_text,
            },
            status_code=num,
        )

    def api(num=500, msg="Internal error", details=None):
        content = {"ok": False, "error": msg}
        if details and Settings().env != "prod":
            content["details"] = str(details)
        return JSONResponse(content, status_code=num)

    def from_exception(e: SheetError):
        return Errors.api(e.status_code, e.error, e.details)

    def basic_http():
        return {
            400: {"description": "Bad request or no spreadsheet linked"},
            401: {"description": "Missing or invalid x-api-key header"},
            404: {"description": "Device not found"},
            500: {"description": "Google Sheets request failed"},
        }
