from typing import Any, List, Optional

from pydantic import BaseModel, field_validator


class SheetRows(BaseModel):
    spreadsheetId: str
    spreadsheetTitle: Optional[str] = None
    sheetTitle: str
    rows: List[List[Any]] = []


class LinkRequest(BaseModel):
    spreadsheetId: Optional[str] = ""


class DeviceRequest(BaseModel):
    device: Optional[str] = ""

    @field_validator("device", mode="before")
    @classmethod
    def device_text(cls, value):
        # Devices are often plain numbers in the sheet, so numeric JSON is accepted.
        if isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, (int, float)):
            return str(value)
        return value


class CommentRequest(DeviceRequest):
    comment: Optional[Any] = ""


class LinkResponse(BaseModel):
    ok: bool = True
    spreadsheetId: str
    spreadsheetTitle: Optional[str] = None
    message: str = "Spreadsheet linked successfully."


class RowsResponse(SheetRows):
    ok: bool = True


class UpdateResponse(BaseModel):
    ok: bool = True
    device: str
    range: str
