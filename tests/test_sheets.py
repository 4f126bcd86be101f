from unittest.mock import patch

import pytest

from sheettrack.util.errors import (
    ColumnNotFound,
    CredentialsMissing,
    DeviceNotFound,
    DeviceRequired,
    NoSheets,
)
from sheettrack.util.settings import Settings
from sheettrack.util.sheets import (
    METADATA_FIELDS,
    GoogleSheets,
    column_to_a1,
    locate_device_cell,
    normalize_spreadsheet_id,
    sanitize_cell_text,
)


def test_normalize_raw_id():
    assert normalize_spreadsheet_id("  1AbC-d_9  ") == "1AbC-d_9"


def test_normalize_url():
    url = "https://docs.google.com/spreadsheets/d/1AbC-d_9xyz/edit#gid=0"
    assert normalize_spreadsheet_id(url) == "1AbC-d_9xyz"


@pytest.mark.parametrize("value", [None, "", "   ", 42, "https://example.com/nothing/here"])
def test_normalize_rejects(value):
    assert normalize_spreadsheet_id(value) is None


@pytest.mark.parametrize(
    "index, letters",
    [(0, "A"), (5, "F"), (25, "Z"), (26, "AA"), (51, "AZ"), (701, "ZZ"), (702, "AAA")],
)
def test_column_to_a1(index, letters):
    assert column_to_a1(index) == letters


def test_locate_is_case_insensitive_and_trimmed(rows):
    assert locate_device_cell(rows, "Devices", "  PC-002", "Completed") == "'Devices'!F3"
    assert locate_device_cell(rows, "Devices", "pc-001", "Comment") == "'Devices'!G2"


def test_locate_short_row(rows):
    # PC-003 has no Comment cell at all; the range is still computed.
    assert locate_device_cell(rows, "Devices", "PC-003", "Comment") == "'Devices'!G4"


def test_locate_first_match_wins(rows):
    rows.append(["PC-001", "10.0.0.9"])
    assert locate_device_cell(rows, "Devices", "PC-001", "Completed") == "'Devices'!F2"


def test_locate_quotes_title(rows):
    assert locate_device_cell(rows, "Bob's Lab", "PC-001", "Completed") == "'Bob''s Lab'!F2"


def test_locate_header_cells_are_trimmed(rows):
    rows[0][6] = " Comment "
    assert locate_device_cell(rows, "Devices", "PC-001", "Comment") == "'Devices'!G2"


def test_locate_errors(rows):
    with pytest.raises(DeviceRequired):
        locate_device_cell(rows, "Devices", "  ", "Completed")
    with pytest.raises(DeviceNotFound):
        locate_device_cell(rows, "Devices", "PC-999", "Completed")
    with pytest.raises(ColumnNotFound) as e:
        locate_device_cell(rows, "Devices", "PC-001", "Owner")
    assert e.value.error == "Owner column not found"
    with pytest.raises(ColumnNotFound):
        locate_device_cell([], "Devices", "PC-001", "Completed")


def test_sanitize_cell_text():
    assert sanitize_cell_text("=SUM(A1:A3)") == "'=SUM(A1:A3)"
    assert sanitize_cell_text("+1") == "'+1"
    assert sanitize_cell_text("-x") == "'-x"
    assert sanitize_cell_text("@me") == "'@me"
    assert sanitize_cell_text("wiped, done") == "wiped, done"
    assert sanitize_cell_text("") == ""


def test_get_metadata(sheets, service):
    assert sheets.get_metadata("sheet123")["properties"]["title"] == "Lab Inventory"
    service.spreadsheets.return_value.get.assert_called_with(
        spreadsheetId="sheet123", fields=METADATA_FIELDS
    )


def test_read_rows_uses_first_tab(sheets, service, rows):
    data = sheets.read_rows("sheet123")
    assert data.sheetTitle == "Devices"
    assert data.spreadsheetTitle == "Lab Inventory"
    assert data.rows == rows
    service.spreadsheets.return_value.values.return_value.get.assert_called_with(
        spreadsheetId="sheet123",
        range="Devices",
        majorDimension="ROWS",
        valueRenderOption="UNFORMATTED_VALUE",
        dateTimeRenderOption="SERIAL_NUMBER",
    )


def test_read_rows_empty_sheet(sheets, service):
    service.spreadsheets.return_value.values.return_value.get.return_value.execute.return_value = {}
    assert sheets.read_rows("sheet123").rows == []


def test_first_tab_without_sheets(sheets):
    with pytest.raises(NoSheets):
        sheets.first_tab({"sheets": []})


def test_first_tab_missing_index(sheets):
    meta = {
        "sheets": [
            {"properties": {"title": "Second", "index": 1}},
            {"properties": {"title": "First"}},
        ]
    }
    assert sheets.first_tab(meta) == "First"


def test_set_completed(sheets, service):
    assert sheets.set_completed("sheet123", "pc-002", True) == "'Devices'!F3"
    service.spreadsheets.return_value.values.return_value.update.assert_called_with(
        spreadsheetId="sheet123",
        range="'Devices'!F3",
        valueInputOption="USER_ENTERED",
        body={"values": [["TRUE"]]},
    )


def test_set_comment_is_sanitized(sheets, service):
    sheets.set_comment("sheet123", "PC-001", "=HYPERLINK(\"x\")")
    update = service.spreadsheets.return_value.values.return_value.update
    assert update.call_args.kwargs["body"] == {"values": [["'=HYPERLINK(\"x\")"]]}
    assert update.call_args.kwargs["range"] == "'Devices'!G2"


def test_blank_device_does_not_touch_google(sheets, service):
    with pytest.raises(DeviceRequired):
        sheets.set_completed("sheet123", " ", True)
    service.spreadsheets.return_value.values.return_value.get.assert_not_called()


def test_missing_credentials(monkeypatch):
    monkeypatch.setattr(Settings().google, "credentials_file", None)
    monkeypatch.setattr(Settings().google, "client_email", None)
    monkeypatch.setattr(Settings().google, "private_key", None)
    sheets = GoogleSheets()
    with pytest.raises(CredentialsMissing):
        sheets.get_metadata("sheet123")


@patch("sheettrack.util.sheets.build")
@patch("sheettrack.util.sheets.Credentials.from_service_account_file")
def test_auth_from_key_file(mock_creds, mock_build, monkeypatch):
    monkeypatch.setattr(Settings().google, "credentials_file", "/secrets/sa.json")
    GoogleSheets().service
    mock_creds.assert_called_once_with(
        "/secrets/sa.json", scopes=["https://www.googleapis.com/auth/spreadsheets"]
    )
    mock_build.assert_called_once_with(
        "sheets", "v4", credentials=mock_creds.return_value, cache_discovery=False
    )
