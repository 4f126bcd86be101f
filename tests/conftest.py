import copy
import os

os.environ.setdefault("SHEETTRACK_ENV", "dev")
os.environ.setdefault("SHEETTRACK_CONFIG_FILE", "config.test.yml")

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from sheettrack.main import app
from sheettrack.util.settings import Settings
from sheettrack.util.sheets import GoogleSheets, get_sheets
from sheettrack.util.store import ActiveSheetStore, get_store

HEADER = ["Device", "IP Address", "Equipment Type", "Mfr", "*Model Name", "Completed", "Comment"]

ROWS = [
    HEADER,
    ["PC-001", "10.0.0.1", "Desktop", "Dell", "OptiPlex 7080", True, "done"],
    ["pc-002 ", "10.0.0.2", "Laptop", "Lenovo", "ThinkPad T14", False, ""],
    ["PC-003", "10.0.0.3", "Desktop", "HP", "EliteDesk 800", "FALSE"],
    ["", "", "", "", "", "", ""],
]

METADATA = {
    "spreadsheetId": "sheet123",
    "properties": {"title": "Lab Inventory"},
    "sheets": [
        {"properties": {"title": "Archive", "index": 1, "sheetId": 7}},
        {"properties": {"title": "Devices", "index": 0, "sheetId": 0}},
    ],
}


@pytest.fixture(name="rows")
def rows_fixture():
    return copy.deepcopy(ROWS)


@pytest.fixture(name="service")
def service_fixture(rows):
    service = MagicMock()
    spreadsheets = service.spreadsheets.return_value
    spreadsheets.get.return_value.execute.return_value = copy.deepcopy(METADATA)
    spreadsheets.values.return_value.get.return_value.execute.return_value = {"values": rows}
    spreadsheets.values.return_value.update.return_value.execute.return_value = {}
    return service


@pytest.fixture(name="sheets")
def sheets_fixture(service):
    return GoogleSheets(service=service)


@pytest.fixture(name="store")
def store_fixture(tmp_path):
    return ActiveSheetStore(tmp_path / "activeSheet.json")


@pytest.fixture(name="linked")
def linked_fixture(store: ActiveSheetStore):
    store.save("sheet123")
    return store


@pytest.fixture(name="client")
def client_fixture(store: ActiveSheetStore, sheets: GoogleSheets):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_sheets] = lambda: sheets
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def open_api(monkeypatch):
    monkeypatch.setattr(Settings().api, "key", None)
    monkeypatch.setattr(Settings().rate_limit, "enable", False)
