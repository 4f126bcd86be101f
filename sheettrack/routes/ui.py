# SPDX-License-Identifier: MIT
# Copyright (c) 2024 Collegiate Cyber Defense Club
import logging
import pathlib
from typing import Optional
from urllib.parse import quote, urlencode, urlparse

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from sheettrack.util import rows as sheet_rows
from sheettrack.util.errors import Errors, InvalidSpreadsheetId, SheetError
from sheettrack.util.sheets import GoogleSheets, get_sheets, normalize_spreadsheet_id
from sheettrack.util.store import ActiveSheetStore, get_store

logger = logging.getLogger(__name__)

templates = Jinja2Templates(
    directory=str(pathlib.Path(__file__).resolve().parent.parent / "templates")
)
templates.env.globals["model_name"] = sheet_rows.model_name
templates.env.globals["is_true"] = sheet_rows.is_true
templates.env.filters["urlquote"] = lambda value: quote(str(value), safe="")

router = APIRouter(tags=["UI"], include_in_schema=False)

LISTS = {
    "total": ("All Computers", "Total", None),
    "pending": ("Pending Computers", "Remaining", sheet_rows.pending),
    "completed": ("Completed Computers", "Completed", sheet_rows.completed),
}


def load_sheet(store: ActiveSheetStore, sheets: GoogleSheets):
    """
    Returns (sheet, records, error) for the linked spreadsheet. Blank rows are dropped.
    """
    spreadsheet_id = store.load()
    if not spreadsheet_id:
        return None, [], None
    try:
        sheet = sheets.read_rows(spreadsheet_id)
    except SheetError as e:
        return None, [], e.error
    except Exception as e:
        logger.exception("Failed to read rows")
        return None, [], str(e) or "Failed to read rows"
    records = sheet_rows.drop_empty(sheet_rows.rows_to_records(sheet.rows))
    return sheet, records, None


def safe_next(next_url: Optional[str], default: str = "/home") -> str:
    # Only same-site paths are allowed as redirect targets.
    if not next_url:
        return default
    parsed = urlparse(next_url)
    if parsed.scheme or parsed.netloc or not next_url.startswith("/"):
        return default
    return next_url


def redirect_with(url: str, **params) -> RedirectResponse:
    params = {k: v for k, v in params.items() if v}
    if params:
        url += ("&" if "?" in url else "?") + urlencode(params)
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


@router.get("/")
async def index():
    return RedirectResponse("/home", status_code=status.HTTP_302_FOUND)


@router.get("/home")
async def home(
    request: Request,
    msg: Optional[str] = None,
    store: ActiveSheetStore = Depends(get_store),
    sheets: GoogleSheets = Depends(get_sheets),
):
    sheet, records, error = load_sheet(store, sheets)
    return templates.TemplateResponse(
        request,
        "home.html",
        {
            "linked": store.load() is not None,
            "sheet": sheet,
            "records": records,
            "progress": sheet_rows.progress(records),
            "completed_count": len(sheet_rows.completed(records)),
            "pending_count": len(sheet_rows.pending(records)),
            "error": error,
            "msg": msg,
        },
    )


@router.post("/home/link")
async def home_link(
    request: Request,
    spreadsheet: str = Form(""),
    store: ActiveSheetStore = Depends(get_store),
    sheets: GoogleSheets = Depends(get_sheets),
):
    spreadsheet_id = normalize_spreadsheet_id(spreadsheet)
    if not spreadsheet_id:
        return Errors.generate(
            request, 400, "Failed to link", essay=InvalidSpreadsheetId.error
        )
    try:
        metadata = sheets.get_metadata(spreadsheet_id)
    except Exception as e:
        logger.exception("Failed to link spreadsheet %s", spreadsheet_id)
        return Errors.generate(
            request,
            500,
            "Failed to link spreadsheet",
            essay="Make sure the sheet is shared with the service account. " + str(e),
        )
    store.save(metadata.get("spreadsheetId", spreadsheet_id))
    return redirect_with("/home", msg="Spreadsheet linked.")


@router.post("/home/unlink")
async def home_unlink(store: ActiveSheetStore = Depends(get_store)):
    store.clear()
    return redirect_with("/home", msg="Spreadsheet unlinked.")


async def device_list(request: Request, kind: str, q: Optional[str], store, sheets):
    title, counter, keep = LISTS[kind]
    sheet, records, error = load_sheet(store, sheets)
    if keep is not None:
        records = keep(records)
    matches = sheet_rows.search(records, q)
    return templates.TemplateResponse(
        request,
        "devices.html",
        {
            "kind": kind,
            "title": title,
            "counter": counter,
            "linked": store.load() is not None,
            "sheet": sheet,
            "records": matches,
            "query": (q or "").strip(),
            "error": error,
            "msg": request.query_params.get("msg"),
        },
    )


@router.get("/total")
async def total(
    request: Request,
    q: Optional[str] = None,
    store: ActiveSheetStore = Depends(get_store),
    sheets: GoogleSheets = Depends(get_sheets),
):
    return await device_list(request, "total", q, store, sheets)


@router.get("/pending")
async def pending(
    request: Request,
    q: Optional[str] = None,
    store: ActiveSheetStore = Depends(get_store),
    sheets: GoogleSheets = Depends(get_sheets),
):
    return await device_list(request, "pending", q, store, sheets)


@router.get("/completed")
async def completed(
    request: Request,
    q: Optional[str] = None,
    store: ActiveSheetStore = Depends(get_store),
    sheets: GoogleSheets = Depends(get_sheets),
):
    return await device_list(request, "completed", q, store, sheets)


@router.get("/computers")
async def computer_details(
    request: Request,
    id: Optional[str] = None,
    msg: Optional[str] = None,
    store: ActiveSheetStore = Depends(get_store),
    sheets: GoogleSheets = Depends(get_sheets),
):
    device = (id or "").strip()
    sheet, records, error = load_sheet(store, sheets)
    record = sheet_rows.find_record(records, device)
    return templates.TemplateResponse(
        request,
        "details.html",
        {
            "device": device,
            "record": record,
            "completed": record is not None and sheet_rows.is_true(record.get("Completed")),
            "linked": store.load() is not None,
            "error": error,
            "msg": msg,
        },
        status_code=200 if record is not None or error else 404,
    )


def apply_update(request: Request, store: ActiveSheetStore, device: str, next_url, update):
    spreadsheet_id = store.load()
    if not spreadsheet_id:
        return Errors.generate(request, 400, "No spreadsheet linked", return_text="Link a sheet")
    try:
        update(spreadsheet_id, device.strip())
    except SheetError as e:
        return Errors.generate(
            request, e.status_code, e.error, essay=e.details or "", return_url=next_url
        )
    except Exception as e:
        logger.exception("Failed to update %s", device)
        return Errors.generate(
            request, 500, "Failed to update sheet", essay=str(e), return_url=next_url
        )
    return None


@router.post("/computers/complete")
async def computer_complete(
    request: Request,
    device: str = Form(""),
    next: Optional[str] = Form(None),
    store: ActiveSheetStore = Depends(get_store),
    sheets: GoogleSheets = Depends(get_sheets),
):
    next_url = safe_next(next, "/computers?id=" + quote(device.strip(), safe=""))
    failed = apply_update(
        request, store, device, next_url, lambda sid, d: sheets.set_completed(sid, d, True)
    )
    return failed or redirect_with(next_url, msg=f"{device.strip()} marked complete.")


@router.post("/computers/incomplete")
async def computer_incomplete(
    request: Request,
    device: str = Form(""),
    next: Optional[str] = Form(None),
    store: ActiveSheetStore = Depends(get_store),
    sheets: GoogleSheets = Depends(get_sheets),
):
    next_url = safe_next(next, "/computers?id=" + quote(device.strip(), safe=""))
    failed = apply_update(
        request, store, device, next_url, lambda sid, d: sheets.set_completed(sid, d, False)
    )
    return failed or redirect_with(next_url, msg=f"{device.strip()} marked pending.")


@router.post("/computers/comment")
async def computer_comment(
    request: Request,
    device: str = Form(""),
    comment: str = Form(""),
    next: Optional[str] = Form(None),
    store: ActiveSheetStore = Depends(get_store),
    sheets: GoogleSheets = Depends(get_sheets),
):
    next_url = safe_next(next, "/computers?id=" + quote(device.strip(), safe=""))
    failed = apply_update(
        request, store, device, next_url, lambda sid, d: sheets.set_comment(sid, d, comment)
    )
    return failed or redirect_with(next_url, msg="Comment saved.")
