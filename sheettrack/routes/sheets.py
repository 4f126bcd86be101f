# SPDX-License-Identifier: MIT
# Copyright (c) 2024 Collegiate Cyber Defense Club
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from sheettrack.models.sheet import (
    CommentRequest,
    DeviceRequest,
    LinkRequest,
    LinkResponse,
    RowsResponse,
    UpdateResponse,
)
from sheettrack.util.authentication import Authentication
from sheettrack.util.errors import Errors, InvalidSpreadsheetId, NotLinked, SheetError
from sheettrack.util.limiter import rate_limit
from sheettrack.util.sheets import GoogleSheets, get_sheets, normalize_spreadsheet_id
from sheettrack.util.store import ActiveSheetStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/googleSheets",
    tags=["Google Sheets"],
    responses=Errors.basic_http(),
    dependencies=[Depends(Authentication.api_key), Depends(rate_limit)],
)


def linked_spreadsheet(store: ActiveSheetStore) -> str:
    spreadsheet_id = store.load()
    if not spreadsheet_id:
        raise NotLinked()
    return spreadsheet_id


@router.post("/link")
async def link_sheet(
    payload: Optional[LinkRequest] = None,
    store: ActiveSheetStore = Depends(get_store),
    sheets: GoogleSheets = Depends(get_sheets),
):
    """
    Links a spreadsheet by raw ID or full URL. Access is validated by reading its metadata.
    """
    spreadsheet_id = normalize_spreadsheet_id(payload.spreadsheetId if payload else None)
    if not spreadsheet_id:
        return Errors.from_exception(InvalidSpreadsheetId())

    try:
        metadata = sheets.get_metadata(spreadsheet_id)
    except SheetError as e:
        return Errors.from_exception(e)
    except Exception as e:
        logger.exception("Failed to link spreadsheet %s", spreadsheet_id)
        return Errors.api(500, "Failed to link spreadsheet", e)

    linked_id = metadata.get("spreadsheetId", spreadsheet_id)
    store.save(linked_id)

    return LinkResponse(
        spreadsheetId=linked_id,
        spreadsheetTitle=metadata.get("properties", {}).get("title"),
    )


@router.delete("/link")
async def unlink_sheet(store: ActiveSheetStore = Depends(get_store)):
    store.clear()
    return {"ok": True}


@router.get("/rows")
async def get_rows(
    store: ActiveSheetStore = Depends(get_store),
    sheets: GoogleSheets = Depends(get_sheets),
):
    """
    Returns every used row from the first tab of the linked spreadsheet.
    """
    try:
        spreadsheet_id = linked_spreadsheet(store)
        data = sheets.read_rows(spreadsheet_id)
    except SheetError as e:
        return Errors.from_exception(e)
    except Exception as e:
        logger.exception("Failed to read rows")
        return Errors.api(500, "Failed to read rows", e)

    return RowsResponse(**data.model_dump())


def update_device(store: ActiveSheetStore, device: Optional[str], update):
    try:
        spreadsheet_id = linked_spreadsheet(store)
        a1_range = update(spreadsheet_id, (device or "").strip())
    except SheetError as e:
        return Errors.from_exception(e)
    except Exception as e:
        logger.exception("Failed to update %s", device)
        return Errors.api(500, "Failed to update sheet", e)

    return UpdateResponse(device=device.strip(), range=a1_range)


@router.api_route("/complete", methods=["PUT", "POST"])
async def complete_device(
    payload: Optional[DeviceRequest] = None,
    store: ActiveSheetStore = Depends(get_store),
    sheets: GoogleSheets = Depends(get_sheets),
):
    device = payload.device if payload else ""
    return update_device(
        store, device, lambda sid, d: sheets.set_completed(sid, d, True)
    )


@router.api_route("/incomplete", methods=["PUT", "POST"])
async def incomplete_device(
    payload: Optional[DeviceRequest] = None,
    store: ActiveSheetStore = Depends(get_store),
    sheets: GoogleSheets = Depends(get_sheets),
):
    device = payload.device if payload else ""
    return update_device(
        store, device, lambda sid, d: sheets.set_completed(sid, d, False)
    )


@router.api_route("/comment", methods=["PUT", "POST"])
async def comment_device(
    payload: Optional[CommentRequest] = None,
    store: ActiveSheetStore = Depends(get_store),
    sheets: GoogleSheets = Depends(get_sheets),
):
    device = payload.device if payload else ""
    comment = payload.comment if payload else ""
    return update_device(
        store, device, lambda sid, d: sheets.set_comment(sid, d, comment)
    )
