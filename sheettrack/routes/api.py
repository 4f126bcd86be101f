import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from sheettrack.models.info import InfoModel
from sheettrack.util.errors import Errors
from sheettrack.util.store import ActiveSheetStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["API"], responses=Errors.basic_http())


@router.get("/")
async def get_root(store: ActiveSheetStore = Depends(get_store)):
    """
    Get API information.
    """
    return InfoModel(
        name="SheetTrack",
        description="Device tracking on top of a linked Google Sheet.",
        version="1.0.0",
        linked=store.load() is not None,
        endpoints=[
            "POST /api/googleSheets/link",
            "DELETE /api/googleSheets/link",
            "GET /api/googleSheets/rows",
            "PUT /api/googleSheets/complete",
            "PUT /api/googleSheets/incomplete",
            "PUT /api/googleSheets/comment",
        ],
    )


@router.get("/test", response_class=PlainTextResponse)
async def get_test():
    logger.info("Server Working")
    return "Hello World"
