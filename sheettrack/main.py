import logging
import pathlib

# FastAPI
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import routes
from sheettrack.routes import api, sheets, ui

# Import error handling
from sheettrack.util.errors import Errors, SheetError

# Import options
from sheettrack.util.settings import Settings

if Settings().telemetry.enable:
    import sentry_sdk


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

STATIC_DIR = pathlib.Path(__file__).resolve().parent / "static"

# Initiate FastAPI.
app = FastAPI(title="SheetTrack")
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

if Settings().telemetry.enable:
    sentry_sdk.init(
        dsn=Settings().telemetry.url,
        traces_sample_rate=1.0,
        environment=Settings().telemetry.env,
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=[Settings().http.cors_origin],
    allow_headers=["Content-Type", "X-API-Key"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
)


@app.middleware("http")
async def no_index(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Robots-Tag"] = "noindex, nofollow"
    return response


def is_api(request: Request) -> bool:
    return request.url.path.startswith("/api")


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    if is_api(request):
        return Errors.api(exc.status_code, str(exc.detail))
    if exc.status_code == 404:
        return Errors.generate(request, 404, "Page not found.")
    return await http_exception_handler(request, exc)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    return Errors.api(400, "Malformed request body", exc.errors())


@app.exception_handler(SheetError)
async def sheet_error(request: Request, exc: SheetError):
    if is_api(request):
        return Errors.from_exception(exc)
    return Errors.generate(request, exc.status_code, exc.error, essay=exc.details or "")


# Import endpoints from ./routes
app.include_router(api.router)
app.include_router(sheets.router)
app.include_router(ui.router)


@app.get("/robots.txt", include_in_schema=False)
async def robots():
    return PlainTextResponse("User-agent: *\nDisallow: /")


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return FileResponse(str(STATIC_DIR / "favicon.svg"), media_type="image/svg+xml")
