from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from bazi.errors import AdapterFailure, BaziError
from routers.bazi import router as bazi_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# -----------------------
# App
# -----------------------
app = FastAPI(title="Bazi Bridge API", version="1.0.0")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    logger.info(
        "%s %s -> %d (%.3fs)",
        request.method, request.url.path, response.status_code, process_time,
    )
    return response


# -----------------------
# Error handling
# - every error body: {"success": false, "error": ..., "error_type": ...}
# -----------------------
def _error(status_code: int, message: str, error_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "error_type": error_type},
    )


@app.exception_handler(BaziError)
async def bazi_error_handler(request: Request, exc: BaziError):
    logger.warning("%s %s: %s: %s", request.method, request.url.path, exc.error_type, exc)
    message = str(exc)
    if config.IS_PRODUCTION and (isinstance(exc, AdapterFailure) or exc.status_code >= 500):
        message = "Calculation failed"
    return _error(exc.status_code, message, exc.error_type)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()) if x != "body")
        problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    message = "Invalid request: " + "; ".join(problems)
    logger.warning("%s %s: %s", request.method, request.url.path, message)
    return _error(400, message, "invalid_input")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    error_type = "unauthorized" if exc.status_code == 401 else "http_error"
    return _error(exc.status_code, str(exc.detail), error_type)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    message = "Internal server error" if config.IS_PRODUCTION else f"{type(exc).__name__}: {exc}"
    return _error(500, message, "internal_error")


@app.get("/health")
def health():
    return {"ok": True}


app.include_router(bazi_router)
