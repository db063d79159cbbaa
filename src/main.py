"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config.settings import settings
from src.hm_common.crud import get_request_id
from src.hm_common.database import engine
from src.hm_common.errors import AppError, InternalServerError, InvalidParamsError, list_codes
from src.hm_common.redis_client import close_redis, get_redis
from src.hm_common.response import ApiResponse, error_response, success_response
from src.hm_gateway.api.router import router as users_router
from src.hm_gateway.middleware.request_log import RequestLogMiddleware
from src.hm_journal.api.router import routers as journal_routers

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB (+ Redis when it backs the cache). Shutdown: dispose."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    if settings.CACHE_TYPE == "redis":
        await get_redis().ping()
    logger.info("%s started, cache=%s", settings.APP_NAME, settings.CACHE_TYPE or "none")
    yield
    # Shutdown
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version=VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


def _error(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = get_request_id(request)
    return JSONResponse(status_code=exc.http_status, content=resp.model_dump())


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error(request, exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    detail = f"{where}: {first.get('msg', '')}" if where else str(first.get("msg", ""))
    logger.warning("invalid request [%s]: %s", get_request_id(request), detail)
    return _error(request, InvalidParamsError(detail))


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(
        "store error [%s] %s %s: %s",
        get_request_id(request), request.method, request.url.path, exc,
    )
    return _error(request, InternalServerError())


app.include_router(users_router, prefix="/api/v1")
for journal_router in journal_routers:
    app.include_router(journal_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": VERSION}


@app.get("/ping")
async def ping() -> dict[str, str]:
    return {"ping": "pong"}


@app.get("/codes", response_model=ApiResponse)
async def codes() -> ApiResponse:
    return success_response({"codes": [{"code": c, "msg": m} for c, m in list_codes()]})
