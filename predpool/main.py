from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .db import close_db, init_db
from .errors import PoolError
from .logging_config import configure_logging
from .middleware.logging import StructuredLoggingMiddleware
from .middleware.rate_limit import RateLimitMiddleware
from .routers import admin, pool
from .routers.common import pool_error_response
from .validate_env import validate_settings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    validate_settings(settings)
    configure_logging(
        service="predpool-api",
        environment=settings.environment,
        log_level=settings.log_level,
    )
    if settings.environment == "development":
        await init_db()
    yield
    await close_db()


app = FastAPI(title="predpool", version="1.0.0", lifespan=lifespan)

app.add_middleware(StructuredLoggingMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(admin.router)
app.include_router(pool.router)


@app.exception_handler(PoolError)
async def handle_pool_error(request: Request, exc: PoolError) -> JSONResponse:
    return pool_error_response(exc)


@app.get("/healthz")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
