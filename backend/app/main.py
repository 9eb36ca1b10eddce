"""Expose the settlement backend FastAPI app with local development CORS defaults."""

import logging
from contextlib import asynccontextmanager
from typing import Iterable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import read_bool_env, read_list_env
from .migrations import run_database_migrations
from .routers import (
    auth_router,
    commissions_router,
    discount_rules_router,
    orders_router,
    quotes_router,
    resellers_router,
    settings_router,
    settlement_records_router,
    settlement_router,
)

LOGGER = logging.getLogger(__name__)

ALLOWED_ORIGINS_ENV = "BACKEND_ALLOWED_ORIGINS"
RUN_MIGRATIONS_ENV = "RUN_MIGRATIONS_ON_STARTUP"

LOCAL_DEVELOPMENT_ORIGINS = {
    "http://localhost:3000",
    "http://localhost:3001",
}
LOCALHOST_ORIGIN_REGEX = r"https?://(localhost|127\.0\.0\.1|0\.0\.0\.0)(:\d+)?$"

DEFAULT_ALLOWED_ORIGINS = {
    *LOCAL_DEVELOPMENT_ORIGINS,
    "http://127.0.0.1:3000",
    "http://127.0.0.1:3001",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
}


def _normalize_origins(raw_origins: Iterable[str]) -> list[str]:
    return sorted({origin.strip().rstrip("/") for origin in raw_origins if origin.strip()})


def _resolve_allowed_origins() -> list[str]:
    # Commas or whitespace both separate configured origins.
    configured = _normalize_origins(read_list_env(ALLOWED_ORIGINS_ENV, ()))
    origins = configured or _normalize_origins(DEFAULT_ALLOWED_ORIGINS)
    # The admin and client dev servers are always allowed.
    return _normalize_origins([*origins, *LOCAL_DEVELOPMENT_ORIGINS])


def ensure_database_is_ready() -> None:
    """Apply pending database migrations when the service starts."""

    if not read_bool_env(RUN_MIGRATIONS_ENV, True):
        LOGGER.info("Startup migrations disabled via %s", RUN_MIGRATIONS_ENV)
        return
    LOGGER.info("Ensuring database schema is up to date before serving requests")
    run_database_migrations()


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_database_is_ready()
    yield


app = FastAPI(title="Reseller Settlement API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_resolve_allowed_origins(),
    allow_origin_regex=LOCALHOST_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(resellers_router, prefix="/resellers", tags=["resellers"])
app.include_router(orders_router, prefix="/orders", tags=["orders"])
app.include_router(settlement_router, prefix="/settlement", tags=["settlement"])
app.include_router(
    settlement_records_router,
    prefix="/settlement-records",
    tags=["settlement-records"],
)
app.include_router(commissions_router, prefix="/commissions", tags=["commissions"])
app.include_router(
    discount_rules_router,
    prefix="/user-discount-rules",
    tags=["discount-rules"],
)
app.include_router(quotes_router, prefix="/quotes", tags=["quotes"])
app.include_router(settings_router, prefix="/settings", tags=["settings"])


@app.get("/", tags=["health"])
def read_root() -> dict[str, str]:
    """Return a simple health check response."""
    return {"status": "ok"}
