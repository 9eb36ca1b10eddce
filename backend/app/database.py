"""Engine, session factory and declarative base for the settlement backend."""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import read_bool_env, read_int_env

DATABASE_URL_ENV = "DATABASE_URL"
REQUIRE_POSTGRES_ENV = "REQUIRE_POSTGRES"

DEFAULT_DB_PATH = Path(__file__).resolve().parent.parent / "settlement.db"

# env name -> (create_engine keyword, default)
POOL_SETTINGS = {
    "DATABASE_POOL_SIZE": ("pool_size", 5),
    "DATABASE_MAX_OVERFLOW": ("max_overflow", 10),
    "DATABASE_POOL_TIMEOUT": ("pool_timeout", 30),
    "DATABASE_POOL_RECYCLE": ("pool_recycle", 1800),
}
CONNECT_TIMEOUT_ENV = "DATABASE_CONNECT_TIMEOUT"
DEFAULT_CONNECT_TIMEOUT = 10


def _is_sqlite(url: str) -> bool:
    return make_url(url).drivername.startswith("sqlite")


def resolve_database_url(raw_url: str | None) -> str:
    """Return the configured URL, falling back to a local SQLite file.

    Parent directories of file-backed SQLite databases are created on the
    way. ``REQUIRE_POSTGRES=1`` turns any SQLite configuration into an error.
    """

    postgres_only = read_bool_env(REQUIRE_POSTGRES_ENV, False)
    if not raw_url:
        if postgres_only:
            raise RuntimeError(
                f"{DATABASE_URL_ENV} must point at PostgreSQL when {REQUIRE_POSTGRES_ENV}=1"
            )
        raw_url = f"sqlite:///{DEFAULT_DB_PATH.as_posix()}"

    url = make_url(raw_url)
    if url.drivername.startswith("sqlite"):
        if postgres_only:
            raise RuntimeError(
                f"SQLite is not permitted when {REQUIRE_POSTGRES_ENV}=1; configure {DATABASE_URL_ENV}"
            )
        if url.database not in (None, "", ":memory:"):
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return url.render_as_string(hide_password=False)


def engine_options(url: str) -> Dict[str, Any]:
    if _is_sqlite(url):
        return {"connect_args": {"check_same_thread": False}}

    # Row locks taken by settlement execution need a live connection.
    options: Dict[str, Any] = {"pool_pre_ping": True}
    for env_name, (keyword, default) in POOL_SETTINGS.items():
        options[keyword] = read_int_env(env_name, default)
    options["connect_args"] = {
        "connect_timeout": read_int_env(CONNECT_TIMEOUT_ENV, DEFAULT_CONNECT_TIMEOUT)
    }
    return options


def build_engine(url: str) -> Engine:
    return create_engine(url, **engine_options(url))


SQLALCHEMY_DATABASE_URL = resolve_database_url(os.getenv(DATABASE_URL_ENV))

engine = build_engine(SQLALCHEMY_DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; handlers commit explicitly."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Commit-or-rollback session for the command line scripts."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
