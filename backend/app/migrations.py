"""Bring the database schema to the latest Alembic revision."""

from __future__ import annotations

import errno
import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from .database import SQLALCHEMY_DATABASE_URL

LOGGER = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).resolve().parent.parent
LOCK_FILENAME = ".alembic-migration.lock"
LOCK_RETRY_DELAY = 0.25
LOCK_TIMEOUT_ENV = "ALEMBIC_MIGRATION_LOCK_TIMEOUT"
DEFAULT_LOCK_TIMEOUT = 30.0
# ERROR_SHARING_VIOLATION and ERROR_LOCK_VIOLATION on Windows.
WINDOWS_LOCK_ERRORS = {32, 33}

if os.name == "posix":  # pragma: no cover - platform specific
    import fcntl
else:  # pragma: no cover - platform specific
    import msvcrt


def _lock_timeout() -> float:
    raw = os.getenv(LOCK_TIMEOUT_ENV)
    if not raw:
        return DEFAULT_LOCK_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        value = 0
    if value <= 0:
        LOGGER.warning(
            "Invalid %s=%s; using %.1f seconds", LOCK_TIMEOUT_ENV, raw, DEFAULT_LOCK_TIMEOUT
        )
        return DEFAULT_LOCK_TIMEOUT
    return value


def _lock_is_held_elsewhere(error: OSError) -> bool:
    if isinstance(error, BlockingIOError):
        return True
    if getattr(error, "errno", None) in {errno.EACCES, errno.EAGAIN, errno.EBUSY}:
        return True
    return getattr(error, "winerror", None) in WINDOWS_LOCK_ERRORS


def _try_lock(handle) -> None:
    if os.name == "posix":  # pragma: no cover - platform specific
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    else:  # pragma: no cover - platform specific
        msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)


def _unlock(handle) -> None:
    try:
        if os.name == "posix":  # pragma: no cover - platform specific
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        else:  # pragma: no cover - platform specific
            msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
    except OSError:  # pragma: no cover - best effort cleanup
        LOGGER.debug("Migration lock was already released")


@contextmanager
def migration_lock(path: Path, *, timeout: float) -> Iterator[None]:
    """Serialize migrations across worker processes sharing one database."""

    path.parent.mkdir(parents=True, exist_ok=True)
    deadline = time.monotonic() + timeout
    with path.open("a+") as handle:
        while True:
            try:
                _try_lock(handle)
                break
            except OSError as error:
                if not _lock_is_held_elsewhere(error):
                    raise
                if time.monotonic() >= deadline:
                    raise TimeoutError("Timed out waiting for the migration lock") from error
                time.sleep(LOCK_RETRY_DELAY)
        try:
            yield
        finally:
            _unlock(handle)


def build_alembic_config(database_url: str | None = None) -> Config:
    config = Config(str(BACKEND_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    config.set_main_option("sqlalchemy.url", database_url or SQLALCHEMY_DATABASE_URL)
    # Keep the application logging setup when migrating in-process.
    config.attributes["configure_logger"] = False
    return config


def run_database_migrations(database_url: str | None = None) -> None:
    """Upgrade to ``head``; schemas created without Alembic are stamped first."""

    url = database_url or os.getenv("DATABASE_URL") or SQLALCHEMY_DATABASE_URL
    config = build_alembic_config(url)
    LOGGER.info("Running database migrations", extra={"database_url": url.split("@")[-1]})

    with migration_lock(BACKEND_DIR / LOCK_FILENAME, timeout=_lock_timeout()):
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        engine = create_engine(url, connect_args=connect_args)
        try:
            inspector = inspect(engine)
            untracked = not inspector.has_table("alembic_version") and inspector.has_table(
                "settlement_records"
            )
        finally:
            engine.dispose()

        if untracked:
            LOGGER.info("Existing schema has no Alembic metadata; stamping head")
            command.stamp(config, "head")
            return
        command.upgrade(config, "head")
