"""Custom SQLAlchemy column types shared by the settlement models."""

from __future__ import annotations

import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from sqlalchemy.dialects import postgresql
from sqlalchemy.types import CHAR, Numeric, TypeDecorator

CENTS = Decimal("0.01")


class GUID(TypeDecorator):
    """Platform-independent GUID/UUID type.

    Stores UUID values as ``UUID`` in PostgreSQL and as 36-character strings
    elsewhere. Values are read back as strings so identifiers can be compared
    with path parameters directly.
    """

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):  # type: ignore[override]
        if dialect.name == "postgresql":
            return dialect.type_descriptor(postgresql.UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return value
        if dialect.name == "postgresql":
            if isinstance(value, uuid.UUID):
                return value
            return uuid.UUID(str(value))
        return str(value)

    def process_result_value(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return value
        return str(value)


class Money(TypeDecorator):
    """Two-decimal monetary amount.

    Values are quantized half-up to cents before they reach the database so
    SQLite (which has no fixed-point type) stores the same figures PostgreSQL
    would, and totals summed in Python reconcile with stored rows.
    """

    impl = Numeric(12, 2)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return value
        return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)

    def process_result_value(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return value
        return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def new_guid() -> str:
    return str(uuid.uuid4())
