"""Environment-driven settings shared by the settlement services."""

from __future__ import annotations

import os
import re
from decimal import Decimal, InvalidOperation

FIRST_LEVEL_COMMISSION_RATE_ENV = "FIRST_LEVEL_COMMISSION_RATE"
DISCOUNT_WINDOW_HOURS_ENV = "DISCOUNT_WINDOW_HOURS"
SETTLEMENT_COUNTRY_CODES_ENV = "SETTLEMENT_COUNTRY_CODES"
SETTLEMENT_CANCEL_MARKERS_ENV = "SETTLEMENT_CANCEL_MARKERS"

DEFAULT_FIRST_LEVEL_COMMISSION_RATE = Decimal("0.02")
# Matches the scale of the stored rate columns.
RATE_DECIMAL_PLACES = 4
DEFAULT_DISCOUNT_WINDOW_HOURS = 24
DEFAULT_COUNTRY_CODES = (
    "AE",
    "AT",
    "AU",
    "BE",
    "CA",
    "CH",
    "DE",
    "DK",
    "ES",
    "FI",
    "FR",
    "GB",
    "IE",
    "IT",
    "JP",
    "MX",
    "NL",
    "NO",
    "NZ",
    "PL",
    "PT",
    "SA",
    "SE",
    "SG",
    "US",
)
DEFAULT_CANCEL_MARKERS = ("不结算", "no settlement")
REFUNDED_ORDER_STATUSES = frozenset({"已退款", "refunded"})
UPSELL_SKU = "Upsell"


def read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return value


def read_bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def read_list_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """Split a comma or whitespace separated variable into its items."""

    raw = os.getenv(name)
    if not raw:
        return default
    return tuple(item for item in re.split(r"[\s,]+", raw) if item)


def exceeds_rate_precision(rate: Decimal) -> bool:
    return rate.normalize().as_tuple().exponent < -RATE_DECIMAL_PLACES


def first_level_commission_rate() -> Decimal:
    raw = os.getenv(FIRST_LEVEL_COMMISSION_RATE_ENV)
    if not raw:
        return DEFAULT_FIRST_LEVEL_COMMISSION_RATE
    try:
        rate = Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"{FIRST_LEVEL_COMMISSION_RATE_ENV} must be a decimal") from exc
    if rate < 0 or rate > 1:
        raise ValueError(f"{FIRST_LEVEL_COMMISSION_RATE_ENV} must be between 0 and 1")
    if exceeds_rate_precision(rate):
        raise ValueError(
            f"{FIRST_LEVEL_COMMISSION_RATE_ENV} allows at most {RATE_DECIMAL_PLACES} decimal places"
        )
    return rate


def discount_window_hours() -> int:
    hours = read_int_env(DISCOUNT_WINDOW_HOURS_ENV, DEFAULT_DISCOUNT_WINDOW_HOURS)
    if hours == 0:
        raise ValueError(f"{DISCOUNT_WINDOW_HOURS_ENV} must be positive")
    return hours


def allowed_country_codes() -> frozenset[str]:
    codes = read_list_env(SETTLEMENT_COUNTRY_CODES_ENV, DEFAULT_COUNTRY_CODES)
    return frozenset(code.strip().upper() for code in codes)


def cancel_markers() -> tuple[str, ...]:
    raw = os.getenv(SETTLEMENT_CANCEL_MARKERS_ENV)
    if not raw:
        return DEFAULT_CANCEL_MARKERS
    # Markers may contain spaces, so only commas separate them.
    return tuple(marker.strip() for marker in raw.split(",") if marker.strip())
