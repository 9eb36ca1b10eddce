"""Error taxonomy shared by the settlement services."""

from __future__ import annotations

import enum
from typing import Any, Optional


class SettlementError(RuntimeError):
    """Base class for failures raised by the settlement services."""

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(SettlementError, ValueError):
    """Malformed input rejected before anything is persisted."""


class DiscountRuleConflict(ValidationError):
    """A discount rule range intersects an existing rule of the same reseller."""

    def __init__(self, min_quantity: int, max_quantity: int, existing) -> None:
        super().__init__(
            f"Quantity range [{min_quantity}, {max_quantity}] overlaps existing rule "
            f"[{existing.min_quantity}, {existing.max_quantity}]",
            details={
                "conflicting_rule_id": existing.id,
                "conflicting_min_quantity": existing.min_quantity,
                "conflicting_max_quantity": existing.max_quantity,
            },
        )


class NotFoundError(SettlementError):
    """The referenced entity does not exist."""


class ConcurrencyConflict(SettlementError):
    """Rows changed underneath the operation; retrying may succeed."""


class NothingToSettle(ConcurrencyConflict):
    """No calculated orders match the execution filter."""


class AlreadyReviewed(SettlementError):
    """The commission already carries a final review decision."""


class LookupFailure(str, enum.Enum):
    """Expected, countable reasons an order cannot be priced."""

    NO_PRICE_INFO = "noPriceInfo"
    NO_DISCOUNT_INFO = "noDiscountInfo"
    PRICE_CALCULATION_ERROR = "priceCalculationError"
