"""Service layer encapsulating business logic for API routers."""

from .commissions import CommissionService
from .discount_rules import DiscountLookup, DiscountRuleService
from .errors import (
    AlreadyReviewed,
    ConcurrencyConflict,
    DiscountRuleConflict,
    LookupFailure,
    NotFoundError,
    NothingToSettle,
    SettlementError,
    ValidationError,
)
from .orders import OrderService, SkuMappingService
from .quotes import QuoteLookup, QuoteService
from .resellers import ResellerService
from .run_log import RunLogService
from .settings import SettingsService
from .settlement_calculator import SettlementCalculator
from .settlement_consistency import SettlementConsistencyService
from .settlement_executor import SettlementExecutor
from .wallets import WalletService

__all__ = [
    "CommissionService",
    "DiscountLookup",
    "DiscountRuleService",
    "AlreadyReviewed",
    "ConcurrencyConflict",
    "DiscountRuleConflict",
    "LookupFailure",
    "NotFoundError",
    "NothingToSettle",
    "SettlementError",
    "ValidationError",
    "OrderService",
    "SkuMappingService",
    "QuoteLookup",
    "QuoteService",
    "ResellerService",
    "RunLogService",
    "SettingsService",
    "SettlementCalculator",
    "SettlementConsistencyService",
    "SettlementExecutor",
    "WalletService",
]
