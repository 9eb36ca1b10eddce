"""Expose Pydantic schemas for convenient imports."""

from .auth import AdminLoginRequest, TokenResponse
from .commission import (
    CommissionListResponse,
    CommissionPartySummary,
    CommissionRead,
    CommissionReviewRequest,
    CommissionTotals,
    ReferralStats,
    ReferredResellerStats,
)
from .common import PaginatedResponse
from .discount_rule import (
    DiscountRuleBase,
    DiscountRuleBulkDeleteResponse,
    DiscountRuleCreate,
    DiscountRuleListResponse,
    DiscountRuleRead,
    DiscountRuleUpdate,
)
from .order import (
    OrderCancelRequest,
    OrderCancelResponse,
    OrderImportRequest,
    OrderImportRow,
    OrderImportSummary,
    OrderRead,
    SkuMappingRead,
    SkuMappingWrite,
)
from .quote import (
    QuoteBase,
    QuoteCreate,
    QuoteListResponse,
    QuoteRead,
    QuoteResolution,
    QuoteUpdate,
)
from .reseller import (
    ReferrerAssignment,
    ResellerBase,
    ResellerCreate,
    ResellerListResponse,
    ResellerRead,
    WalletTransactionRead,
)
from .setting import CommissionRateRead, CommissionRateUpdate
from .settlement import (
    CalculationReport,
    CalculationRequest,
    CategorizedOrders,
    ExecutionRequest,
    ExecutionResult,
    FailureReasons,
    OrderSummary,
    RecordMismatchRead,
    SettlementConsistencyReport,
    SettlementRecordDetail,
    SettlementRecordListResponse,
    SettlementRecordRead,
    SettlementRunRead,
    SettlementStats,
)

__all__ = [
    "AdminLoginRequest",
    "TokenResponse",
    "CommissionListResponse",
    "CommissionPartySummary",
    "CommissionRead",
    "CommissionReviewRequest",
    "CommissionTotals",
    "ReferralStats",
    "ReferredResellerStats",
    "PaginatedResponse",
    "DiscountRuleBase",
    "DiscountRuleBulkDeleteResponse",
    "DiscountRuleCreate",
    "DiscountRuleListResponse",
    "DiscountRuleRead",
    "DiscountRuleUpdate",
    "OrderCancelRequest",
    "OrderCancelResponse",
    "OrderImportRequest",
    "OrderImportRow",
    "OrderImportSummary",
    "OrderRead",
    "SkuMappingRead",
    "SkuMappingWrite",
    "QuoteBase",
    "QuoteCreate",
    "QuoteListResponse",
    "QuoteRead",
    "QuoteResolution",
    "QuoteUpdate",
    "ReferrerAssignment",
    "ResellerBase",
    "ResellerCreate",
    "ResellerListResponse",
    "ResellerRead",
    "WalletTransactionRead",
    "CommissionRateRead",
    "CommissionRateUpdate",
    "CalculationReport",
    "CalculationRequest",
    "CategorizedOrders",
    "ExecutionRequest",
    "ExecutionResult",
    "FailureReasons",
    "OrderSummary",
    "RecordMismatchRead",
    "SettlementConsistencyReport",
    "SettlementRecordDetail",
    "SettlementRecordListResponse",
    "SettlementRecordRead",
    "SettlementRunRead",
    "SettlementStats",
]
