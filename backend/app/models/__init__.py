"""Expose SQLAlchemy models for convenient imports."""

from .commission import Commission, CommissionStatus
from .discount_rule import DiscountRule
from .order import Order, OrderSettlementStatus, SkuSpuRelation
from .quote import Quote
from .reseller import Reseller
from .settlement_record import SettlementRecord, SettlementRecordStatus
from .settlement_run import SettlementRun
from .system_setting import SystemSetting
from .wallet import WalletTransaction, WalletTransactionType

__all__ = [
    "Commission",
    "CommissionStatus",
    "DiscountRule",
    "Order",
    "OrderSettlementStatus",
    "SkuSpuRelation",
    "Quote",
    "Reseller",
    "SettlementRecord",
    "SettlementRecordStatus",
    "SettlementRun",
    "SystemSetting",
    "WalletTransaction",
    "WalletTransactionType",
]
