"""Schemas for the settlement calculate/execute workflow."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from ..models.settlement_record import SettlementRecordStatus
from .commission import CommissionRead
from .common import PaginatedResponse
from .order import OrderRead


class DateRangeMixin(BaseModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def validate_range(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date cannot be after end_date")
        return self


class CalculationRequest(DateRangeMixin):
    reseller_id: Optional[str] = None


class ExecutionRequest(DateRangeMixin):
    reseller_id: str
    notes: Optional[str] = Field(default=None, max_length=2000)


class FailureReasons(BaseModel):
    no_price_info: int = 0
    no_discount_info: int = 0
    price_calculation_error: int = 0

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CalculationReport(BaseModel):
    """Partial-success summary of one calculate call.

    Serialized in camelCase because the admin UI reads these keys verbatim.
    """

    processed_orders: int = 0
    settled_orders: int = 0
    skipped_orders: int = 0
    cancelled_orders: int = 0
    failure_reasons: FailureReasons = Field(default_factory=FailureReasons)
    errors: List[str] = Field(default_factory=list)
    processing_time: str = "0ms"

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExecutionResult(BaseModel):
    settlement_record_id: str
    reseller_id: str
    total_settlement_amount: Decimal
    order_count: int
    commission_id: Optional[str] = None


class OrderSummary(BaseModel):
    total_orders: int = 0
    waiting_orders: int = 0
    calculated_orders: int = 0
    settled_orders: int = 0
    cancelled_orders: int = 0
    total_settlement_amount: Decimal = Decimal("0")


class CategorizedOrders(BaseModel):
    waiting: List[OrderRead] = []
    calculated: List[OrderRead] = []
    settled: List[OrderRead] = []
    cancel: List[OrderRead] = []
    summary: OrderSummary


class SettlementStats(BaseModel):
    start_date: date
    end_date: date
    reseller_id: Optional[str] = None
    total_orders: int = 0
    waiting_orders: int = 0
    calculated_orders: int = 0
    settled_orders: int = 0
    cancelled_orders: int = 0
    total_settlement_amount: Decimal = Decimal("0")


class SettlementRecordRead(BaseModel):
    id: str
    reseller_id: str
    start_date: date
    end_date: date
    total_settlement_amount: Decimal
    order_count: int
    status: SettlementRecordStatus
    notes: Optional[str] = None
    executed_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SettlementRecordDetail(SettlementRecordRead):
    orders: List[OrderRead] = []
    commission: Optional[CommissionRead] = None


class SettlementRecordListResponse(PaginatedResponse[SettlementRecordRead]):
    """Paginated settlement record listing."""


class RecordMismatchRead(BaseModel):
    settlement_record_id: str
    recorded_total: Decimal
    orders_total: Decimal
    recorded_count: int
    orders_count: int


class SettlementConsistencyReport(BaseModel):
    checked_records: int
    mismatched_records: List[RecordMismatchRead] = []
    settled_orders_without_record: List[str] = []
    records_without_orders: List[str] = []


class SettlementRunRead(BaseModel):
    id: str
    run_type: str
    outcome: str
    reseller_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    duration_ms: Optional[Decimal] = None
    details: Optional[dict] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
