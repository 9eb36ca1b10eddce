"""Schemas for imported orders and the settlement order views."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..config import REFUNDED_ORDER_STATUSES
from ..models.order import OrderSettlementStatus


class OrderImportRow(BaseModel):
    """One order line handed over by the ingestion collaborator."""

    marketplace_order_number: str = Field(..., min_length=1, max_length=64)
    country_code: Optional[str] = Field(default=None, min_length=2, max_length=2)
    product_sku: Optional[str] = None
    product_spu: Optional[str] = None
    product_name: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    multi_total_price: Optional[Decimal] = Field(default=None, ge=0)
    buyer_name: Optional[str] = None
    payment_time: datetime
    order_status: Optional[str] = None
    customer_remark: Optional[str] = None
    picking_remark: Optional[str] = None
    order_remark: Optional[str] = None

    @field_validator("country_code")
    @classmethod
    def normalize_country(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value else value

    @model_validator(mode="after")
    def default_refunded_quantity(self):
        # Refunded rows may omit the quantity.
        if self.quantity is None:
            if (self.order_status or "").strip().lower() not in REFUNDED_ORDER_STATUSES:
                raise ValueError("quantity is required unless the order was refunded")
            self.quantity = 0
        return self


class OrderImportRequest(BaseModel):
    reseller_id: str
    orders: List[OrderImportRow] = Field(..., min_length=1)


class OrderImportSummary(BaseModel):
    total_rows: int
    created_count: int
    duplicate_count: int
    duplicates: List[str] = []


class OrderCancelRequest(BaseModel):
    order_ids: List[str] = Field(..., min_length=1)
    reason: Optional[str] = Field(default=None, max_length=500)


class OrderCancelResponse(BaseModel):
    cancelled_order_ids: List[str]
    cancelled_count: int
    skipped_order_ids: List[str] = []
    reason: str


class OrderRead(BaseModel):
    id: str
    reseller_id: str
    marketplace_order_number: str
    country_code: Optional[str] = None
    product_sku: Optional[str] = None
    product_spu: Optional[str] = None
    product_name: Optional[str] = None
    quantity: int
    unit_price: Optional[Decimal] = None
    multi_total_price: Optional[Decimal] = None
    discount: Optional[Decimal] = None
    buyer_name: Optional[str] = None
    payment_time: datetime
    order_status: Optional[str] = None
    settlement_status: OrderSettlementStatus
    settlement_amount: Optional[Decimal] = None
    settle_remark: Optional[str] = None
    settlement_record_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SkuMappingWrite(BaseModel):
    sku: str = Field(..., min_length=1, max_length=128)
    spu: str = Field(..., min_length=1, max_length=128)


class SkuMappingRead(SkuMappingWrite):
    id: int

    model_config = ConfigDict(from_attributes=True)
