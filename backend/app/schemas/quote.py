from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import PaginatedResponse


class QuoteBase(BaseModel):
    """Cost components for one product/country/quantity tier."""

    reseller_id: str
    spu: str = Field(..., min_length=1, max_length=128)
    country_code: str = Field(..., min_length=2, max_length=2)
    quantity: int = Field(1, ge=1, description="Quantity tier the price applies to")
    product_cost: Decimal = Field(Decimal("0"), ge=0)
    shipping_cost: Decimal = Field(Decimal("0"), ge=0)
    packing_cost: Decimal = Field(Decimal("0"), ge=0)
    vat_cost: Decimal = Field(Decimal("0"), ge=0)

    @field_validator("country_code")
    @classmethod
    def normalize_country(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("spu")
    @classmethod
    def strip_spu(cls, value: str) -> str:
        return value.strip()


class QuoteCreate(QuoteBase):
    total_price: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Manual override; computed from the cost components when omitted",
    )


class QuoteUpdate(BaseModel):
    product_cost: Optional[Decimal] = Field(default=None, ge=0)
    shipping_cost: Optional[Decimal] = Field(default=None, ge=0)
    packing_cost: Optional[Decimal] = Field(default=None, ge=0)
    vat_cost: Optional[Decimal] = Field(default=None, ge=0)
    total_price: Optional[Decimal] = Field(default=None, gt=0)
    clear_manual_total: bool = Field(
        default=False,
        description="Drop a manual override and recompute from the components",
    )


class QuoteRead(QuoteBase):
    id: str
    total_price: Optional[Decimal] = None
    is_manual_total: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class QuoteListResponse(PaginatedResponse[QuoteRead]):
    """Paginated quote listing."""


class QuoteResolution(BaseModel):
    reseller_id: str
    spu: str
    country_code: str
    requested_quantity: int
    failure: Optional[str] = None
    message: Optional[str] = None
    unit_price: Optional[Decimal] = None
    quote: Optional[QuoteRead] = None
