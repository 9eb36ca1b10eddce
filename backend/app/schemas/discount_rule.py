from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DiscountRuleBase(BaseModel):
    min_quantity: int = Field(..., ge=1, description="Inclusive lower bound")
    max_quantity: int = Field(..., ge=1, description="Inclusive upper bound")
    discount_rate: Decimal = Field(
        ...,
        gt=0,
        le=1,
        decimal_places=4,
        description="Multiplier applied to the price (0.85 = 15% off)",
    )

    @model_validator(mode="after")
    def validate_range(self):
        if self.min_quantity > self.max_quantity:
            raise ValueError("min_quantity cannot be greater than max_quantity")
        return self


class DiscountRuleCreate(DiscountRuleBase):
    pass


class DiscountRuleUpdate(DiscountRuleBase):
    pass


class DiscountRuleRead(DiscountRuleBase):
    id: int
    reseller_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DiscountRuleListResponse(BaseModel):
    items: List[DiscountRuleRead]
    total: int


class DiscountRuleBulkDeleteResponse(BaseModel):
    reseller_id: str
    deleted_count: int
