from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class CommissionRateRead(BaseModel):
    rate: Decimal
    source: str = Field(..., description="'database', 'environment' or 'default'")
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None


class CommissionRateUpdate(BaseModel):
    rate: Decimal = Field(
        ..., ge=0, le=1, decimal_places=4, description="First-level rate (0.02 = 2%)"
    )
