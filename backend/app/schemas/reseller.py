from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import PaginatedResponse


class ResellerBase(BaseModel):
    full_name: str = Field(..., min_length=1, description="Name of the reseller")
    email: str = Field(..., min_length=3, max_length=255, description="Contact email, unique")


class ResellerCreate(ResellerBase):
    referral_code: Optional[str] = Field(
        default=None,
        description="Referral code of the reseller who invited this one",
    )


class ReferrerAssignment(BaseModel):
    referral_code: str = Field(..., min_length=1, description="Referral code of the referrer")


class ResellerRead(ResellerBase):
    id: str
    referral_code: Optional[str] = None
    referrer_id: Optional[str] = None
    wallet_balance: Decimal = Decimal("0")
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ResellerListResponse(PaginatedResponse[ResellerRead]):
    """Paginated reseller listing."""


class WalletTransactionRead(BaseModel):
    id: str
    reseller_id: str
    transaction_type: str
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    reference_id: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
