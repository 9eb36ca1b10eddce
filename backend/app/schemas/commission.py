from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.commission import CommissionStatus
from .common import PaginatedResponse


class CommissionPartySummary(BaseModel):
    id: str
    full_name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class CommissionRead(BaseModel):
    id: str
    settlement_record_id: str
    referrer_id: str
    referee_id: str
    base_amount: Decimal
    commission_amount: Decimal
    commission_rate: Decimal
    status: CommissionStatus
    reject_reason: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    referrer: Optional[CommissionPartySummary] = None
    referee: Optional[CommissionPartySummary] = None

    model_config = ConfigDict(from_attributes=True)


class CommissionListResponse(PaginatedResponse[CommissionRead]):
    """Paginated commission listing."""


class CommissionReviewRequest(BaseModel):
    """Admin decision on a pending commission."""

    status: CommissionStatus
    reject_reason: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def validate_decision(self):
        if self.status is CommissionStatus.PENDING:
            raise ValueError("status must be 'approved' or 'rejected'")
        if self.status is CommissionStatus.REJECTED and not (self.reject_reason or "").strip():
            raise ValueError("reject_reason is required when rejecting a commission")
        return self


class ReferredResellerStats(BaseModel):
    id: str
    full_name: str
    email: str
    created_at: Optional[datetime] = None
    settlement_count: int = 0
    total_settled_amount: Decimal = Decimal("0.00")


class CommissionTotals(BaseModel):
    total_commissions: int = 0
    pending_amount: Decimal = Decimal("0.00")
    approved_amount: Decimal = Decimal("0.00")
    rejected_amount: Decimal = Decimal("0.00")


class ReferralStats(BaseModel):
    """Who a reseller referred and what those referrals earned them."""

    referrer_id: str
    referee_count: int
    referees: List[ReferredResellerStats]
    commissions: CommissionTotals
