"""First-level referral commissions derived from settlement records."""

from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, Money, new_guid


class CommissionStatus(str, enum.Enum):
    """Review states; both decisions are terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_final(self) -> bool:
        return self is not CommissionStatus.PENDING


COMMISSION_STATUS_ENUM = SAEnum(
    CommissionStatus,
    name="commission_status_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)


class Commission(Base):
    """Amount owed to the referrer of a settled reseller."""

    __tablename__ = "commissions"
    __table_args__ = (
        CheckConstraint("commission_amount >= 0", name="ck_commissions_amount_non_negative"),
        CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 1",
            name="ck_commissions_rate_bounds",
        ),
        CheckConstraint("referrer_id <> referee_id", name="ck_commissions_distinct_parties"),
    )

    id = Column("commission_id", GUID(), primary_key=True, default=new_guid)
    settlement_record_id = Column(
        GUID(),
        ForeignKey("settlement_records.settlement_record_id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )
    referrer_id = Column(
        GUID(),
        ForeignKey("resellers.reseller_id", ondelete="RESTRICT"),
        nullable=False,
    )
    referee_id = Column(
        GUID(),
        ForeignKey("resellers.reseller_id", ondelete="RESTRICT"),
        nullable=False,
    )
    base_amount = Column(Money(), nullable=False)
    commission_amount = Column(Money(), nullable=False)
    commission_rate = Column(Numeric(6, 4), nullable=False)
    status = Column(
        COMMISSION_STATUS_ENUM,
        nullable=False,
        default=CommissionStatus.PENDING,
        server_default=CommissionStatus.PENDING.value,
    )
    reject_reason = Column(Text, nullable=True)
    reviewed_by = Column(String(255), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    settlement_record = relationship("SettlementRecord", back_populates="commission")
    referrer = relationship("Reseller", foreign_keys=[referrer_id])
    referee = relationship("Reseller", foreign_keys=[referee_id])


Index("commissions_status_created_idx", Commission.status, Commission.created_at)
Index("commissions_referrer_idx", Commission.referrer_id)
