"""SQLAlchemy model definitions for resellers."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    String,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, Money, new_guid


class Reseller(Base):
    """A dropshipping client whose imported orders are settled."""

    __tablename__ = "resellers"
    __table_args__ = (
        CheckConstraint("referrer_id IS NULL OR referrer_id <> reseller_id", name="ck_resellers_no_self_referral"),
        CheckConstraint("wallet_balance >= 0", name="ck_resellers_wallet_non_negative"),
    )

    id = Column("reseller_id", GUID(), primary_key=True, default=new_guid)
    full_name = Column(String, nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    referral_code = Column(String(32), nullable=True, unique=True)
    referrer_id = Column(
        GUID(),
        ForeignKey("resellers.reseller_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    wallet_balance = Column(Money(), nullable=False, default=0, server_default="0")
    is_active = Column(Boolean, nullable=False, default=True, server_default="1")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    referrer = relationship("Reseller", remote_side=[id], back_populates="referees")
    referees = relationship("Reseller", back_populates="referrer")
    orders = relationship("Order", back_populates="reseller")
    discount_rules = relationship(
        "DiscountRule",
        back_populates="reseller",
        cascade="all, delete-orphan",
        order_by="DiscountRule.min_quantity",
    )
    quotes = relationship("Quote", back_populates="reseller", cascade="all, delete-orphan")
    settlement_records = relationship("SettlementRecord", back_populates="reseller")
    wallet_transactions = relationship("WalletTransaction", back_populates="reseller")
