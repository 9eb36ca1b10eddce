"""Wallet ledger entries for reseller balances."""

from __future__ import annotations

import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, Money, new_guid


class WalletTransactionType(str, enum.Enum):
    """Kinds of movements recorded against a wallet."""

    COMMISSION_CREDIT = "commission_credit"


WALLET_TRANSACTION_TYPE_ENUM = SAEnum(
    WalletTransactionType,
    name="wallet_transaction_type_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)


class WalletTransaction(Base):
    """A single credit or debit with the balance it produced."""

    __tablename__ = "wallet_transactions"
    __table_args__ = (
        UniqueConstraint(
            "transaction_type",
            "reference_id",
            name="uq_wallet_transactions_type_reference",
        ),
    )

    id = Column("transaction_id", GUID(), primary_key=True, default=new_guid)
    reseller_id = Column(
        GUID(),
        ForeignKey("resellers.reseller_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    transaction_type = Column(WALLET_TRANSACTION_TYPE_ENUM, nullable=False)
    amount = Column(Money(), nullable=False)
    balance_before = Column(Money(), nullable=False)
    balance_after = Column(Money(), nullable=False)
    reference_id = Column(String(36), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    reseller = relationship("Reseller", back_populates="wallet_transactions")
