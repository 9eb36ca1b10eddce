"""Immutable summaries produced by each settlement execution."""

from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, Money, new_guid


class SettlementRecordStatus(str, enum.Enum):
    """Lifecycle states for settlement records."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


SETTLEMENT_RECORD_STATUS_ENUM = SAEnum(
    SettlementRecordStatus,
    name="settlement_record_status_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)


class SettlementRecord(Base):
    """Aggregate of the orders settled for one reseller over a date range."""

    __tablename__ = "settlement_records"
    __table_args__ = (
        CheckConstraint(
            "total_settlement_amount >= 0",
            name="ck_settlement_records_total_non_negative",
        ),
        CheckConstraint("order_count >= 0", name="ck_settlement_records_count_non_negative"),
        CheckConstraint("start_date <= end_date", name="ck_settlement_records_range_ordered"),
    )

    id = Column("settlement_record_id", GUID(), primary_key=True, default=new_guid)
    reseller_id = Column(
        GUID(),
        ForeignKey("resellers.reseller_id", ondelete="RESTRICT"),
        nullable=False,
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_settlement_amount = Column(Money(), nullable=False, default=0, server_default="0")
    order_count = Column(Integer, nullable=False, default=0, server_default="0")
    status = Column(
        SETTLEMENT_RECORD_STATUS_ENUM,
        nullable=False,
        default=SettlementRecordStatus.PENDING,
        server_default=SettlementRecordStatus.PENDING.value,
    )
    notes = Column(Text, nullable=True)
    executed_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    reseller = relationship("Reseller", back_populates="settlement_records")
    orders = relationship(
        "Order",
        back_populates="settlement_record",
        order_by="Order.payment_time",
    )
    commission = relationship("Commission", back_populates="settlement_record", uselist=False)


Index(
    "settlement_records_reseller_date_idx",
    SettlementRecord.reseller_id,
    SettlementRecord.start_date,
    SettlementRecord.end_date,
)
Index("settlement_records_created_idx", SettlementRecord.created_at)
