"""Imported marketplace orders and their settlement lifecycle."""

from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, Money, new_guid


class OrderSettlementStatus(str, enum.Enum):
    """Settlement states an order moves through.

    ``waiting`` -> ``calculated`` -> ``settled`` is the only forward path;
    ``cancel`` is terminal and reachable from the two non-final states.
    """

    WAITING = "waiting"
    CALCULATED = "calculated"
    SETTLED = "settled"
    CANCEL = "cancel"

    def can_transition_to(self, target: "OrderSettlementStatus") -> bool:
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS = {
    OrderSettlementStatus.WAITING: frozenset(
        {OrderSettlementStatus.CALCULATED, OrderSettlementStatus.CANCEL}
    ),
    OrderSettlementStatus.CALCULATED: frozenset(
        {OrderSettlementStatus.SETTLED, OrderSettlementStatus.CANCEL}
    ),
    OrderSettlementStatus.SETTLED: frozenset(),
    OrderSettlementStatus.CANCEL: frozenset(),
}


ORDER_SETTLEMENT_STATUS_ENUM = SAEnum(
    OrderSettlementStatus,
    name="order_settlement_status_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)


class Order(Base):
    """One imported sales line owned by a reseller."""

    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint(
            "reseller_id",
            "marketplace_order_number",
            name="uq_orders_reseller_marketplace_number",
        ),
        CheckConstraint("quantity >= 0", name="ck_orders_quantity_non_negative"),
        CheckConstraint(
            "settlement_amount IS NULL OR settlement_amount >= 0",
            name="ck_orders_settlement_amount_non_negative",
        ),
    )

    id = Column("order_id", GUID(), primary_key=True, default=new_guid)
    reseller_id = Column(
        GUID(),
        ForeignKey("resellers.reseller_id", ondelete="RESTRICT"),
        nullable=False,
    )
    marketplace_order_number = Column(String(64), nullable=False)
    country_code = Column(String(2), nullable=True)
    product_sku = Column(String(128), nullable=True)
    product_spu = Column(String(128), nullable=True)
    product_name = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Money(), nullable=True)
    multi_total_price = Column(Money(), nullable=True)
    discount = Column(Numeric(5, 4), nullable=True)
    buyer_name = Column(String(255), nullable=True)
    payment_time = Column(DateTime(timezone=False), nullable=False)
    order_status = Column(String(64), nullable=True)
    settlement_status = Column(
        ORDER_SETTLEMENT_STATUS_ENUM,
        nullable=False,
        default=OrderSettlementStatus.WAITING,
        server_default=OrderSettlementStatus.WAITING.value,
    )
    settlement_amount = Column(Money(), nullable=True)
    settle_remark = Column(Text, nullable=True)
    customer_remark = Column(Text, nullable=True)
    picking_remark = Column(Text, nullable=True)
    order_remark = Column(Text, nullable=True)
    settlement_record_id = Column(
        GUID(),
        ForeignKey("settlement_records.settlement_record_id", ondelete="RESTRICT"),
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    reseller = relationship("Reseller", back_populates="orders")
    settlement_record = relationship("SettlementRecord", back_populates="orders")


class SkuSpuRelation(Base):
    """Maps a marketplace SKU onto the catalog SPU its quotes are keyed by."""

    __tablename__ = "sku_spu_relations"

    id = Column("relation_id", Integer, primary_key=True, autoincrement=True)
    sku = Column(String(128), nullable=False, unique=True)
    spu = Column(String(128), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


Index(
    "orders_status_payment_idx",
    Order.settlement_status,
    Order.payment_time,
)
Index(
    "orders_reseller_status_payment_idx",
    Order.reseller_id,
    Order.settlement_status,
    Order.payment_time,
)
Index(
    "orders_reseller_buyer_payment_idx",
    Order.reseller_id,
    Order.buyer_name,
    Order.payment_time,
)
Index("orders_settlement_record_idx", Order.settlement_record_id)
