"""Cost-basis quotes per reseller, product, destination and quantity tier."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, Money, new_guid


class Quote(Base):
    """Settlement price for ``quantity`` units of a product shipped to a country."""

    __tablename__ = "quotes"
    __table_args__ = (
        UniqueConstraint(
            "reseller_id",
            "spu",
            "country_code",
            "quantity",
            name="uq_quotes_reseller_spu_country_quantity",
        ),
        CheckConstraint("quantity >= 1", name="ck_quotes_quantity_positive"),
        CheckConstraint(
            "product_cost >= 0 AND shipping_cost >= 0 AND packing_cost >= 0 AND vat_cost >= 0",
            name="ck_quotes_costs_non_negative",
        ),
    )

    id = Column("quote_id", GUID(), primary_key=True, default=new_guid)
    reseller_id = Column(
        GUID(),
        ForeignKey("resellers.reseller_id", ondelete="CASCADE"),
        nullable=False,
    )
    spu = Column(String(128), nullable=False)
    country_code = Column(String(2), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    product_cost = Column(Money(), nullable=False, default=0, server_default="0")
    shipping_cost = Column(Money(), nullable=False, default=0, server_default="0")
    packing_cost = Column(Money(), nullable=False, default=0, server_default="0")
    vat_cost = Column(Money(), nullable=False, default=0, server_default="0")
    total_price = Column(Money(), nullable=True)
    is_manual_total = Column(Boolean, nullable=False, default=False, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    reseller = relationship("Reseller", back_populates="quotes")


Index(
    "quotes_lookup_idx",
    Quote.reseller_id,
    Quote.spu,
    Quote.country_code,
    Quote.quantity,
)
