"""Quantity-tiered discount rules configured per reseller."""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID


class DiscountRule(Base):
    """Discount applied when a buyer's rolling quantity falls in ``[min, max]``."""

    __tablename__ = "discount_rules"
    __table_args__ = (
        UniqueConstraint(
            "reseller_id",
            "min_quantity",
            "max_quantity",
            name="uq_discount_rules_reseller_range",
        ),
        CheckConstraint("min_quantity >= 1", name="ck_discount_rules_min_positive"),
        CheckConstraint("max_quantity >= min_quantity", name="ck_discount_rules_range_ordered"),
        CheckConstraint(
            "discount_rate > 0 AND discount_rate <= 1",
            name="ck_discount_rules_rate_bounds",
        ),
    )

    id = Column("rule_id", Integer, primary_key=True, autoincrement=True)
    reseller_id = Column(
        GUID(),
        ForeignKey("resellers.reseller_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    min_quantity = Column(Integer, nullable=False)
    max_quantity = Column(Integer, nullable=False)
    discount_rate = Column(Numeric(5, 4), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    reseller = relationship("Reseller", back_populates="discount_rules")

    def contains(self, quantity: int) -> bool:
        return self.min_quantity <= quantity <= self.max_quantity
