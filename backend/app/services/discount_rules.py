"""Per-reseller quantity discount rules and the rolling-window rate lookup."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import discount_window_hours
from .errors import DiscountRuleConflict, LookupFailure, NotFoundError

LOGGER = logging.getLogger(__name__)

NO_DISCOUNT = Decimal("1")


@dataclass(frozen=True)
class DiscountLookup:
    rate: Decimal
    total_quantity: int
    rule: Optional[models.DiscountRule] = None
    failure: Optional[LookupFailure] = None
    message: Optional[str] = None

    @property
    def flagged(self) -> bool:
        return self.failure is not None


class DiscountRuleService:
    """CRUD with overlap validation plus the discount resolver."""

    @staticmethod
    def list_rules(db: Session, reseller_id: str) -> Tuple[List[models.DiscountRule], int]:
        items = (
            db.query(models.DiscountRule)
            .filter(models.DiscountRule.reseller_id == reseller_id)
            .order_by(models.DiscountRule.min_quantity.asc())
            .all()
        )
        return items, len(items)

    @staticmethod
    def get_rule(db: Session, reseller_id: str, rule_id: int) -> Optional[models.DiscountRule]:
        return (
            db.query(models.DiscountRule)
            .filter(
                models.DiscountRule.id == rule_id,
                models.DiscountRule.reseller_id == reseller_id,
            )
            .first()
        )

    @staticmethod
    def create_rule(
        db: Session,
        reseller_id: str,
        data: schemas.DiscountRuleCreate,
    ) -> models.DiscountRule:
        if db.get(models.Reseller, reseller_id) is None:
            raise NotFoundError("Reseller not found")
        DiscountRuleService._ensure_disjoint(
            db, reseller_id, data.min_quantity, data.max_quantity
        )
        rule = models.DiscountRule(reseller_id=reseller_id, **data.model_dump())
        db.add(rule)
        db.commit()
        db.refresh(rule)
        LOGGER.info(
            "Discount rule created",
            extra={
                "reseller_id": reseller_id,
                "rule_id": rule.id,
                "min_quantity": rule.min_quantity,
                "max_quantity": rule.max_quantity,
            },
        )
        return rule

    @staticmethod
    def update_rule(
        db: Session,
        rule: models.DiscountRule,
        data: schemas.DiscountRuleUpdate,
    ) -> models.DiscountRule:
        DiscountRuleService._ensure_disjoint(
            db,
            rule.reseller_id,
            data.min_quantity,
            data.max_quantity,
            exclude_rule_id=rule.id,
        )
        for field, value in data.model_dump().items():
            setattr(rule, field, value)
        db.add(rule)
        db.commit()
        db.refresh(rule)
        return rule

    @staticmethod
    def delete_rule(db: Session, rule: models.DiscountRule) -> None:
        db.delete(rule)
        db.commit()

    @staticmethod
    def delete_rules(db: Session, reseller_id: str) -> int:
        """Remove every tier of ``reseller_id`` and return how many were dropped."""
        if db.get(models.Reseller, reseller_id) is None:
            raise NotFoundError("Reseller not found")
        deleted = (
            db.query(models.DiscountRule)
            .filter(models.DiscountRule.reseller_id == reseller_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        LOGGER.info(
            "Discount rules cleared",
            extra={"reseller_id": reseller_id, "deleted_count": deleted},
        )
        return deleted

    @staticmethod
    def _ensure_disjoint(
        db: Session,
        reseller_id: str,
        min_quantity: int,
        max_quantity: int,
        *,
        exclude_rule_id: Optional[int] = None,
    ) -> None:
        query = db.query(models.DiscountRule).filter(
            models.DiscountRule.reseller_id == reseller_id,
            models.DiscountRule.min_quantity <= max_quantity,
            models.DiscountRule.max_quantity >= min_quantity,
        )
        if exclude_rule_id is not None:
            query = query.filter(models.DiscountRule.id != exclude_rule_id)
        existing = query.order_by(models.DiscountRule.min_quantity.asc()).first()
        if existing is not None:
            raise DiscountRuleConflict(min_quantity, max_quantity, existing)

    @staticmethod
    def window_quantity(
        db: Session,
        *,
        reseller_id: str,
        buyer_name: str,
        as_of: datetime,
    ) -> int:
        """Units the buyer ordered from the reseller in the window ending at ``as_of``."""

        window_start = as_of - timedelta(hours=discount_window_hours())
        total = (
            db.query(func.coalesce(func.sum(models.Order.quantity), 0))
            .filter(
                models.Order.reseller_id == reseller_id,
                models.Order.buyer_name == buyer_name,
                models.Order.payment_time >= window_start,
                models.Order.payment_time <= as_of,
                models.Order.settlement_status != models.OrderSettlementStatus.CANCEL,
            )
            .scalar()
        )
        return int(total or 0)

    @staticmethod
    def rate_for_quantity(db: Session, reseller_id: str, total_quantity: int) -> DiscountLookup:
        rules, _ = DiscountRuleService.list_rules(db, reseller_id)
        if not rules:
            return DiscountLookup(rate=NO_DISCOUNT, total_quantity=total_quantity)

        for rule in rules:
            if rule.contains(total_quantity):
                return DiscountLookup(
                    rate=Decimal(rule.discount_rate),
                    total_quantity=total_quantity,
                    rule=rule,
                )

        return DiscountLookup(
            rate=NO_DISCOUNT,
            total_quantity=total_quantity,
            failure=LookupFailure.NO_DISCOUNT_INFO,
            message=(
                f"Quantity {total_quantity} falls outside every discount range "
                f"configured for reseller {reseller_id}"
            ),
        )

    @staticmethod
    def resolve(
        db: Session,
        *,
        reseller_id: str,
        buyer_name: str,
        as_of: datetime,
    ) -> DiscountLookup:
        total_quantity = DiscountRuleService.window_quantity(
            db, reseller_id=reseller_id, buyer_name=buyer_name, as_of=as_of
        )
        return DiscountRuleService.rate_for_quantity(db, reseller_id, total_quantity)
