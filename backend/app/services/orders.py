"""Order store used by ingestion, plus the SKU to SPU catalog mapping."""

from __future__ import annotations

import logging
from typing import Dict, Iterable

from sqlalchemy.orm import Session

from .. import models, schemas
from .errors import NotFoundError, ValidationError

LOGGER = logging.getLogger(__name__)


class OrderService:
    @staticmethod
    def import_orders(db: Session, data: schemas.OrderImportRequest) -> schemas.OrderImportSummary:
        """Persist new orders as ``waiting``; rows already stored are skipped."""

        if db.get(models.Reseller, data.reseller_id) is None:
            raise NotFoundError("Reseller not found")

        numbers = [row.marketplace_order_number.strip() for row in data.orders]
        existing = {
            number
            for (number,) in db.query(models.Order.marketplace_order_number)
            .filter(
                models.Order.reseller_id == data.reseller_id,
                models.Order.marketplace_order_number.in_(numbers),
            )
            .all()
        }

        created = 0
        duplicates: list[str] = []
        seen: set[str] = set()
        for row, number in zip(data.orders, numbers):
            if number in existing or number in seen:
                duplicates.append(number)
                continue
            seen.add(number)
            payload = row.model_dump()
            payload["marketplace_order_number"] = number
            db.add(
                models.Order(
                    reseller_id=data.reseller_id,
                    settlement_status=models.OrderSettlementStatus.WAITING,
                    **payload,
                )
            )
            created += 1

        db.commit()
        LOGGER.info(
            "Orders imported",
            extra={
                "reseller_id": data.reseller_id,
                "created": created,
                "duplicates": len(duplicates),
            },
        )
        return schemas.OrderImportSummary(
            total_rows=len(data.orders),
            created_count=created,
            duplicate_count=len(duplicates),
            duplicates=duplicates,
        )


class SkuMappingService:
    """Lookups against the ``sku_spu_relations`` table."""

    @staticmethod
    def spu_map(db: Session, skus: Iterable[str]) -> Dict[str, str]:
        wanted = {sku for sku in skus if sku}
        if not wanted:
            return {}
        rows = (
            db.query(models.SkuSpuRelation.sku, models.SkuSpuRelation.spu)
            .filter(models.SkuSpuRelation.sku.in_(wanted))
            .all()
        )
        return {sku: spu for sku, spu in rows}

    @staticmethod
    def upsert(db: Session, sku: str, spu: str) -> models.SkuSpuRelation:
        sku = (sku or "").strip()
        spu = (spu or "").strip()
        if not sku or not spu:
            raise ValidationError("Both SKU and SPU are required")
        relation = db.query(models.SkuSpuRelation).filter(models.SkuSpuRelation.sku == sku).first()
        if relation is None:
            relation = models.SkuSpuRelation(sku=sku, spu=spu)
        else:
            relation.spu = spu
        db.add(relation)
        db.commit()
        db.refresh(relation)
        return relation
