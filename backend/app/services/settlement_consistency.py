"""Reconcile settlement record aggregates against their orders."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models


@dataclass(frozen=True)
class RecordMismatch:
    """A record whose stored totals differ from the orders that reference it."""

    settlement_record_id: str
    recorded_total: Decimal
    orders_total: Decimal
    recorded_count: int
    orders_count: int


@dataclass(frozen=True)
class SettlementConsistencySnapshot:
    checked_records: int
    mismatched_records: list[RecordMismatch] = field(default_factory=list)
    settled_orders_without_record: list[str] = field(default_factory=list)
    records_without_orders: list[str] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not (
            self.mismatched_records
            or self.settled_orders_without_record
            or self.records_without_orders
        )


class SettlementConsistencyService:
    """Surfaces records and orders that no longer agree with each other."""

    @staticmethod
    def check(db: Session) -> SettlementConsistencySnapshot:
        order_aggregates = {
            str(record_id): (Decimal(str(total or 0)), int(count))
            for record_id, total, count in db.query(
                models.Order.settlement_record_id,
                func.coalesce(func.sum(models.Order.settlement_amount), 0),
                func.count(models.Order.id),
            )
            .filter(models.Order.settlement_record_id.isnot(None))
            .group_by(models.Order.settlement_record_id)
            .all()
        }

        records = db.query(
            models.SettlementRecord.id,
            models.SettlementRecord.total_settlement_amount,
            models.SettlementRecord.order_count,
            models.SettlementRecord.status,
        ).all()

        mismatches: list[RecordMismatch] = []
        records_without_orders: list[str] = []
        for record_id, recorded_total, recorded_count, status in records:
            if status is models.SettlementRecordStatus.CANCELLED:
                continue
            orders_total, orders_count = order_aggregates.get(
                str(record_id), (Decimal("0"), 0)
            )
            if orders_count == 0:
                records_without_orders.append(str(record_id))
                continue
            recorded_total = Decimal(recorded_total or 0)
            if recorded_total != orders_total.quantize(Decimal("0.01")) or int(
                recorded_count
            ) != orders_count:
                mismatches.append(
                    RecordMismatch(
                        settlement_record_id=str(record_id),
                        recorded_total=recorded_total,
                        orders_total=orders_total,
                        recorded_count=int(recorded_count),
                        orders_count=orders_count,
                    )
                )

        settled_without_record = [
            str(order_id)
            for (order_id,) in db.query(models.Order.id)
            .filter(
                models.Order.settlement_status == models.OrderSettlementStatus.SETTLED,
                models.Order.settlement_record_id.is_(None),
            )
            .all()
        ]

        return SettlementConsistencySnapshot(
            checked_records=len(records),
            mismatched_records=mismatches,
            settled_orders_without_record=settled_without_record,
            records_without_orders=records_without_orders,
        )
