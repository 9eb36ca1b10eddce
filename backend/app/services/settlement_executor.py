"""Aggregate calculated orders into an immutable settlement record."""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from time import perf_counter
from typing import Iterable, Optional, Tuple

from sqlalchemy.orm import Query, Session, selectinload

from .. import models
from .commissions import CommissionService
from .errors import ConcurrencyConflict, NothingToSettle, SettlementError
from .resellers import ResellerService
from .run_log import RunLogService, RunOutcome, RunType
from .settlement_calculator import payment_time_bounds, transition_order

LOGGER = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class SettlementExecutor:
    """Settles a reseller's calculated orders in a single transaction."""

    @staticmethod
    def _mark_order_settled(db: Session, order: models.Order, record_id: str) -> None:
        moved = transition_order(
            db,
            order.id,
            expected=(models.OrderSettlementStatus.CALCULATED,),
            target=models.OrderSettlementStatus.SETTLED,
            values={"settlement_record_id": record_id},
        )
        if not moved:
            raise ConcurrencyConflict(
                f"Order {order.marketplace_order_number} changed status during execution",
                details={"order_id": order.id},
            )

    @staticmethod
    def locked_candidates(
        db: Session, reseller_id: str, window_start: datetime, window_end: datetime
    ) -> Query:
        """Calculated orders in the window, row-locked where the backend supports it."""
        return (
            db.query(models.Order)
            .filter(
                models.Order.reseller_id == reseller_id,
                models.Order.settlement_status == models.OrderSettlementStatus.CALCULATED,
                models.Order.payment_time >= window_start,
                models.Order.payment_time < window_end,
            )
            .order_by(models.Order.payment_time.asc())
            .with_for_update()
        )

    @staticmethod
    def execute(
        db: Session,
        start_date: date,
        end_date: date,
        reseller_id: str,
        notes: Optional[str] = None,
        *,
        executed_by: Optional[str] = None,
    ) -> models.SettlementRecord:
        """Settle every ``calculated`` order of ``reseller_id`` in the range.

        The record, the order transitions and the derived commission commit
        together; any failure rolls all of them back.
        """

        window_start, window_end = payment_time_bounds(start_date, end_date)
        ResellerService.require_reseller(db, reseller_id)
        started = perf_counter()
        run_details = {"reseller_id": reseller_id, "executed_by": executed_by}

        try:
            orders = SettlementExecutor.locked_candidates(
                db, reseller_id, window_start, window_end
            ).all()
            if not orders:
                raise NothingToSettle(
                    "No calculated orders to settle for this reseller and date range",
                    details={
                        "reseller_id": reseller_id,
                        "start_date": str(start_date),
                        "end_date": str(end_date),
                    },
                )

            record = models.SettlementRecord(
                reseller_id=reseller_id,
                start_date=start_date,
                end_date=end_date,
                total_settlement_amount=Decimal("0"),
                order_count=0,
                status=models.SettlementRecordStatus.PENDING,
                notes=notes,
                executed_by=executed_by,
            )
            db.add(record)
            db.flush()

            total = Decimal("0")
            for order in orders:
                SettlementExecutor._mark_order_settled(db, order, record.id)
                total += Decimal(order.settlement_amount or 0)

            record.total_settlement_amount = total.quantize(CENTS, rounding=ROUND_HALF_UP)
            record.order_count = len(orders)
            record.status = models.SettlementRecordStatus.COMPLETED
            db.flush()

            commission = CommissionService.derive(db, record)
            db.commit()
        except Exception as exc:
            db.rollback()
            duration_ms = (perf_counter() - started) * 1000
            outcome = RunOutcome.REJECTED if isinstance(exc, SettlementError) else RunOutcome.ERROR
            if outcome == RunOutcome.ERROR:
                LOGGER.exception("Settlement execution failed", extra=run_details)
            else:
                LOGGER.warning(
                    "Settlement execution rejected",
                    extra={"reason": str(exc), **run_details},
                )
            RunLogService.record_run(
                db,
                RunType.EXECUTE,
                outcome,
                reseller_id=reseller_id,
                start_date=start_date,
                end_date=end_date,
                duration_ms=duration_ms,
                details={"error": str(exc), **run_details},
            )
            raise

        db.refresh(record)
        duration_ms = (perf_counter() - started) * 1000
        RunLogService.record_run(
            db,
            RunType.EXECUTE,
            RunOutcome.SUCCESS,
            reseller_id=reseller_id,
            start_date=start_date,
            end_date=end_date,
            duration_ms=duration_ms,
            details={
                "settlement_record_id": record.id,
                "order_count": record.order_count,
                "total_settlement_amount": str(record.total_settlement_amount),
                "commission_id": commission.id if commission else None,
                **run_details,
            },
        )
        LOGGER.info(
            "Settlement executed",
            extra={
                "settlement_record_id": record.id,
                "order_count": record.order_count,
                "total_settlement_amount": str(record.total_settlement_amount),
                **run_details,
            },
        )
        return record

    @staticmethod
    def list_records(
        db: Session,
        *,
        reseller_id: Optional[str] = None,
        status: Optional[models.SettlementRecordStatus] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[Iterable[models.SettlementRecord], int]:
        query = db.query(models.SettlementRecord)
        if reseller_id:
            query = query.filter(models.SettlementRecord.reseller_id == reseller_id)
        if status:
            query = query.filter(models.SettlementRecord.status == status)
        total = query.count()
        items = (
            query.order_by(models.SettlementRecord.created_at.desc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def get_record(db: Session, record_id: str) -> Optional[models.SettlementRecord]:
        return (
            db.query(models.SettlementRecord)
            .options(
                selectinload(models.SettlementRecord.orders),
                selectinload(models.SettlementRecord.commission),
            )
            .filter(models.SettlementRecord.id == record_id)
            .first()
        )
