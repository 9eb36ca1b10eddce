"""Price waiting orders and move them to ``calculated``."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from time import perf_counter
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import (
    REFUNDED_ORDER_STATUSES,
    UPSELL_SKU,
    cancel_markers,
    discount_window_hours,
)
from .discount_rules import DiscountLookup, DiscountRuleService
from .errors import LookupFailure, ValidationError
from .orders import SkuMappingService
from .quotes import QuoteService
from .run_log import RunLogService, RunOutcome, RunType

LOGGER = logging.getLogger(__name__)

CENTS = Decimal("0.01")
DEFAULT_CANCEL_REASON = "Cancelled by administrator"
CANCELLABLE_STATUSES = (
    models.OrderSettlementStatus.WAITING,
    models.OrderSettlementStatus.CALCULATED,
)
PRICED_STATUSES = (
    models.OrderSettlementStatus.CALCULATED,
    models.OrderSettlementStatus.SETTLED,
)


def payment_time_bounds(start_date: date, end_date: date) -> Tuple[datetime, datetime]:
    """Half-open datetime range covering both dates as whole days."""

    if start_date > end_date:
        raise ValidationError("start_date cannot be after end_date")
    return (
        datetime.combine(start_date, time.min),
        datetime.combine(end_date + timedelta(days=1), time.min),
    )


def transition_order(
    db: Session,
    order_id: str,
    *,
    expected: Sequence[models.OrderSettlementStatus],
    target: models.OrderSettlementStatus,
    values: Optional[dict] = None,
) -> bool:
    """Move an order to ``target`` only while it still holds an ``expected`` status."""

    if not any(status.can_transition_to(target) for status in expected):
        raise ValidationError(
            f"Orders cannot move from {[s.value for s in expected]} to {target.value}"
        )
    updates = {models.Order.settlement_status: target}
    for field, value in (values or {}).items():
        updates[getattr(models.Order, field)] = value
    updated = (
        db.query(models.Order)
        .filter(
            models.Order.id == order_id,
            models.Order.settlement_status.in_(list(expected)),
        )
        .update(updates, synchronize_session="fetch")
    )
    return updated == 1


class SettlementCalculator:
    """Runs the calculate pass and the read-side order views."""

    @staticmethod
    def _order_query(
        db: Session,
        start_date: date,
        end_date: date,
        reseller_id: Optional[str] = None,
    ):
        window_start, window_end = payment_time_bounds(start_date, end_date)
        query = db.query(models.Order).filter(
            models.Order.payment_time >= window_start,
            models.Order.payment_time < window_end,
        )
        if reseller_id:
            query = query.filter(models.Order.reseller_id == reseller_id)
        return query

    @staticmethod
    def cancellation_reason(order: models.Order) -> Optional[str]:
        if (order.order_status or "").strip().lower() in REFUNDED_ORDER_STATUSES:
            return "Order was refunded; no settlement due"
        remarks = (
            order.customer_remark,
            order.picking_remark,
            order.order_remark,
            order.settle_remark,
        )
        for marker in cancel_markers():
            if any(remark and marker in remark for remark in remarks):
                return f"Remark marked '{marker}'; no settlement due"
        if (order.product_sku or "").strip() == UPSELL_SKU:
            return "Upsell line; no settlement due"
        return None

    @staticmethod
    def _apply_sku_mapping(db: Session, orders: Iterable[models.Order]) -> None:
        unmapped = [order for order in orders if order.product_sku and not order.product_spu]
        mapping = SkuMappingService.spu_map(db, (order.product_sku for order in unmapped))
        for order in unmapped:
            spu = mapping.get(order.product_sku)
            if spu:
                order.product_spu = spu
        db.flush()

    @staticmethod
    def _buyer_sessions(orders: Iterable[models.Order]) -> List[List[models.Order]]:
        """Split each buyer's orders into windows opened by their earliest payment."""

        window = timedelta(hours=discount_window_hours())
        by_buyer: Dict[Tuple[str, str], List[models.Order]] = defaultdict(list)
        sessions: List[List[models.Order]] = []
        for order in orders:
            if order.buyer_name:
                by_buyer[(order.reseller_id, order.buyer_name)].append(order)
            else:
                sessions.append([order])

        for buyer_orders in by_buyer.values():
            buyer_orders.sort(key=lambda item: item.payment_time)
            current: List[models.Order] = []
            for order in buyer_orders:
                if current and order.payment_time - current[0].payment_time > window:
                    sessions.append(current)
                    current = []
                current.append(order)
            if current:
                sessions.append(current)
        return sessions

    @staticmethod
    def _resolve_discounts(
        db: Session,
        orders: Sequence[models.Order],
        report: schemas.CalculationReport,
    ) -> Dict[str, DiscountLookup]:
        lookups: Dict[str, DiscountLookup] = {}
        for session in SettlementCalculator._buyer_sessions(orders):
            first = session[0]
            if first.buyer_name:
                lookup = DiscountRuleService.resolve(
                    db,
                    reseller_id=first.reseller_id,
                    buyer_name=first.buyer_name,
                    as_of=max(order.payment_time for order in session),
                )
            else:
                lookup = DiscountRuleService.rate_for_quantity(
                    db, first.reseller_id, int(first.quantity or 0)
                )
            if lookup.flagged:
                report.failure_reasons.no_discount_info += len(session)
                report.errors.append(
                    f"{lookup.message} (orders: "
                    f"{', '.join(order.marketplace_order_number for order in session)})"
                )
            for order in session:
                lookups[order.id] = lookup
        return lookups

    @staticmethod
    def _price_order(
        db: Session,
        order: models.Order,
        discount: DiscountLookup,
        report: schemas.CalculationReport,
    ) -> None:
        quantity = int(order.quantity or 0)
        if quantity < 1:
            SettlementCalculator._record_failure(
                order,
                LookupFailure.PRICE_CALCULATION_ERROR,
                "Order quantity must be positive to settle",
                report,
            )
            return

        lookup = QuoteService.resolve(
            db,
            reseller_id=order.reseller_id,
            spu=order.product_spu,
            country_code=order.country_code,
            quantity=quantity,
        )
        if not lookup.ok:
            SettlementCalculator._record_failure(order, lookup.failure, lookup.message, report)
            return

        rate = Decimal(discount.rate)
        amount = (lookup.unit_price * quantity * rate).quantize(CENTS, rounding=ROUND_HALF_UP)
        remark = f"{lookup.unit_price.quantize(CENTS)} x {quantity} x {rate.normalize()} = {amount}"
        if discount.flagged:
            remark = f"{remark} (no discount range matched)"

        moved = transition_order(
            db,
            order.id,
            expected=(models.OrderSettlementStatus.WAITING,),
            target=models.OrderSettlementStatus.CALCULATED,
            values={
                "settlement_amount": amount,
                "discount": rate,
                "settle_remark": remark,
                "product_spu": order.product_spu,
            },
        )
        if moved:
            report.settled_orders += 1
        else:
            report.skipped_orders += 1

    @staticmethod
    def _record_failure(
        order: models.Order,
        failure: LookupFailure,
        message: str,
        report: schemas.CalculationReport,
    ) -> None:
        if failure is LookupFailure.PRICE_CALCULATION_ERROR:
            report.failure_reasons.price_calculation_error += 1
        else:
            report.failure_reasons.no_price_info += 1
        report.skipped_orders += 1
        report.errors.append(f"Order {order.marketplace_order_number}: {message}")
        order.settle_remark = message

    @staticmethod
    def calculate(
        db: Session,
        start_date: date,
        end_date: date,
        reseller_id: Optional[str] = None,
    ) -> schemas.CalculationReport:
        """Price every ``waiting`` order paid within the date range.

        Lookup failures leave the order ``waiting`` and are reported per
        category; only unexpected errors abort the run.
        """

        payment_time_bounds(start_date, end_date)
        started = perf_counter()
        report = schemas.CalculationReport()
        run_details = {"reseller_id": reseller_id}

        try:
            orders = (
                SettlementCalculator._order_query(db, start_date, end_date, reseller_id)
                .filter(models.Order.settlement_status == models.OrderSettlementStatus.WAITING)
                .order_by(models.Order.payment_time.asc())
                .all()
            )
            report.processed_orders = len(orders)

            priceable: List[models.Order] = []
            for order in orders:
                reason = SettlementCalculator.cancellation_reason(order)
                if reason is None:
                    priceable.append(order)
                    continue
                if transition_order(
                    db,
                    order.id,
                    expected=(models.OrderSettlementStatus.WAITING,),
                    target=models.OrderSettlementStatus.CANCEL,
                    values={"settlement_amount": Decimal("0"), "settle_remark": reason},
                ):
                    report.cancelled_orders += 1

            SettlementCalculator._apply_sku_mapping(db, priceable)
            discounts = SettlementCalculator._resolve_discounts(db, priceable, report)
            for order in priceable:
                SettlementCalculator._price_order(db, order, discounts[order.id], report)

            db.commit()
        except Exception:
            db.rollback()
            duration_ms = (perf_counter() - started) * 1000
            LOGGER.exception(
                "Settlement calculation failed",
                extra={"start_date": str(start_date), "end_date": str(end_date), **run_details},
            )
            RunLogService.record_run(
                db,
                RunType.CALCULATE,
                RunOutcome.ERROR,
                reseller_id=reseller_id,
                start_date=start_date,
                end_date=end_date,
                duration_ms=duration_ms,
                details=run_details,
            )
            raise

        duration_ms = (perf_counter() - started) * 1000
        report.processing_time = f"{int(duration_ms)}ms"
        outcome = RunOutcome.PARTIAL if report.errors else RunOutcome.SUCCESS
        RunLogService.record_run(
            db,
            RunType.CALCULATE,
            outcome,
            reseller_id=reseller_id,
            start_date=start_date,
            end_date=end_date,
            duration_ms=duration_ms,
            details=report.model_dump(mode="json", by_alias=True),
        )
        LOGGER.info(
            "Settlement calculation finished",
            extra={
                "processed": report.processed_orders,
                "calculated": report.settled_orders,
                "cancelled": report.cancelled_orders,
                "skipped": report.skipped_orders,
                **run_details,
            },
        )
        return report

    @staticmethod
    def order_summary(
        db: Session,
        start_date: date,
        end_date: date,
        reseller_id: Optional[str] = None,
    ) -> schemas.CategorizedOrders:
        orders = (
            SettlementCalculator._order_query(db, start_date, end_date, reseller_id)
            .order_by(models.Order.payment_time.asc())
            .all()
        )
        buckets: Dict[models.OrderSettlementStatus, List[models.Order]] = {
            status: [] for status in models.OrderSettlementStatus
        }
        total_amount = Decimal("0")
        for order in orders:
            buckets[order.settlement_status].append(order)
            if order.settlement_status in PRICED_STATUSES:
                total_amount += Decimal(order.settlement_amount or 0)

        return schemas.CategorizedOrders(
            waiting=buckets[models.OrderSettlementStatus.WAITING],
            calculated=buckets[models.OrderSettlementStatus.CALCULATED],
            settled=buckets[models.OrderSettlementStatus.SETTLED],
            cancel=buckets[models.OrderSettlementStatus.CANCEL],
            summary=schemas.OrderSummary(
                total_orders=len(orders),
                waiting_orders=len(buckets[models.OrderSettlementStatus.WAITING]),
                calculated_orders=len(buckets[models.OrderSettlementStatus.CALCULATED]),
                settled_orders=len(buckets[models.OrderSettlementStatus.SETTLED]),
                cancelled_orders=len(buckets[models.OrderSettlementStatus.CANCEL]),
                total_settlement_amount=total_amount,
            ),
        )

    @staticmethod
    def settlement_stats(
        db: Session,
        start_date: date,
        end_date: date,
        reseller_id: Optional[str] = None,
    ) -> schemas.SettlementStats:
        window_start, window_end = payment_time_bounds(start_date, end_date)
        query = db.query(
            models.Order.settlement_status,
            func.count(models.Order.id),
            func.coalesce(func.sum(models.Order.settlement_amount), 0),
        ).filter(
            models.Order.payment_time >= window_start,
            models.Order.payment_time < window_end,
        )
        if reseller_id:
            query = query.filter(models.Order.reseller_id == reseller_id)

        counts: Dict[models.OrderSettlementStatus, int] = {}
        total_amount = Decimal("0")
        for status, count, amount in query.group_by(models.Order.settlement_status).all():
            status = models.OrderSettlementStatus(status)
            counts[status] = int(count)
            if status in PRICED_STATUSES:
                total_amount += Decimal(str(amount or 0))

        return schemas.SettlementStats(
            start_date=start_date,
            end_date=end_date,
            reseller_id=reseller_id,
            total_orders=sum(counts.values()),
            waiting_orders=counts.get(models.OrderSettlementStatus.WAITING, 0),
            calculated_orders=counts.get(models.OrderSettlementStatus.CALCULATED, 0),
            settled_orders=counts.get(models.OrderSettlementStatus.SETTLED, 0),
            cancelled_orders=counts.get(models.OrderSettlementStatus.CANCEL, 0),
            total_settlement_amount=total_amount.quantize(CENTS, rounding=ROUND_HALF_UP),
        )

    @staticmethod
    def cancel_orders(
        db: Session,
        order_ids: Sequence[str],
        reason: Optional[str] = None,
    ) -> schemas.OrderCancelResponse:
        """Cancel waiting or calculated orders; settled ones belong to a record."""

        reason = (reason or "").strip() or DEFAULT_CANCEL_REASON
        cancelled: List[str] = []
        skipped: List[str] = []
        try:
            for order_id in dict.fromkeys(order_ids):
                if transition_order(
                    db,
                    order_id,
                    expected=CANCELLABLE_STATUSES,
                    target=models.OrderSettlementStatus.CANCEL,
                    values={"settlement_amount": Decimal("0"), "settle_remark": reason},
                ):
                    cancelled.append(order_id)
                else:
                    skipped.append(order_id)
            db.commit()
        except Exception:
            db.rollback()
            raise

        LOGGER.info(
            "Orders cancelled",
            extra={"cancelled": len(cancelled), "skipped": len(skipped)},
        )
        return schemas.OrderCancelResponse(
            cancelled_order_ids=cancelled,
            cancelled_count=len(cancelled),
            skipped_order_ids=skipped,
            reason=reason,
        )
