from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from backend.app import models
from backend.app.services import SettlementCalculator, ValidationError

MARCH_10 = date(2025, 3, 10)


def _reload(db_session, order):
    db_session.expire_all()
    return db_session.get(models.Order, order.id)


def test_calculate_applies_rolling_window_discount(db_session, seed_settlement_data):
    first, second = seed_settlement_data["orders"]

    report = SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)

    assert report.processed_orders == 2
    assert report.settled_orders == 2
    assert report.skipped_orders == 0
    assert report.errors == []

    first = _reload(db_session, first)
    second = _reload(db_session, second)
    assert first.settlement_status is models.OrderSettlementStatus.CALCULATED
    assert second.settlement_status is models.OrderSettlementStatus.CALCULATED
    assert first.settlement_amount == Decimal("18.00")
    assert second.settlement_amount == Decimal("45.00")
    assert first.discount == Decimal("0.9")
    assert second.discount == Decimal("0.9")


def test_calculate_is_idempotent(db_session, seed_settlement_data):
    SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)
    first = _reload(db_session, seed_settlement_data["orders"][0])
    amount = first.settlement_amount

    report = SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)

    assert report.processed_orders == 0
    assert report.settled_orders == 0
    assert _reload(db_session, first).settlement_amount == amount


def test_calculate_ignores_orders_outside_the_range(
    db_session, seed_settlement_data, order_factory
):
    reseller = seed_settlement_data["reseller"]
    late = order_factory(reseller, "O-late", payment_time=datetime(2025, 3, 11, 0, 0))
    db_session.add(late)
    db_session.commit()

    report = SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)

    assert report.processed_orders == 2
    assert _reload(db_session, late).settlement_status is models.OrderSettlementStatus.WAITING


def test_missing_quote_leaves_order_waiting(db_session, seed_settlement_data, order_factory):
    reseller = seed_settlement_data["reseller"]
    orphan = order_factory(
        reseller,
        "O-unpriced",
        product_spu="SPU-UNKNOWN",
        buyer_name=None,
    )
    db_session.add(orphan)
    db_session.commit()

    report = SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)

    assert report.processed_orders == 3
    assert report.settled_orders == 2
    assert report.skipped_orders == 1
    assert report.failure_reasons.no_price_info == 1
    assert any("O-unpriced" in error for error in report.errors)

    orphan = _reload(db_session, orphan)
    assert orphan.settlement_status is models.OrderSettlementStatus.WAITING
    assert orphan.settlement_amount is None


def test_unsupported_country_is_reported_as_missing_price(
    db_session, seed_settlement_data, order_factory
):
    reseller = seed_settlement_data["reseller"]
    db_session.add(order_factory(reseller, "O-xx", country_code="ZZ", buyer_name=None))
    db_session.commit()

    report = SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)

    assert report.failure_reasons.no_price_info == 1


def test_zero_total_quote_is_a_price_calculation_error(
    db_session, seed_settlement_data, order_factory
):
    reseller = seed_settlement_data["reseller"]
    db_session.add(
        models.Quote(
            reseller_id=reseller.id,
            spu="SPU-FREE",
            country_code="US",
            quantity=1,
            total_price=Decimal("0"),
            is_manual_total=True,
        )
    )
    db_session.add(order_factory(reseller, "O-free", product_spu="SPU-FREE", buyer_name=None))
    db_session.commit()

    report = SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)

    assert report.failure_reasons.price_calculation_error == 1
    assert report.settled_orders == 2


def test_quantity_without_exact_tier_uses_nearest_lower_tier(
    db_session, seed_settlement_data, order_factory
):
    reseller = seed_settlement_data["reseller"]
    db_session.add(
        models.Quote(
            reseller_id=reseller.id,
            spu="SPU-LAMP",
            country_code="US",
            quantity=3,
            total_price=Decimal("24"),
        )
    )
    order = order_factory(
        reseller,
        "O-four",
        quantity=4,
        buyer_name="Solo Buyer",
        payment_time=datetime(2025, 3, 10, 12, 0),
    )
    db_session.add(order)
    db_session.commit()

    SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)

    order = _reload(db_session, order)
    # Tier 3 costs 24, so 8 per unit; 4 units fall outside the only rule.
    assert order.settlement_amount == Decimal("32.00")
    assert order.settlement_status is models.OrderSettlementStatus.CALCULATED


def test_quantity_outside_every_rule_is_flagged_but_priced(
    db_session, seed_settlement_data, order_factory
):
    reseller = seed_settlement_data["reseller"]
    order = order_factory(reseller, "O-single", quantity=1, buyer_name="Another Buyer")
    db_session.add(order)
    db_session.commit()

    report = SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)

    assert report.failure_reasons.no_discount_info == 1
    order = _reload(db_session, order)
    assert order.settlement_status is models.OrderSettlementStatus.CALCULATED
    assert order.settlement_amount == Decimal("10.00")
    assert order.discount == Decimal("1")


def test_reseller_without_rules_is_not_flagged(db_session, order_factory):
    reseller = models.Reseller(full_name="No Rules", email="norules@example.com")
    db_session.add(reseller)
    db_session.flush()
    db_session.add(
        models.Quote(
            reseller_id=reseller.id,
            spu="SPU-LAMP",
            country_code="US",
            quantity=1,
            total_price=Decimal("12.50"),
        )
    )
    order = order_factory(reseller, "O-plain", quantity=2)
    db_session.add(order)
    db_session.commit()

    report = SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)

    assert report.failure_reasons.no_discount_info == 0
    assert _reload(db_session, order).settlement_amount == Decimal("25.00")


@pytest.mark.parametrize(
    "overrides",
    [
        {"order_status": "refunded"},
        {"order_status": "已退款"},
        {"order_remark": "不结算"},
        {"customer_remark": "Customer asked: no settlement please"},
        {"product_sku": "Upsell", "product_spu": None},
    ],
)
def test_refunds_and_marked_orders_are_cancelled(
    db_session, seed_settlement_data, order_factory, overrides
):
    reseller = seed_settlement_data["reseller"]
    order = order_factory(reseller, "O-cancel", buyer_name=None, **overrides)
    db_session.add(order)
    db_session.commit()

    report = SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)

    assert report.cancelled_orders == 1
    order = _reload(db_session, order)
    assert order.settlement_status is models.OrderSettlementStatus.CANCEL
    assert order.settlement_amount == Decimal("0.00")


def test_sku_mapping_fills_missing_spu(db_session, seed_settlement_data, order_factory):
    reseller = seed_settlement_data["reseller"]
    db_session.add(models.SkuSpuRelation(sku="SKU-LAMP-RED", spu="SPU-LAMP"))
    order = order_factory(
        reseller,
        "O-mapped",
        product_sku="SKU-LAMP-RED",
        product_spu=None,
        buyer_name=None,
    )
    db_session.add(order)
    db_session.commit()

    SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)

    order = _reload(db_session, order)
    assert order.product_spu == "SPU-LAMP"
    assert order.settlement_status is models.OrderSettlementStatus.CALCULATED


def test_calculate_scopes_to_reseller(db_session, seed_settlement_data, order_factory):
    other = models.Reseller(full_name="Other", email="other@example.com")
    db_session.add(other)
    db_session.flush()
    foreign = order_factory(other, "O-foreign")
    db_session.add(foreign)
    db_session.commit()

    report = SettlementCalculator.calculate(
        db_session, MARCH_10, MARCH_10, seed_settlement_data["reseller"].id
    )

    assert report.processed_orders == 2
    assert _reload(db_session, foreign).settlement_status is models.OrderSettlementStatus.WAITING


def test_calculate_records_a_run(db_session, seed_settlement_data):
    SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)

    runs = db_session.query(models.SettlementRun).all()
    assert len(runs) == 1
    assert runs[0].run_type == "calculate"
    assert runs[0].outcome == "success"
    assert runs[0].details["settledOrders"] == 2


def test_inverted_range_is_rejected(db_session):
    with pytest.raises(ValidationError):
        SettlementCalculator.calculate(db_session, date(2025, 3, 11), MARCH_10)


def test_order_summary_and_stats(db_session, seed_settlement_data):
    SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)

    summary = SettlementCalculator.order_summary(db_session, MARCH_10, MARCH_10)
    assert summary.summary.calculated_orders == 2
    assert summary.summary.total_settlement_amount == Decimal("63.00")
    assert [order.marketplace_order_number for order in summary.calculated] == ["O1", "O2"]

    stats = SettlementCalculator.settlement_stats(db_session, MARCH_10, MARCH_10)
    assert stats.total_orders == 2
    assert stats.calculated_orders == 2
    assert stats.total_settlement_amount == Decimal("63.00")


def test_admin_cancel_skips_settled_orders(db_session, seed_settlement_data):
    first, second = seed_settlement_data["orders"]
    db_session.query(models.Order).filter(models.Order.id == second.id).update(
        {models.Order.settlement_status: models.OrderSettlementStatus.SETTLED}
    )
    db_session.commit()

    result = SettlementCalculator.cancel_orders(db_session, [first.id, second.id], "duplicate")

    assert result.cancelled_order_ids == [first.id]
    assert result.skipped_order_ids == [second.id]
    assert _reload(db_session, first).settlement_status is models.OrderSettlementStatus.CANCEL
    assert _reload(db_session, second).settlement_status is models.OrderSettlementStatus.SETTLED


def test_buyer_orders_more_than_a_day_apart_get_separate_discounts(
    db_session, seed_settlement_data, order_factory
):
    reseller = seed_settlement_data["reseller"]
    db_session.add(
        models.DiscountRule(
            reseller_id=reseller.id, min_quantity=1, max_quantity=4, discount_rate=Decimal("1")
        )
    )
    morning = order_factory(
        reseller, "C1", buyer_name="Buyer C", quantity=3, payment_time=datetime(2025, 3, 10, 8, 0)
    )
    evening = order_factory(
        reseller, "C2", buyer_name="Buyer C", quantity=3, payment_time=datetime(2025, 3, 10, 20, 0)
    )
    next_night = order_factory(
        reseller, "C3", buyer_name="Buyer C", quantity=2, payment_time=datetime(2025, 3, 11, 21, 0)
    )
    db_session.add_all([morning, evening, next_night])
    db_session.commit()

    report = SettlementCalculator.calculate(db_session, MARCH_10, date(2025, 3, 11))

    assert report.settled_orders == 5
    assert report.failure_reasons.no_discount_info == 0
    morning, evening, next_night = (
        _reload(db_session, order) for order in (morning, evening, next_night)
    )
    assert morning.discount == evening.discount == Decimal("0.9")
    assert morning.settlement_amount == evening.settlement_amount == Decimal("27.00")
    assert next_night.discount == Decimal("1")
    assert next_night.settlement_amount == Decimal("20.00")
