from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from backend.app import models
from backend.app.services import (
    ConcurrencyConflict,
    NotFoundError,
    NothingToSettle,
    SettlementCalculator,
    SettlementExecutor,
    WalletService,
)

MARCH_10 = date(2025, 3, 10)


@pytest.fixture
def calculated(db_session, seed_settlement_data):
    SettlementCalculator.calculate(db_session, MARCH_10, MARCH_10)
    return seed_settlement_data


def test_execute_settles_calculated_orders(db_session, calculated):
    reseller = calculated["reseller"]

    record = SettlementExecutor.execute(
        db_session, MARCH_10, MARCH_10, reseller.id, "March batch", executed_by="admin"
    )

    assert record.status is models.SettlementRecordStatus.COMPLETED
    assert record.total_settlement_amount == Decimal("63.00")
    assert record.order_count == 2
    assert record.notes == "March batch"
    assert record.executed_by == "admin"

    db_session.expire_all()
    orders = db_session.query(models.Order).filter(models.Order.reseller_id == reseller.id).all()
    assert {order.settlement_status for order in orders} == {models.OrderSettlementStatus.SETTLED}
    assert {order.settlement_record_id for order in orders} == {record.id}


def test_execute_derives_pending_commission_for_referrer(db_session, calculated):
    record = SettlementExecutor.execute(
        db_session, MARCH_10, MARCH_10, calculated["reseller"].id
    )

    commission = record.commission
    assert commission is not None
    assert commission.referrer_id == calculated["referrer"].id
    assert commission.referee_id == calculated["reseller"].id
    assert commission.base_amount == Decimal("63.00")
    assert commission.commission_rate == Decimal("0.02")
    assert commission.commission_amount == Decimal("1.26")
    assert commission.status is models.CommissionStatus.PENDING


def test_execute_without_calculated_orders_is_rejected(db_session, seed_settlement_data):
    with pytest.raises(NothingToSettle):
        SettlementExecutor.execute(
            db_session, MARCH_10, MARCH_10, seed_settlement_data["reseller"].id
        )

    assert db_session.query(models.SettlementRecord).count() == 0
    run = db_session.query(models.SettlementRun).one()
    assert run.run_type == "execute"
    assert run.outcome == "rejected"


def test_execute_unknown_reseller(db_session):
    with pytest.raises(NotFoundError):
        SettlementExecutor.execute(db_session, MARCH_10, MARCH_10, "missing-reseller")


def test_second_execute_finds_nothing(db_session, calculated):
    reseller_id = calculated["reseller"].id
    SettlementExecutor.execute(db_session, MARCH_10, MARCH_10, reseller_id)

    with pytest.raises(NothingToSettle):
        SettlementExecutor.execute(db_session, MARCH_10, MARCH_10, reseller_id)

    assert db_session.query(models.SettlementRecord).count() == 1
    assert db_session.query(models.Commission).count() == 1


def test_failure_mid_batch_rolls_everything_back(db_session, calculated, monkeypatch):
    original = SettlementExecutor._mark_order_settled
    calls = {"count": 0}

    def flaky_mark(db, order, record_id):
        calls["count"] += 1
        if calls["count"] == 2:
            raise RuntimeError("connection dropped")
        original(db, order, record_id)

    monkeypatch.setattr(SettlementExecutor, "_mark_order_settled", staticmethod(flaky_mark))

    with pytest.raises(RuntimeError):
        SettlementExecutor.execute(db_session, MARCH_10, MARCH_10, calculated["reseller"].id)

    db_session.expire_all()
    assert db_session.query(models.SettlementRecord).count() == 0
    assert db_session.query(models.Commission).count() == 0
    statuses = {order.settlement_status for order in db_session.query(models.Order).all()}
    assert statuses == {models.OrderSettlementStatus.CALCULATED}
    run = db_session.query(models.SettlementRun).filter_by(run_type="execute").one()
    assert run.outcome == "error"


def test_order_moved_concurrently_aborts_execution(db_session, calculated, monkeypatch):
    original = SettlementExecutor._mark_order_settled

    def cancel_then_mark(db, order, record_id):
        db.query(models.Order).filter(models.Order.id == order.id).update(
            {models.Order.settlement_status: models.OrderSettlementStatus.CANCEL},
            synchronize_session=False,
        )
        original(db, order, record_id)

    monkeypatch.setattr(SettlementExecutor, "_mark_order_settled", staticmethod(cancel_then_mark))

    with pytest.raises(ConcurrencyConflict):
        SettlementExecutor.execute(db_session, MARCH_10, MARCH_10, calculated["reseller"].id)

    db_session.expire_all()
    assert db_session.query(models.SettlementRecord).count() == 0
    statuses = {order.settlement_status for order in db_session.query(models.Order).all()}
    assert statuses == {models.OrderSettlementStatus.CALCULATED}


def test_reseller_without_referrer_gets_no_commission(db_session, calculated):
    reseller = calculated["reseller"]
    reseller.referrer_id = None
    db_session.commit()

    record = SettlementExecutor.execute(db_session, MARCH_10, MARCH_10, reseller.id)

    assert record.commission is None
    assert db_session.query(models.Commission).count() == 0


def test_list_and_get_records(db_session, calculated):
    record = SettlementExecutor.execute(
        db_session, MARCH_10, MARCH_10, calculated["reseller"].id
    )

    items, total = SettlementExecutor.list_records(db_session, reseller_id=record.reseller_id)
    assert total == 1
    assert items[0].id == record.id

    detail = SettlementExecutor.get_record(db_session, record.id)
    assert [order.marketplace_order_number for order in detail.orders] == ["O1", "O2"]
    assert detail.commission.commission_amount == Decimal("1.26")


def _postgres_sql(query) -> str:
    return str(query.statement.compile(dialect=postgresql.dialect()))


def test_settlement_and_wallet_queries_lock_rows_on_postgres(db_session):
    candidates = SettlementExecutor.locked_candidates(
        db_session, "reseller-1", datetime(2025, 3, 10), datetime(2025, 3, 11)
    )
    wallet = WalletService.locked_reseller_query(db_session, "reseller-1")

    assert _postgres_sql(candidates).rstrip().endswith("FOR UPDATE")
    assert _postgres_sql(wallet).rstrip().endswith("FOR UPDATE")
    assert "FOR UPDATE" not in str(candidates.statement.compile(bind=db_session.get_bind()))
