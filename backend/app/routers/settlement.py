"""Settlement workflow endpoints: calculate, review, execute."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..security import AdminIdentity, require_admin
from ..services import RunLogService, SettlementCalculator, SettlementError, SettlementExecutor
from .errors import http_error

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("/calculate", response_model=schemas.CalculationReport)
def calculate_settlement(
    payload: schemas.CalculationRequest, db: Session = Depends(get_db)
) -> schemas.CalculationReport:
    """Price every waiting order paid in the range and report per-category outcomes."""

    try:
        return SettlementCalculator.calculate(
            db, payload.start_date, payload.end_date, payload.reseller_id
        )
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc


@router.get("/orders", response_model=schemas.CategorizedOrders)
def list_settlement_orders(
    start_date: date = Query(...),
    end_date: date = Query(...),
    reseller_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
) -> schemas.CategorizedOrders:
    try:
        return SettlementCalculator.order_summary(db, start_date, end_date, reseller_id)
    except SettlementError as exc:
        raise http_error(exc) from exc


@router.get("/stats", response_model=schemas.SettlementStats)
def settlement_stats(
    start_date: date = Query(...),
    end_date: date = Query(...),
    reseller_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
) -> schemas.SettlementStats:
    try:
        return SettlementCalculator.settlement_stats(db, start_date, end_date, reseller_id)
    except SettlementError as exc:
        raise http_error(exc) from exc


@router.post("/execute", response_model=schemas.ExecutionResult)
def execute_settlement(
    payload: schemas.ExecutionRequest,
    db: Session = Depends(get_db),
    admin: AdminIdentity = Depends(require_admin),
) -> schemas.ExecutionResult:
    try:
        record = SettlementExecutor.execute(
            db,
            payload.start_date,
            payload.end_date,
            payload.reseller_id,
            payload.notes,
            executed_by=admin.username,
        )
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc

    return schemas.ExecutionResult(
        settlement_record_id=record.id,
        reseller_id=record.reseller_id,
        total_settlement_amount=record.total_settlement_amount,
        order_count=record.order_count,
        commission_id=record.commission.id if record.commission else None,
    )


@router.get("/runs", response_model=List[schemas.SettlementRunRead])
def list_settlement_runs(
    run_type: Optional[str] = Query(None, pattern="^(calculate|execute)$"),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
) -> List[schemas.SettlementRunRead]:
    """Most recent calculate/execute diagnostics, newest first."""

    return RunLogService.recent_runs(db, run_type=run_type, limit=limit)
