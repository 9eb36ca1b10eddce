"""Read access to settlement records and their reconciliation status."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..models import SettlementRecordStatus
from ..security import require_admin
from ..services import SettlementConsistencyService, SettlementExecutor

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("", response_model=schemas.SettlementRecordListResponse)
def list_settlement_records(
    db: Session = Depends(get_db),
    reseller_id: Optional[str] = Query(None),
    status_filter: Optional[SettlementRecordStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> schemas.SettlementRecordListResponse:
    items, total = SettlementExecutor.list_records(
        db, reseller_id=reseller_id, status=status_filter, skip=skip, limit=limit
    )
    return schemas.SettlementRecordListResponse(items=items, total=total, limit=limit, skip=skip)


@router.get("/consistency", response_model=schemas.SettlementConsistencyReport)
def settlement_consistency(db: Session = Depends(get_db)) -> schemas.SettlementConsistencyReport:
    snapshot = SettlementConsistencyService.check(db)
    return schemas.SettlementConsistencyReport(
        checked_records=snapshot.checked_records,
        mismatched_records=[
            schemas.RecordMismatchRead(**vars(item)) for item in snapshot.mismatched_records
        ],
        settled_orders_without_record=snapshot.settled_orders_without_record,
        records_without_orders=snapshot.records_without_orders,
    )


@router.get("/{record_id}", response_model=schemas.SettlementRecordDetail)
def get_settlement_record(
    record_id: str, db: Session = Depends(get_db)
) -> schemas.SettlementRecordDetail:
    record = SettlementExecutor.get_record(db, record_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Settlement record not found")
    return record
