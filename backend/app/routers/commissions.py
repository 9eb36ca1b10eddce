"""Commission listing and admin review."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..models import CommissionStatus
from ..security import AdminIdentity, require_admin
from ..services import CommissionService, SettlementError
from .errors import http_error

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("", response_model=schemas.CommissionListResponse)
def list_commissions(
    db: Session = Depends(get_db),
    status_filter: Optional[CommissionStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Referrer or referee name/email"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> schemas.CommissionListResponse:
    items, total = CommissionService.list_commissions(
        db, status=status_filter, search=search, skip=skip, limit=limit
    )
    return schemas.CommissionListResponse(items=items, total=total, limit=limit, skip=skip)


@router.put("/{commission_id}/review", response_model=schemas.CommissionRead)
def review_commission(
    commission_id: str,
    payload: schemas.CommissionReviewRequest,
    db: Session = Depends(get_db),
    admin: AdminIdentity = Depends(require_admin),
) -> schemas.CommissionRead:
    try:
        return CommissionService.review(
            db,
            commission_id,
            payload.status,
            reason=payload.reject_reason,
            reviewed_by=admin.username,
        )
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc
