"""API router for the reseller registry."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..security import require_admin
from ..services import CommissionService, ResellerService, SettlementError, WalletService
from .errors import http_error

router = APIRouter(dependencies=[Depends(require_admin)])


def _get_or_404(db: Session, reseller_id: str):
    reseller = ResellerService.get_reseller(db, reseller_id)
    if reseller is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reseller not found")
    return reseller


@router.get("", response_model=schemas.ResellerListResponse)
def list_resellers(
    db: Session = Depends(get_db),
    search: Optional[str] = Query(None, description="Filter by name, email or referral code"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> schemas.ResellerListResponse:
    items, total = ResellerService.list_resellers(db, search=search, skip=skip, limit=limit)
    return schemas.ResellerListResponse(items=items, total=total, limit=limit, skip=skip)


@router.post("", response_model=schemas.ResellerRead, status_code=status.HTTP_201_CREATED)
def create_reseller(
    payload: schemas.ResellerCreate, db: Session = Depends(get_db)
) -> schemas.ResellerRead:
    try:
        return ResellerService.create_reseller(db, payload)
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc


@router.get("/{reseller_id}", response_model=schemas.ResellerRead)
def get_reseller(reseller_id: str, db: Session = Depends(get_db)) -> schemas.ResellerRead:
    return _get_or_404(db, reseller_id)


@router.put("/{reseller_id}/referrer", response_model=schemas.ResellerRead)
def assign_referrer(
    reseller_id: str,
    payload: schemas.ReferrerAssignment,
    db: Session = Depends(get_db),
) -> schemas.ResellerRead:
    reseller = _get_or_404(db, reseller_id)
    try:
        return ResellerService.assign_referrer(db, reseller, payload.referral_code)
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc


@router.get(
    "/{reseller_id}/wallet-transactions",
    response_model=schemas.PaginatedResponse[schemas.WalletTransactionRead],
)
def list_wallet_transactions(
    reseller_id: str,
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    _get_or_404(db, reseller_id)
    items, total = WalletService.list_transactions(db, reseller_id, skip=skip, limit=limit)
    return {"items": items, "total": total, "limit": limit, "skip": skip}


@router.get("/{reseller_id}/referral-stats", response_model=schemas.ReferralStats)
def referral_stats(reseller_id: str, db: Session = Depends(get_db)) -> schemas.ReferralStats:
    try:
        return CommissionService.referral_stats(db, reseller_id)
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc
