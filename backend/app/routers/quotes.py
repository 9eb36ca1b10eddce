"""Quote catalog endpoints and price lookup."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..security import require_admin
from ..services import QuoteService, SettlementError
from .errors import http_error

router = APIRouter(dependencies=[Depends(require_admin)])


def _quote_or_404(db: Session, quote_id: str):
    quote = QuoteService.get_quote(db, quote_id)
    if quote is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quote not found")
    return quote


@router.get("", response_model=schemas.QuoteListResponse)
def list_quotes(
    db: Session = Depends(get_db),
    reseller_id: Optional[str] = Query(None),
    spu: Optional[str] = Query(None),
    country_code: Optional[str] = Query(None, min_length=2, max_length=2),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> schemas.QuoteListResponse:
    items, total = QuoteService.list_quotes(
        db,
        reseller_id=reseller_id,
        spu=spu,
        country_code=country_code,
        skip=skip,
        limit=limit,
    )
    return schemas.QuoteListResponse(items=items, total=total, limit=limit, skip=skip)


@router.post("", response_model=schemas.QuoteRead, status_code=status.HTTP_201_CREATED)
def create_quote(payload: schemas.QuoteCreate, db: Session = Depends(get_db)) -> schemas.QuoteRead:
    try:
        return QuoteService.create_quote(db, payload)
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc


@router.get("/resolve", response_model=schemas.QuoteResolution)
def resolve_quote(
    reseller_id: str = Query(...),
    spu: str = Query(..., min_length=1),
    country_code: str = Query(..., min_length=2, max_length=2),
    quantity: int = Query(..., ge=1),
    db: Session = Depends(get_db),
) -> schemas.QuoteResolution:
    try:
        lookup = QuoteService.resolve(
            db,
            reseller_id=reseller_id,
            spu=spu,
            country_code=country_code,
            quantity=quantity,
        )
    except SettlementError as exc:
        raise http_error(exc) from exc

    return schemas.QuoteResolution(
        reseller_id=reseller_id,
        spu=spu,
        country_code=country_code.upper(),
        requested_quantity=quantity,
        failure=lookup.failure.value if lookup.failure else None,
        message=lookup.message,
        unit_price=lookup.unit_price,
        quote=schemas.QuoteRead.model_validate(lookup.quote) if lookup.quote else None,
    )


@router.put("/{quote_id}", response_model=schemas.QuoteRead)
def update_quote(
    quote_id: str,
    payload: schemas.QuoteUpdate,
    db: Session = Depends(get_db),
) -> schemas.QuoteRead:
    quote = _quote_or_404(db, quote_id)
    try:
        return QuoteService.update_quote(db, quote, payload)
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc


@router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quote(quote_id: str, db: Session = Depends(get_db)) -> None:
    quote = _quote_or_404(db, quote_id)
    QuoteService.delete_quote(db, quote)
