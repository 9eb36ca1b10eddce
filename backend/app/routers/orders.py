"""Order store endpoints: ingestion, admin cancellation and SKU mapping."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..security import require_admin
from ..services import OrderService, SettlementCalculator, SettlementError, SkuMappingService
from .errors import http_error

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post(
    "/import",
    response_model=schemas.OrderImportSummary,
    status_code=status.HTTP_201_CREATED,
)
def import_orders(
    payload: schemas.OrderImportRequest, db: Session = Depends(get_db)
) -> schemas.OrderImportSummary:
    try:
        return OrderService.import_orders(db, payload)
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc


@router.post("/cancel", response_model=schemas.OrderCancelResponse)
def cancel_orders(
    payload: schemas.OrderCancelRequest, db: Session = Depends(get_db)
) -> schemas.OrderCancelResponse:
    try:
        return SettlementCalculator.cancel_orders(db, payload.order_ids, payload.reason)
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc


@router.put("/sku-mappings", response_model=schemas.SkuMappingRead)
def upsert_sku_mapping(
    payload: schemas.SkuMappingWrite, db: Session = Depends(get_db)
) -> schemas.SkuMappingRead:
    try:
        return SkuMappingService.upsert(db, payload.sku, payload.spu)
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc
