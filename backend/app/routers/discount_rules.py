"""Per-reseller discount rule maintenance."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..security import require_admin
from ..services import DiscountRuleService, SettlementError
from .errors import http_error

router = APIRouter(dependencies=[Depends(require_admin)])


def _rule_or_404(db: Session, reseller_id: str, rule_id: int):
    rule = DiscountRuleService.get_rule(db, reseller_id, rule_id)
    if rule is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Discount rule not found")
    return rule


@router.get("/{reseller_id}", response_model=schemas.DiscountRuleListResponse)
def list_discount_rules(
    reseller_id: str, db: Session = Depends(get_db)
) -> schemas.DiscountRuleListResponse:
    items, total = DiscountRuleService.list_rules(db, reseller_id)
    return schemas.DiscountRuleListResponse(items=items, total=total)


@router.post(
    "/{reseller_id}",
    response_model=schemas.DiscountRuleRead,
    status_code=status.HTTP_201_CREATED,
)
def create_discount_rule(
    reseller_id: str,
    payload: schemas.DiscountRuleCreate,
    db: Session = Depends(get_db),
) -> schemas.DiscountRuleRead:
    try:
        return DiscountRuleService.create_rule(db, reseller_id, payload)
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc


@router.put("/{reseller_id}/{rule_id}", response_model=schemas.DiscountRuleRead)
def update_discount_rule(
    reseller_id: str,
    rule_id: int,
    payload: schemas.DiscountRuleUpdate,
    db: Session = Depends(get_db),
) -> schemas.DiscountRuleRead:
    rule = _rule_or_404(db, reseller_id, rule_id)
    try:
        return DiscountRuleService.update_rule(db, rule, payload)
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc


@router.delete("/{reseller_id}/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_discount_rule(reseller_id: str, rule_id: int, db: Session = Depends(get_db)) -> None:
    rule = _rule_or_404(db, reseller_id, rule_id)
    DiscountRuleService.delete_rule(db, rule)


@router.delete("/{reseller_id}", response_model=schemas.DiscountRuleBulkDeleteResponse)
def delete_discount_rules(
    reseller_id: str, db: Session = Depends(get_db)
) -> schemas.DiscountRuleBulkDeleteResponse:
    try:
        deleted = DiscountRuleService.delete_rules(db, reseller_id)
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc
    return schemas.DiscountRuleBulkDeleteResponse(reseller_id=reseller_id, deleted_count=deleted)
