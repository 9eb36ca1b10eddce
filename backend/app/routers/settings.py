"""Runtime settings exposed to administrators."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..security import AdminIdentity, require_admin
from ..services import SettingsService, SettlementError
from .errors import http_error

router = APIRouter(dependencies=[Depends(require_admin)])


def _commission_rate_response(db: Session) -> schemas.CommissionRateRead:
    rate, source, setting = SettingsService.commission_rate(db)
    return schemas.CommissionRateRead(
        rate=rate,
        source=source,
        updated_by=setting.updated_by if setting else None,
        updated_at=setting.updated_at if setting else None,
    )


@router.get("/commission-rate", response_model=schemas.CommissionRateRead)
def get_commission_rate(db: Session = Depends(get_db)) -> schemas.CommissionRateRead:
    return _commission_rate_response(db)


@router.put("/commission-rate", response_model=schemas.CommissionRateRead)
def update_commission_rate(
    payload: schemas.CommissionRateUpdate,
    db: Session = Depends(get_db),
    admin: AdminIdentity = Depends(require_admin),
) -> schemas.CommissionRateRead:
    try:
        SettingsService.set_commission_rate(db, payload.rate, updated_by=admin.username)
    except (SettlementError, SQLAlchemyError) as exc:
        raise http_error(exc) from exc
    return _commission_rate_response(db)
