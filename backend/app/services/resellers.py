"""Business logic for the reseller registry and its one-hop referral link."""

from __future__ import annotations

import hashlib
import logging
import secrets
from typing import Iterable, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db_types import new_guid
from .errors import NotFoundError, SettlementError, ValidationError

LOGGER = logging.getLogger(__name__)

REFERRAL_CODE_PREFIX = "SYN"
MAX_REFERRAL_CODE_ATTEMPTS = 10


class ResellerService:
    """Operations surrounding resellers and who referred them."""

    @staticmethod
    def list_resellers(
        db: Session,
        *,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[Iterable[models.Reseller], int]:
        query = db.query(models.Reseller)
        if search:
            normalized = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(models.Reseller.full_name).like(normalized),
                    func.lower(models.Reseller.email).like(normalized),
                    func.lower(models.Reseller.referral_code).like(normalized),
                )
            )
        total = query.count()
        items = (
            query.order_by(models.Reseller.full_name)
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def get_reseller(db: Session, reseller_id: str) -> Optional[models.Reseller]:
        return db.query(models.Reseller).filter(models.Reseller.id == reseller_id).first()

    @staticmethod
    def get_by_referral_code(db: Session, referral_code: str) -> Optional[models.Reseller]:
        return (
            db.query(models.Reseller)
            .filter(
                models.Reseller.referral_code == referral_code.strip().upper(),
                models.Reseller.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def generate_referral_code(reseller_id: str) -> str:
        digest = hashlib.md5(str(reseller_id).encode("utf-8")).hexdigest()[:4]
        return f"{REFERRAL_CODE_PREFIX}{digest}{secrets.token_hex(3)}".upper()

    @staticmethod
    def _unique_referral_code(db: Session, reseller_id: str) -> str:
        for _ in range(MAX_REFERRAL_CODE_ATTEMPTS):
            code = ResellerService.generate_referral_code(reseller_id)
            taken = (
                db.query(models.Reseller.id)
                .filter(models.Reseller.referral_code == code)
                .first()
            )
            if taken is None:
                return code
        raise SettlementError("Failed to generate a unique referral code")

    @staticmethod
    def create_reseller(db: Session, data: schemas.ResellerCreate) -> models.Reseller:
        payload = data.model_dump()
        inviter_code = payload.pop("referral_code", None)
        payload["full_name"] = payload["full_name"].strip()
        payload["email"] = payload["email"].strip().lower()

        referrer = None
        if inviter_code:
            referrer = ResellerService.get_by_referral_code(db, inviter_code)
            if referrer is None:
                raise ValidationError("Invalid referral code")

        reseller = models.Reseller(id=new_guid(), **payload)
        reseller.referral_code = ResellerService._unique_referral_code(db, reseller.id)
        if referrer is not None:
            reseller.referrer_id = referrer.id

        db.add(reseller)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ValidationError("A reseller with that email already exists") from exc
        db.refresh(reseller)
        LOGGER.info(
            "Reseller created",
            extra={"reseller_id": reseller.id, "referrer_id": reseller.referrer_id},
        )
        return reseller

    @staticmethod
    def assign_referrer(
        db: Session,
        reseller: models.Reseller,
        referral_code: str,
    ) -> models.Reseller:
        """Link ``reseller`` to the owner of ``referral_code``; the link is set once."""

        referrer = ResellerService.get_by_referral_code(db, referral_code)
        if referrer is None:
            raise ValidationError("Invalid referral code")
        if referrer.id == reseller.id:
            raise ValidationError("A reseller cannot refer itself")
        if reseller.referrer_id:
            raise ValidationError("Reseller already has a referrer")

        reseller.referrer_id = referrer.id
        db.add(reseller)
        db.commit()
        db.refresh(reseller)
        LOGGER.info(
            "Referral link established",
            extra={"reseller_id": reseller.id, "referrer_id": referrer.id},
        )
        return reseller

    @staticmethod
    def require_reseller(db: Session, reseller_id: str) -> models.Reseller:
        reseller = ResellerService.get_reseller(db, reseller_id)
        if reseller is None:
            raise NotFoundError("Reseller not found")
        return reseller
