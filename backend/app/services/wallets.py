"""Wallet ledger movements for reseller balances."""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

from sqlalchemy.orm import Query, Session

from .. import models
from .errors import NotFoundError, ValidationError

LOGGER = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class WalletService:
    """Credits balances and keeps one ledger row per movement.

    Callers own the transaction; nothing here commits.
    """

    @staticmethod
    def locked_reseller_query(db: Session, reseller_id: str) -> Query:
        return (
            db.query(models.Reseller)
            .filter(models.Reseller.id == reseller_id)
            .with_for_update()
        )

    @staticmethod
    def _locked_reseller(db: Session, reseller_id: str) -> models.Reseller:
        reseller = WalletService.locked_reseller_query(db, reseller_id).first()
        if reseller is None:
            raise NotFoundError("Reseller not found")
        return reseller

    @staticmethod
    def credit_commission(db: Session, commission: models.Commission) -> models.WalletTransaction:
        amount = Decimal(commission.commission_amount or 0).quantize(CENTS, rounding=ROUND_HALF_UP)
        if amount < 0:
            raise ValidationError("Commission amount cannot be negative")

        existing = (
            db.query(models.WalletTransaction)
            .filter(
                models.WalletTransaction.transaction_type
                == models.WalletTransactionType.COMMISSION_CREDIT,
                models.WalletTransaction.reference_id == str(commission.id),
            )
            .first()
        )
        if existing is not None:
            return existing

        reseller = WalletService._locked_reseller(db, commission.referrer_id)
        balance_before = Decimal(reseller.wallet_balance or 0)
        balance_after = (balance_before + amount).quantize(CENTS, rounding=ROUND_HALF_UP)

        reseller.wallet_balance = balance_after
        transaction = models.WalletTransaction(
            reseller_id=reseller.id,
            transaction_type=models.WalletTransactionType.COMMISSION_CREDIT,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            reference_id=str(commission.id),
            description=f"Referral commission for settlement {commission.settlement_record_id}",
        )
        db.add(reseller)
        db.add(transaction)
        db.flush()
        LOGGER.info(
            "Wallet credited with commission",
            extra={
                "reseller_id": reseller.id,
                "commission_id": commission.id,
                "amount": str(amount),
                "balance_after": str(balance_after),
            },
        )
        return transaction

    @staticmethod
    def list_transactions(
        db: Session,
        reseller_id: str,
        *,
        skip: int = 0,
        limit: Optional[int] = 100,
    ) -> Tuple[Iterable[models.WalletTransaction], int]:
        query = db.query(models.WalletTransaction).filter(
            models.WalletTransaction.reseller_id == reseller_id
        )
        total = query.count()
        query = query.order_by(models.WalletTransaction.created_at.desc()).offset(max(skip, 0))
        if limit is not None:
            query = query.limit(max(limit, 1))
        return query.all(), total
