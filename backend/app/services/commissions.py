"""First-level referral commissions: derivation from records and admin review."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple, Union

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, aliased, selectinload

from .. import models, schemas
from .errors import AlreadyReviewed, NotFoundError, ValidationError
from .settings import SettingsService
from .wallets import WalletService

LOGGER = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENTS, rounding=ROUND_HALF_UP)


class CommissionService:
    """Derives one commission per settlement record and applies review decisions."""

    @staticmethod
    def calculate_amount(base_amount: Decimal, rate: Decimal) -> Decimal:
        return (Decimal(base_amount) * Decimal(rate)).quantize(CENTS, rounding=ROUND_HALF_UP)

    @staticmethod
    def derive(db: Session, record: models.SettlementRecord) -> Optional[models.Commission]:
        """Create the pending commission owed to the reseller's referrer.

        Runs inside the caller's transaction. Returns ``None`` when the
        reseller has no referrer and the existing row when one was already
        derived for ``record``.
        """

        existing = (
            db.query(models.Commission)
            .filter(models.Commission.settlement_record_id == record.id)
            .first()
        )
        if existing is not None:
            return existing

        reseller = db.get(models.Reseller, record.reseller_id)
        if reseller is None or not reseller.referrer_id:
            return None

        rate, source, _ = SettingsService.commission_rate(db)
        base_amount = Decimal(record.total_settlement_amount or 0)
        commission = models.Commission(
            settlement_record_id=record.id,
            referrer_id=reseller.referrer_id,
            referee_id=reseller.id,
            base_amount=base_amount,
            commission_amount=CommissionService.calculate_amount(base_amount, rate),
            commission_rate=rate,
            status=models.CommissionStatus.PENDING,
        )
        db.add(commission)
        db.flush()
        LOGGER.info(
            "Commission derived",
            extra={
                "commission_id": commission.id,
                "settlement_record_id": record.id,
                "referrer_id": commission.referrer_id,
                "commission_amount": str(commission.commission_amount),
                "rate_source": source,
            },
        )
        return commission

    @staticmethod
    def get_commission(db: Session, commission_id: str) -> Optional[models.Commission]:
        return (
            db.query(models.Commission)
            .options(
                selectinload(models.Commission.referrer),
                selectinload(models.Commission.referee),
            )
            .filter(models.Commission.id == commission_id)
            .first()
        )

    @staticmethod
    def list_commissions(
        db: Session,
        *,
        status: Optional[models.CommissionStatus] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[Iterable[models.Commission], int]:
        query = db.query(models.Commission).options(
            selectinload(models.Commission.referrer),
            selectinload(models.Commission.referee),
        )
        if status:
            query = query.filter(models.Commission.status == status)

        if search:
            referrer = aliased(models.Reseller)
            referee = aliased(models.Reseller)
            normalized = f"%{search.strip().lower()}%"
            query = (
                query.join(referrer, models.Commission.referrer_id == referrer.id)
                .join(referee, models.Commission.referee_id == referee.id)
                .filter(
                    or_(
                        func.lower(referrer.full_name).like(normalized),
                        func.lower(referrer.email).like(normalized),
                        func.lower(referee.full_name).like(normalized),
                        func.lower(referee.email).like(normalized),
                    )
                )
            )

        total = query.count()
        items = (
            query.order_by(models.Commission.created_at.desc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def referral_stats(db: Session, referrer_id: str) -> schemas.ReferralStats:
        """Referees of ``referrer_id`` with their settled volume, plus commission totals."""

        if db.get(models.Reseller, referrer_id) is None:
            raise NotFoundError("Reseller not found")

        referees = (
            db.query(models.Reseller)
            .filter(models.Reseller.referrer_id == referrer_id)
            .order_by(models.Reseller.created_at.desc())
            .all()
        )
        settled = {}
        if referees:
            rows = (
                db.query(
                    models.SettlementRecord.reseller_id,
                    func.count(models.SettlementRecord.id),
                    func.coalesce(func.sum(models.SettlementRecord.total_settlement_amount), 0),
                )
                .filter(
                    models.SettlementRecord.reseller_id.in_([referee.id for referee in referees]),
                    models.SettlementRecord.status == models.SettlementRecordStatus.COMPLETED,
                )
                .group_by(models.SettlementRecord.reseller_id)
                .all()
            )
            settled = {reseller_id: (count, _money(amount)) for reseller_id, count, amount in rows}

        totals = schemas.CommissionTotals()
        rows = (
            db.query(
                models.Commission.status,
                func.count(models.Commission.id),
                func.coalesce(func.sum(models.Commission.commission_amount), 0),
            )
            .filter(models.Commission.referrer_id == referrer_id)
            .group_by(models.Commission.status)
            .all()
        )
        for status, count, amount in rows:
            totals.total_commissions += count
            setattr(totals, f"{models.CommissionStatus(status).value}_amount", _money(amount))

        referee_stats = []
        for referee in referees:
            count, amount = settled.get(referee.id, (0, _money(0)))
            referee_stats.append(
                schemas.ReferredResellerStats(
                    id=referee.id,
                    full_name=referee.full_name,
                    email=referee.email,
                    created_at=referee.created_at,
                    settlement_count=count,
                    total_settled_amount=amount,
                )
            )
        return schemas.ReferralStats(
            referrer_id=referrer_id,
            referee_count=len(referees),
            referees=referee_stats,
            commissions=totals,
        )

    @staticmethod
    def review(
        db: Session,
        commission_id: str,
        decision: Union[models.CommissionStatus, str],
        *,
        reason: Optional[str] = None,
        reviewed_by: Optional[str] = None,
    ) -> models.Commission:
        try:
            decision = models.CommissionStatus(decision)
        except ValueError as exc:
            raise ValidationError(f"Unknown review decision '{decision}'") from exc
        if decision is models.CommissionStatus.PENDING:
            raise ValidationError("A review must approve or reject the commission")

        reason = (reason or "").strip() or None
        if decision is models.CommissionStatus.REJECTED and not reason:
            raise ValidationError("A reason is required to reject a commission")

        commission = CommissionService.get_commission(db, commission_id)
        if commission is None:
            raise NotFoundError("Commission not found")
        if commission.status.is_final:
            raise AlreadyReviewed(
                f"Commission already {commission.status.value}",
                details={"status": commission.status.value},
            )

        try:
            # Guarded on the pending status so two concurrent reviews cannot both apply.
            updated = (
                db.query(models.Commission)
                .filter(
                    models.Commission.id == commission.id,
                    models.Commission.status == models.CommissionStatus.PENDING,
                )
                .update(
                    {
                        models.Commission.status: decision,
                        models.Commission.reject_reason: (
                            reason if decision is models.CommissionStatus.REJECTED else None
                        ),
                        models.Commission.reviewed_by: reviewed_by,
                        models.Commission.reviewed_at: datetime.now(timezone.utc),
                    },
                    synchronize_session=False,
                )
            )
            if updated != 1:
                raise AlreadyReviewed("Commission was reviewed concurrently")

            if decision is models.CommissionStatus.APPROVED:
                WalletService.credit_commission(db, commission)
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(commission)
        LOGGER.info(
            "Commission reviewed",
            extra={
                "commission_id": commission.id,
                "decision": decision.value,
                "reviewed_by": reviewed_by,
            },
        )
        return commission
