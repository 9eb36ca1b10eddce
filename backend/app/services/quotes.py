"""Quote catalog maintenance and per-unit settlement price lookup."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import allowed_country_codes
from .errors import LookupFailure, NotFoundError, ValidationError

LOGGER = logging.getLogger(__name__)

COST_FIELDS = ("product_cost", "shipping_cost", "packing_cost", "vat_cost")


@dataclass(frozen=True)
class QuoteLookup:
    """Outcome of resolving a quote; ``failure`` is set when no price applies."""

    quote: Optional[models.Quote] = None
    unit_price: Optional[Decimal] = None
    failure: Optional[LookupFailure] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def failed(cls, failure: LookupFailure, message: str) -> "QuoteLookup":
        return cls(failure=failure, message=message)


class QuoteService:
    """Operations over the cost-basis quote table."""

    @staticmethod
    def compute_total(
        *,
        product_cost: Decimal,
        shipping_cost: Decimal,
        packing_cost: Decimal,
        vat_cost: Decimal,
    ) -> Decimal:
        return sum(
            (Decimal(value or 0) for value in (product_cost, shipping_cost, packing_cost, vat_cost)),
            Decimal("0"),
        )

    @staticmethod
    def list_quotes(
        db: Session,
        *,
        reseller_id: Optional[str] = None,
        spu: Optional[str] = None,
        country_code: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[Iterable[models.Quote], int]:
        query = db.query(models.Quote)
        if reseller_id:
            query = query.filter(models.Quote.reseller_id == reseller_id)
        if spu:
            query = query.filter(func.lower(models.Quote.spu) == spu.strip().lower())
        if country_code:
            query = query.filter(models.Quote.country_code == country_code.strip().upper())

        total = query.count()
        items = (
            query.order_by(
                models.Quote.spu.asc(),
                models.Quote.country_code.asc(),
                models.Quote.quantity.asc(),
            )
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def get_quote(db: Session, quote_id: str) -> Optional[models.Quote]:
        return db.query(models.Quote).filter(models.Quote.id == quote_id).first()

    @staticmethod
    def create_quote(db: Session, data: schemas.QuoteCreate) -> models.Quote:
        reseller = db.get(models.Reseller, data.reseller_id)
        if reseller is None:
            raise NotFoundError("Reseller not found")

        payload = data.model_dump()
        manual_total = payload.pop("total_price", None)
        quote = models.Quote(**payload)
        QuoteService._apply_total(quote, manual_total)

        db.add(quote)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ValidationError(
                "A quote already exists for this product, country and quantity tier",
                details={
                    "spu": data.spu,
                    "country_code": data.country_code,
                    "quantity": data.quantity,
                },
            ) from exc
        db.refresh(quote)
        LOGGER.info(
            "Quote created",
            extra={"quote_id": quote.id, "reseller_id": quote.reseller_id, "spu": quote.spu},
        )
        return quote

    @staticmethod
    def update_quote(
        db: Session,
        quote: models.Quote,
        data: schemas.QuoteUpdate,
    ) -> models.Quote:
        update_data = data.model_dump(exclude_unset=True)
        manual_total = update_data.pop("total_price", None)
        clear_manual = update_data.pop("clear_manual_total", False)

        for field in COST_FIELDS:
            if field in update_data and update_data[field] is not None:
                setattr(quote, field, update_data[field])

        if manual_total is not None:
            QuoteService._apply_total(quote, manual_total)
        elif clear_manual or not quote.is_manual_total:
            QuoteService._apply_total(quote, None)

        db.add(quote)
        db.commit()
        db.refresh(quote)
        return quote

    @staticmethod
    def delete_quote(db: Session, quote: models.Quote) -> None:
        db.delete(quote)
        db.commit()

    @staticmethod
    def _apply_total(quote: models.Quote, manual_total: Optional[Decimal]) -> None:
        if manual_total is not None:
            quote.total_price = manual_total
            quote.is_manual_total = True
            return
        quote.total_price = QuoteService.compute_total(
            **{field: getattr(quote, field) for field in COST_FIELDS}
        )
        quote.is_manual_total = False

    @staticmethod
    def resolve(
        db: Session,
        *,
        reseller_id: str,
        spu: Optional[str],
        country_code: Optional[str],
        quantity: int,
    ) -> QuoteLookup:
        """Return the per-unit settlement price for ``quantity`` units.

        The exact quantity tier wins; otherwise the largest configured tier
        below the requested quantity is used. Missing rows are reported as
        ``NO_PRICE_INFO`` and unusable totals as ``PRICE_CALCULATION_ERROR``.
        """

        if quantity is None or int(quantity) < 1:
            raise ValidationError("Quantity must be a positive integer")

        normalized_country = (country_code or "").strip().upper()
        if normalized_country not in allowed_country_codes():
            return QuoteLookup.failed(
                LookupFailure.NO_PRICE_INFO,
                f"Country code '{country_code}' is not supported",
            )
        if not spu:
            return QuoteLookup.failed(LookupFailure.NO_PRICE_INFO, "Order has no SPU")

        quote = (
            db.query(models.Quote)
            .filter(
                models.Quote.reseller_id == reseller_id,
                models.Quote.spu == spu,
                models.Quote.country_code == normalized_country,
                models.Quote.quantity <= int(quantity),
            )
            .order_by(models.Quote.quantity.desc())
            .first()
        )
        if quote is None:
            return QuoteLookup.failed(
                LookupFailure.NO_PRICE_INFO,
                f"No quote for SPU {spu} to {normalized_country} at quantity {quantity}",
            )

        total_price = quote.total_price
        if total_price is None or Decimal(total_price) <= 0:
            return QuoteLookup(
                quote=quote,
                failure=LookupFailure.PRICE_CALCULATION_ERROR,
                message=f"Quote {quote.id} has no usable total price",
            )

        unit_price = Decimal(total_price) / Decimal(quote.quantity)
        return QuoteLookup(quote=quote, unit_price=unit_price)
