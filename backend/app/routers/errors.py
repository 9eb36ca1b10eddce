"""Translate service exceptions into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from ..services.errors import (
    AlreadyReviewed,
    ConcurrencyConflict,
    DiscountRuleConflict,
    NotFoundError,
    SettlementError,
    ValidationError,
)

LOGGER = logging.getLogger(__name__)


def http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, DiscountRuleConflict):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": exc.message, **exc.details},
        )
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, (ConcurrencyConflict, AlreadyReviewed)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)
    if isinstance(exc, SettlementError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    LOGGER.exception("Unexpected database error", exc_info=exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="The operation could not be completed.",
    )
