"""Persist diagnostics for settlement calculate and execute runs."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from .. import models

LOGGER = logging.getLogger(__name__)


class RunType:
    CALCULATE = "calculate"
    EXECUTE = "execute"


class RunOutcome:
    SUCCESS = "success"
    PARTIAL = "partial"
    REJECTED = "rejected"
    ERROR = "error"


class RunLogService:
    """Stores one ``SettlementRun`` row per calculate/execute invocation."""

    @staticmethod
    def record_run(
        db: Session,
        run_type: str,
        outcome: str,
        *,
        reseller_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        duration_ms: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        run = models.SettlementRun(
            run_type=run_type,
            outcome=outcome,
            reseller_id=reseller_id,
            start_date=start_date,
            end_date=end_date,
            duration_ms=Decimal(str(round(duration_ms, 3))) if duration_ms is not None else None,
            details=details or None,
        )
        RunLogService._persist(db, run)

    @staticmethod
    def recent_runs(db: Session, *, run_type: Optional[str] = None, limit: int = 20):
        query = db.query(models.SettlementRun)
        if run_type:
            query = query.filter(models.SettlementRun.run_type == run_type)
        return query.order_by(models.SettlementRun.created_at.desc()).limit(max(limit, 1)).all()

    @staticmethod
    def _persist(db: Session, run: models.SettlementRun) -> None:
        # Written through its own session so the caller's transaction is untouched.
        try:
            engine = db.get_bind()
            with Session(bind=engine) as run_session:
                run_session.add(run)
                run_session.commit()
        except Exception:  # pragma: no cover - diagnostics failures should not break flows
            LOGGER.exception("Failed to persist settlement run", extra={"run_type": run.run_type})
