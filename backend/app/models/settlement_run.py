"""Diagnostics captured for every calculate and execute call."""

from __future__ import annotations

from sqlalchemy import Column, Date, DateTime, JSON, Numeric, String, func
from sqlalchemy.dialects.sqlite import JSON as SQLiteJSON

from ..database import Base
from ..db_types import GUID, new_guid


class SettlementRun(Base):
    """One calculate/execute invocation with its outcome and counters."""

    __tablename__ = "settlement_runs"

    id = Column("run_id", GUID(), primary_key=True, default=new_guid)
    run_type = Column(String(32), nullable=False, index=True)
    outcome = Column(String(32), nullable=False, index=True)
    reseller_id = Column(GUID(), nullable=True, index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    duration_ms = Column(Numeric(14, 3), nullable=True)
    details = Column(JSON().with_variant(SQLiteJSON(), "sqlite"), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
