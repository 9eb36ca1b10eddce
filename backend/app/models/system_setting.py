"""Runtime-adjustable settings stored alongside the data they govern."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Text, func

from ..database import Base


class SystemSetting(Base):
    __tablename__ = "system_settings"

    key = Column("setting_key", String(100), primary_key=True)
    value = Column("setting_value", Text, nullable=False)
    description = Column(Text, nullable=True)
    updated_by = Column(String(255), nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
