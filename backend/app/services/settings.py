"""Runtime settings backed by the ``system_settings`` table."""

from __future__ import annotations

import logging
import os
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from .. import models
from ..config import (
    DEFAULT_FIRST_LEVEL_COMMISSION_RATE,
    FIRST_LEVEL_COMMISSION_RATE_ENV,
    RATE_DECIMAL_PLACES,
    exceeds_rate_precision,
)
from ..config import first_level_commission_rate as env_commission_rate
from .errors import ValidationError

LOGGER = logging.getLogger(__name__)

FIRST_LEVEL_COMMISSION_RATE_KEY = "first_level_commission_rate"


class SettingsService:
    @staticmethod
    def get_setting(db: Session, key: str) -> Optional[models.SystemSetting]:
        return db.get(models.SystemSetting, key)

    @staticmethod
    def commission_rate(db: Session) -> Tuple[Decimal, str, Optional[models.SystemSetting]]:
        """Return ``(rate, source, row)`` for the first-level commission rate.

        Lookup order is the stored setting, then the environment, then the
        built-in default.
        """

        setting = SettingsService.get_setting(db, FIRST_LEVEL_COMMISSION_RATE_KEY)
        if setting is not None:
            try:
                return Decimal(setting.value), "database", setting
            except InvalidOperation:
                LOGGER.warning(
                    "Ignoring malformed commission rate setting",
                    extra={"setting_value": setting.value},
                )

        if os.getenv(FIRST_LEVEL_COMMISSION_RATE_ENV):
            return env_commission_rate(), "environment", None
        return DEFAULT_FIRST_LEVEL_COMMISSION_RATE, "default", None

    @staticmethod
    def set_commission_rate(
        db: Session,
        rate: Decimal,
        *,
        updated_by: Optional[str] = None,
    ) -> models.SystemSetting:
        rate = Decimal(rate)
        if rate < 0 or rate > 1:
            raise ValidationError("Commission rate must be between 0 and 1")
        if exceeds_rate_precision(rate):
            raise ValidationError(
                f"Commission rate allows at most {RATE_DECIMAL_PLACES} decimal places"
            )

        setting = SettingsService.get_setting(db, FIRST_LEVEL_COMMISSION_RATE_KEY)
        if setting is None:
            setting = models.SystemSetting(
                key=FIRST_LEVEL_COMMISSION_RATE_KEY,
                description="First-level referral commission rate",
            )
        setting.value = str(rate)
        setting.updated_by = updated_by
        db.add(setting)
        db.commit()
        db.refresh(setting)
        LOGGER.info(
            "Commission rate updated",
            extra={"rate": str(rate), "updated_by": updated_by},
        )
        return setting
