"""Calendar facts provider — holidays, working Saturdays and the working-day length.

The duration calculators are pure; this is the only place their calendar
inputs are read from the database.  A failed read is fatal for the calling
operation: a leave duration is never computed against guessed holiday data.
"""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from datetime import date, time
from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.constants import SETTING_WORK_HOURS_PER_DAY
from leavedesk.common.exceptions import CalendarUnavailableException
from leavedesk.config import settings
from leavedesk.work_calendar.models import PublicHoliday, SystemSetting, WorkingSaturday

logger = logging.getLogger(__name__)


class WorkingSaturdayFact(BaseModel):
    """Immutable view of a working Saturday handed to the calculators."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    date: dt.date
    start_time: time
    end_time: time
    work_hours: Decimal


class CalendarFactsProvider:
    """Reads calendar facts for one company scope.

    Rows with ``company_id`` NULL apply to all companies and are always
    included; rows for *company_id* are added on top.
    """

    def __init__(self, db: AsyncSession, company_id: Optional[uuid.UUID] = None) -> None:
        self.db = db
        self.company_id = company_id

    def company_scope(self, column):
        if self.company_id is None:
            return column.is_(None)
        return or_(column.is_(None), column == self.company_id)

    async def get_holiday_rows(self, start: date, end: date) -> list[PublicHoliday]:
        try:
            result = await self.db.execute(
                select(PublicHoliday)
                .where(
                    PublicHoliday.date >= start,
                    PublicHoliday.date <= end,
                    self.company_scope(PublicHoliday.company_id),
                )
                .order_by(PublicHoliday.date)
            )
        except SQLAlchemyError:
            logger.exception("Failed to load public holidays %s..%s", start, end)
            raise CalendarUnavailableException()
        return list(result.scalars().all())

    async def get_holidays(self, start: date, end: date) -> set[date]:
        """Holiday dates within ``[start, end]``."""
        return {h.date for h in await self.get_holiday_rows(start, end)}

    async def get_holiday_name(self, on_date: date) -> Optional[str]:
        rows = await self.get_holiday_rows(on_date, on_date)
        return rows[0].name if rows else None

    async def get_working_saturdays(
        self, start: date, end: date,
    ) -> list[WorkingSaturdayFact]:
        """Working Saturdays within ``[start, end]``, ordered by date."""
        try:
            result = await self.db.execute(
                select(WorkingSaturday)
                .where(
                    WorkingSaturday.date >= start,
                    WorkingSaturday.date <= end,
                    self.company_scope(WorkingSaturday.company_id),
                )
                .order_by(WorkingSaturday.date)
            )
        except SQLAlchemyError:
            logger.exception("Failed to load working Saturdays %s..%s", start, end)
            raise CalendarUnavailableException()
        return [WorkingSaturdayFact.model_validate(row) for row in result.scalars().all()]

    async def get_work_hours_per_day(self) -> Decimal:
        """``WORK_HOURS_PER_DAY`` system setting, else the configured default."""
        try:
            result = await self.db.execute(
                select(SystemSetting.value).where(
                    SystemSetting.key == SETTING_WORK_HOURS_PER_DAY,
                )
            )
        except SQLAlchemyError:
            logger.exception("Failed to load %s", SETTING_WORK_HOURS_PER_DAY)
            raise CalendarUnavailableException()

        raw = result.scalar()
        if raw is None:
            return settings.DEFAULT_WORK_HOURS_PER_DAY
        try:
            hours = Decimal(raw)
        except InvalidOperation:
            hours = Decimal(0)
        if not hours.is_finite() or hours <= 0:
            logger.warning(
                "Ignoring invalid %s=%r; using %s",
                SETTING_WORK_HOURS_PER_DAY, raw, settings.DEFAULT_WORK_HOURS_PER_DAY,
            )
            return settings.DEFAULT_WORK_HOURS_PER_DAY
        return hours
