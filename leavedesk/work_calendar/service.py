"""Work-calendar service — HR maintenance of holidays, working Saturdays and settings."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.audit import create_audit_entry
from leavedesk.common.constants import (
    SETTING_LEAVE_ADVANCE_DAYS,
    SETTING_WORK_HOURS_PER_DAY,
)
from leavedesk.common.exceptions import ConflictError, NotFoundException
from leavedesk.config import settings
from leavedesk.work_calendar.models import PublicHoliday, SystemSetting, WorkingSaturday
from leavedesk.work_calendar.provider import CalendarFactsProvider
from leavedesk.work_calendar.schemas import (
    CalendarSettingsOut,
    CalendarSettingsUpdate,
    HolidayCreate,
    WorkingSaturdayCreate,
)

logger = logging.getLogger(__name__)

_TWO_PLACES = Decimal("0.01")


def _year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def shift_hours(start, end) -> Decimal:
    """Length of a shift in hours, rounded to 2 decimals."""
    minutes = (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
    return (Decimal(minutes) / Decimal(60)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


class CalendarService:
    """HR-facing calendar maintenance."""

    # ── Holidays ────────────────────────────────────────────────────

    @staticmethod
    async def list_holidays(
        db: AsyncSession,
        year: int,
        company_id: Optional[uuid.UUID] = None,
    ) -> list[PublicHoliday]:
        start, end = _year_bounds(year)
        return await CalendarFactsProvider(db, company_id).get_holiday_rows(start, end)

    @staticmethod
    async def create_holiday(
        db: AsyncSession,
        data: HolidayCreate,
        actor_id: uuid.UUID,
    ) -> PublicHoliday:
        existing = await db.execute(
            select(PublicHoliday.id).where(
                PublicHoliday.date == data.date,
                PublicHoliday.company_id.is_(None)
                if data.company_id is None
                else PublicHoliday.company_id == data.company_id,
            )
        )
        if existing.scalar() is not None:
            raise ConflictError("date", data.date.isoformat())

        holiday = PublicHoliday(
            date=data.date,
            name=data.name,
            holiday_type=data.holiday_type,
            company_id=data.company_id,
        )
        db.add(holiday)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="public_holiday",
            entity_id=holiday.id,
            actor_id=actor_id,
            new_values={"date": data.date.isoformat(), "name": data.name},
        )
        logger.info("Holiday %s (%s) created", data.date, data.name)
        return holiday

    @staticmethod
    async def delete_holiday(
        db: AsyncSession,
        holiday_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        holiday = await db.get(PublicHoliday, holiday_id)
        if holiday is None:
            raise NotFoundException("PublicHoliday", str(holiday_id))

        await create_audit_entry(
            db,
            action="delete",
            entity_type="public_holiday",
            entity_id=holiday.id,
            actor_id=actor_id,
            old_values={"date": holiday.date.isoformat(), "name": holiday.name},
        )
        await db.delete(holiday)
        await db.flush()

    # ── Working Saturdays ───────────────────────────────────────────

    @staticmethod
    async def list_working_saturdays(
        db: AsyncSession,
        year: int,
        company_id: Optional[uuid.UUID] = None,
    ) -> list[WorkingSaturday]:
        start, end = _year_bounds(year)
        result = await db.execute(
            select(WorkingSaturday)
            .where(
                WorkingSaturday.date >= start,
                WorkingSaturday.date <= end,
                CalendarFactsProvider(db, company_id).company_scope(
                    WorkingSaturday.company_id
                ),
            )
            .order_by(WorkingSaturday.date)
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_working_saturday(
        db: AsyncSession,
        data: WorkingSaturdayCreate,
        actor_id: uuid.UUID,
    ) -> WorkingSaturday:
        existing = await db.execute(
            select(WorkingSaturday.id).where(
                WorkingSaturday.date == data.date,
                WorkingSaturday.company_id.is_(None)
                if data.company_id is None
                else WorkingSaturday.company_id == data.company_id,
            )
        )
        if existing.scalar() is not None:
            raise ConflictError("date", data.date.isoformat())

        record = WorkingSaturday(
            date=data.date,
            start_time=data.start_time,
            end_time=data.end_time,
            work_hours=shift_hours(data.start_time, data.end_time),
            description=data.description,
            company_id=data.company_id,
        )
        db.add(record)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="working_saturday",
            entity_id=record.id,
            actor_id=actor_id,
            new_values={
                "date": data.date.isoformat(),
                "work_hours": str(record.work_hours),
            },
        )
        logger.info("Working Saturday %s (%s h) created", data.date, record.work_hours)
        return record

    @staticmethod
    async def delete_working_saturday(
        db: AsyncSession,
        record_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        record = await db.get(WorkingSaturday, record_id)
        if record is None:
            raise NotFoundException("WorkingSaturday", str(record_id))

        await create_audit_entry(
            db,
            action="delete",
            entity_type="working_saturday",
            entity_id=record.id,
            actor_id=actor_id,
            old_values={"date": record.date.isoformat()},
        )
        await db.delete(record)
        await db.flush()

    # ── System settings ─────────────────────────────────────────────

    @staticmethod
    async def get_advance_notice_days(db: AsyncSession) -> int:
        """``LEAVE_ADVANCE_DAYS`` setting, else the configured default."""
        setting = await db.get(SystemSetting, SETTING_LEAVE_ADVANCE_DAYS)
        if setting is None:
            return settings.DEFAULT_ADVANCE_NOTICE_DAYS
        try:
            return max(int(setting.value), 0)
        except ValueError:
            logger.warning(
                "Ignoring invalid %s=%r", SETTING_LEAVE_ADVANCE_DAYS, setting.value,
            )
            return settings.DEFAULT_ADVANCE_NOTICE_DAYS

    @staticmethod
    async def get_settings(db: AsyncSession) -> CalendarSettingsOut:
        return CalendarSettingsOut(
            work_hours_per_day=await CalendarFactsProvider(db).get_work_hours_per_day(),
            leave_advance_days=await CalendarService.get_advance_notice_days(db),
        )

    @staticmethod
    async def update_settings(
        db: AsyncSession,
        data: CalendarSettingsUpdate,
        actor_id: uuid.UUID,
    ) -> CalendarSettingsOut:
        old = await CalendarService.get_settings(db)

        changes: dict[str, str] = {}
        if data.work_hours_per_day is not None:
            changes[SETTING_WORK_HOURS_PER_DAY] = str(data.work_hours_per_day)
        if data.leave_advance_days is not None:
            changes[SETTING_LEAVE_ADVANCE_DAYS] = str(data.leave_advance_days)

        for key, value in changes.items():
            setting = await db.get(SystemSetting, key)
            if setting is None:
                db.add(SystemSetting(key=key, value=value))
            else:
                setting.value = value
                setting.updated_at = datetime.now(timezone.utc)
        await db.flush()

        if changes:
            await create_audit_entry(
                db,
                action="update",
                entity_type="system_setting",
                actor_id=actor_id,
                old_values=old.model_dump(mode="json"),
                new_values=changes,
            )
        return await CalendarService.get_settings(db)
