"""Work-calendar ORM models: PublicHoliday, WorkingSaturday, SystemSetting."""

from __future__ import annotations

import datetime as dt
import uuid
from datetime import datetime, time, timezone
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from leavedesk.common.constants import HolidayType
from leavedesk.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PublicHoliday(Base):
    """A non-working day. ``company_id`` NULL means it applies to every company."""

    __tablename__ = "public_holidays"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    holiday_type: Mapped[HolidayType] = mapped_column(
        sa.Enum(HolidayType, name="holiday_type"),
        default=HolidayType.public,
        server_default=HolidayType.public.value,
    )
    company_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("companies.id", ondelete="CASCADE"),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now(),
    )

    __table_args__ = (
        sa.UniqueConstraint("date", "company_id", name="uq_public_holidays_date_company"),
        sa.Index("ix_public_holidays_date", "date"),
    )

    def __repr__(self) -> str:
        return f"<PublicHoliday {self.date} {self.name!r}>"


class WorkingSaturday(Base):
    """A Saturday on which the company works a short (usually morning) shift."""

    __tablename__ = "working_saturdays"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    start_time: Mapped[time] = mapped_column(sa.Time, nullable=False)
    end_time: Mapped[time] = mapped_column(sa.Time, nullable=False)
    work_hours: Mapped[Decimal] = mapped_column(sa.Numeric(4, 2), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.String(255))
    company_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("companies.id", ondelete="CASCADE"),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now(),
    )

    __table_args__ = (
        sa.UniqueConstraint("date", "company_id", name="uq_working_saturdays_date_company"),
        sa.CheckConstraint("work_hours > 0", name="ck_working_saturdays_hours"),
    )


class SystemSetting(Base):
    """Key/value runtime setting editable by HR (e.g. WORK_HOURS_PER_DAY)."""

    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(sa.String(100), primary_key=True)
    value: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.String(255))
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
        server_default=sa.func.now(),
    )
