"""Leave ORM models: LeaveQuotaSetting, LeaveBalance, LeaveRequest, LeaveRequestYearSplit."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leavedesk.common.constants import LeaveStatus, LeaveType, TimeSlot
from leavedesk.database import Base

if TYPE_CHECKING:
    from leavedesk.core_hr.models import Employee


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LeaveQuotaSetting(Base):
    """Per leave-type entitlement and carry-over policy, maintained by HR."""

    __tablename__ = "leave_quota_settings"

    leave_type: Mapped[LeaveType] = mapped_column(
        sa.Enum(LeaveType, name="leave_type"), primary_key=True,
    )
    default_days: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), nullable=False, default=Decimal("0"),
    )
    min_tenure_years: Mapped[int] = mapped_column(
        sa.Integer, nullable=False, default=0, server_default=sa.text("0"),
    )
    allow_carry_over: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=False, server_default=sa.text("FALSE"),
    )
    max_carry_over_days: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), nullable=False, default=Decimal("0"),
        server_default=sa.text("0"),
    )
    # Sick leave of at least this many days needs a medical certificate.
    medical_cert_threshold_days: Mapped[Optional[Decimal]] = mapped_column(
        sa.Numeric(6, 2),
    )
    is_balance_tracked: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=True, server_default=sa.text("TRUE"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
        server_default=sa.func.now(),
    )


class LeaveBalance(Base):
    """One ledger row per (employee, leave type, year).

    ``remaining`` is kept equal to ``entitlement + carry_over - used`` by the
    ledger; nothing else writes these columns.
    """

    __tablename__ = "leave_balances"
    __table_args__ = (
        sa.UniqueConstraint(
            "employee_id", "leave_type", "year", name="uq_leave_balance"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    leave_type: Mapped[LeaveType] = mapped_column(
        sa.Enum(LeaveType, name="leave_type"), nullable=False,
    )
    year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    entitlement: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), nullable=False, default=Decimal("0"),
        server_default=sa.text("0"),
    )
    used: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), nullable=False, default=Decimal("0"),
        server_default=sa.text("0"),
    )
    remaining: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), nullable=False, default=Decimal("0"),
        server_default=sa.text("0"),
    )
    carry_over: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 2), nullable=False, default=Decimal("0"),
        server_default=sa.text("0"),
    )
    # TRUE while the row was seeded lazily; year-end processing clears it.
    is_auto_created: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=True, server_default=sa.text("TRUE"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
        server_default=sa.func.now(),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="leave_balances")


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        sa.CheckConstraint("end_date >= start_date", name="ck_leave_request_range"),
        sa.CheckConstraint("usage_amount > 0", name="ck_leave_request_usage"),
        sa.Index("ix_leave_requests_employee_status", "employee_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    leave_type: Mapped[LeaveType] = mapped_column(
        sa.Enum(LeaveType, name="leave_type"), nullable=False,
    )
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    time_slot: Mapped[TimeSlot] = mapped_column(
        sa.Enum(TimeSlot, name="time_slot"),
        nullable=False,
        default=TimeSlot.full_day,
        server_default=TimeSlot.full_day.value,
    )
    start_time: Mapped[Optional[time]] = mapped_column(sa.Time)
    end_time: Mapped[Optional[time]] = mapped_column(sa.Time)
    usage_amount: Mapped[Decimal] = mapped_column(sa.Numeric(6, 2), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    status: Mapped[LeaveStatus] = mapped_column(
        sa.Enum(LeaveStatus, name="leave_status"),
        nullable=False,
        default=LeaveStatus.pending,
        server_default=LeaveStatus.pending.value,
    )
    has_medical_certificate: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=False, server_default=sa.text("FALSE"),
    )
    medical_certificate_file: Mapped[Optional[str]] = mapped_column(sa.String(500))
    approver_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id")
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True)
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    cancelled_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id")
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True)
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now()
    )

    # Relationships
    employee: Mapped[Employee] = relationship(
        back_populates="leave_requests", foreign_keys=[employee_id]
    )
    approver: Mapped[Optional[Employee]] = relationship(foreign_keys=[approver_id])
    year_splits: Mapped[list[LeaveRequestYearSplit]] = relationship(
        back_populates="leave_request",
        cascade="all, delete-orphan",
        order_by="LeaveRequestYearSplit.year",
        lazy="selectin",
    )


class LeaveRequestYearSplit(Base):
    """Portion of a request's usage charged to one calendar year."""

    __tablename__ = "leave_request_year_splits"
    __table_args__ = (
        sa.UniqueConstraint("leave_request_id", "year", name="uq_leave_split_year"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    leave_request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("leave_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    usage_amount: Mapped[Decimal] = mapped_column(sa.Numeric(6, 2), nullable=False)

    # Relationships
    leave_request: Mapped[LeaveRequest] = relationship(back_populates="year_splits")
