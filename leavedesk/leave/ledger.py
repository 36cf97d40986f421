"""Balance ledger — per (employee, leave type, year) entitlement bookkeeping.

Every mutation happens on rows locked with ``SELECT ... FOR UPDATE`` inside
the caller's transaction, so the availability check and the decrement of a
reservation cannot interleave with a concurrent request for the same
employee and leave type.  Nothing here commits; ``get_db`` does.

Quota settings are read through :class:`QuotaSettingsCache`, an explicit
object owned by the application (``app.state.quota_cache``) rather than a
module-level singleton, so tests and workers can hold their own instance.
"""

from __future__ import annotations

import logging
import time
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.audit import create_audit_entry
from leavedesk.common.constants import UNTRACKED_LEAVE_TYPES, LeaveType
from leavedesk.common.exceptions import (
    InsufficientBalanceException,
    QuotaNotConfiguredException,
    ValidationException,
    YearAlreadyProcessedException,
)
from leavedesk.config import settings
from leavedesk.core_hr.models import Employee
from leavedesk.leave.duration import ZERO, round_days
from leavedesk.leave.models import LeaveBalance, LeaveQuotaSetting
from leavedesk.leave.schemas import QuotaSettingOut, YearEndItem, YearEndSummary

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
# Quota settings cache
# ═════════════════════════════════════════════════════════════════════


class QuotaSettingsCache:
    """TTL cache of quota settings, keyed by leave type.

    Holds immutable :class:`QuotaSettingOut` snapshots, never ORM rows, so a
    cached value cannot leak between sessions.  ``ttl_seconds=0`` disables
    caching.
    """

    def __init__(self, ttl_seconds: Optional[int] = None) -> None:
        self.ttl_seconds = (
            settings.QUOTA_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        )
        self._snapshots: dict[LeaveType, QuotaSettingOut] = {}
        self._loaded_at: Optional[float] = None

    def _is_fresh(self) -> bool:
        return (
            self._loaded_at is not None
            and time.monotonic() - self._loaded_at < self.ttl_seconds
        )

    def invalidate(self) -> None:
        self._snapshots = {}
        self._loaded_at = None

    async def get_all(self, db: AsyncSession) -> dict[LeaveType, QuotaSettingOut]:
        if not self._is_fresh():
            result = await db.execute(select(LeaveQuotaSetting))
            self._snapshots = {
                row.leave_type: QuotaSettingOut.model_validate(row)
                for row in result.scalars().all()
            }
            self._loaded_at = time.monotonic()
        return self._snapshots

    async def get(
        self, db: AsyncSession, leave_type: LeaveType,
    ) -> Optional[QuotaSettingOut]:
        return (await self.get_all(db)).get(leave_type)

    async def require(self, db: AsyncSession, leave_type: LeaveType) -> QuotaSettingOut:
        quota = await self.get(db, leave_type)
        if quota is None:
            raise QuotaNotConfiguredException(leave_type.value)
        return quota


def uncached_quotas() -> QuotaSettingsCache:
    return QuotaSettingsCache(ttl_seconds=0)


# ═════════════════════════════════════════════════════════════════════
# BalanceLedger
# ═════════════════════════════════════════════════════════════════════


class BalanceLedger:
    """Reserve, refund and roll over leave balances."""

    @staticmethod
    async def is_tracked(
        db: AsyncSession,
        leave_type: LeaveType,
        quotas: QuotaSettingsCache,
    ) -> bool:
        """Whether *leave_type* is checked against and deducted from a balance."""
        if leave_type in UNTRACKED_LEAVE_TYPES:
            return False
        quota = await quotas.require(db, leave_type)
        return quota.is_balance_tracked

    @staticmethod
    def _balance_query(employee_id: uuid.UUID, leave_type: LeaveType, year: int):
        return select(LeaveBalance).where(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type == leave_type,
            LeaveBalance.year == year,
        )

    @staticmethod
    async def get_or_create_balance(
        db: AsyncSession,
        employee_id: uuid.UUID,
        leave_type: LeaveType,
        year: int,
        quotas: QuotaSettingsCache,
        *,
        lock: bool = False,
    ) -> LeaveBalance:
        """Return the balance row, seeding it from the quota default if missing.

        A concurrent insert of the same row loses on the unique constraint;
        the loser re-reads the winner's row.
        """
        query = BalanceLedger._balance_query(employee_id, leave_type, year)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)

        balance = (await db.execute(query)).scalars().first()
        if balance is not None:
            return balance

        quota = await quotas.require(db, leave_type)
        balance = LeaveBalance(
            employee_id=employee_id,
            leave_type=leave_type,
            year=year,
            entitlement=quota.default_days,
            used=ZERO,
            remaining=quota.default_days,
            carry_over=ZERO,
            is_auto_created=True,
        )
        try:
            async with db.begin_nested():
                db.add(balance)
                await db.flush()
        except IntegrityError:
            logger.info(
                "Balance %s/%s/%s created concurrently; re-reading",
                employee_id, leave_type.value, year,
            )
            return (await db.execute(query)).scalars().one()

        logger.info(
            "Seeded %s balance for %s in %s with %s day(s)",
            leave_type.value, employee_id, year, quota.default_days,
        )
        return balance

    @staticmethod
    async def reserve(
        db: AsyncSession,
        employee_id: uuid.UUID,
        leave_type: LeaveType,
        year_splits: dict[int, Decimal],
        total: Decimal,
        balance_year: int,
        quotas: QuotaSettingsCache,
    ) -> list[LeaveBalance]:
        """Charge *year_splits* against the employee's balances.

        Availability is checked once, comparing *total* against the remaining
        days of the *balance_year* row.  On failure nothing is mutated.
        """
        if not await BalanceLedger.is_tracked(db, leave_type, quotas):
            return []

        rows: dict[int, LeaveBalance] = {}
        for year in sorted(set(year_splits) | {balance_year}):
            rows[year] = await BalanceLedger.get_or_create_balance(
                db, employee_id, leave_type, year, quotas, lock=True,
            )

        available = rows[balance_year].remaining
        if available < total:
            logger.warning(
                "Insufficient %s balance for %s in %s: available=%s requested=%s",
                leave_type.value, employee_id, balance_year, available, total,
            )
            raise InsufficientBalanceException(
                leave_type.value, balance_year, available, total,
            )

        for year, amount in sorted(year_splits.items()):
            row = rows[year]
            row.used = round_days(row.used + amount)
            row.remaining = round_days(row.remaining - amount)
        await db.flush()

        logger.info(
            "Reserved %s %s day(s) for %s: %s",
            total, leave_type.value, employee_id,
            {y: str(a) for y, a in year_splits.items()},
        )
        return [rows[y] for y in sorted(year_splits)]

    @staticmethod
    async def refund(
        db: AsyncSession,
        employee_id: uuid.UUID,
        leave_type: LeaveType,
        year_splits: dict[int, Decimal],
        quotas: QuotaSettingsCache,
        *,
        fallback_year: int,
        fallback_amount: Decimal,
    ) -> list[LeaveBalance]:
        """Return days charged by :meth:`reserve`, year by year.

        Requests recorded before year splits existed have none; their whole
        amount goes back to *fallback_year* (the year the request starts in).
        """
        if not await BalanceLedger.is_tracked(db, leave_type, quotas):
            return []

        if not year_splits:
            logger.warning(
                "No year splits for %s %s refund of %s; crediting %s",
                employee_id, leave_type.value, fallback_amount, fallback_year,
            )
            year_splits = {fallback_year: fallback_amount}

        rows: list[LeaveBalance] = []
        for year, amount in sorted(year_splits.items()):
            row = await BalanceLedger.get_or_create_balance(
                db, employee_id, leave_type, year, quotas, lock=True,
            )
            row.used = round_days(row.used - amount)
            row.remaining = round_days(row.remaining + amount)
            rows.append(row)
        await db.flush()

        logger.info(
            "Refunded %s day(s) of %s to %s: %s",
            sum(year_splits.values(), ZERO), leave_type.value, employee_id,
            {y: str(a) for y, a in year_splits.items()},
        )
        return rows

    # ── Year-end rollover ───────────────────────────────────────────

    @staticmethod
    async def _is_processed(db: AsyncSession, to_year: int) -> bool:
        result = await db.execute(
            select(LeaveBalance.id)
            .where(
                LeaveBalance.year == to_year,
                LeaveBalance.is_auto_created.is_(False),
            )
            .limit(1)
        )
        return result.scalar() is not None

    @staticmethod
    async def _plan_rollover(
        db: AsyncSession,
        from_year: int,
        to_year: int,
        quotas: QuotaSettingsCache,
        *,
        lock: bool,
    ) -> tuple[list[YearEndItem], dict[tuple[uuid.UUID, LeaveType], LeaveBalance], int]:
        if to_year <= from_year:
            raise ValidationException({"to_year": ["to_year must be after from_year."]})

        all_quotas = await quotas.get_all(db)
        tracked = [
            q for lt, q in sorted(all_quotas.items(), key=lambda kv: kv[0].value)
            if q.is_balance_tracked and lt not in UNTRACKED_LEAVE_TYPES
        ]

        employees = (
            await db.execute(
                select(Employee)
                .where(Employee.is_active.is_(True))
                .order_by(Employee.employee_code)
            )
        ).scalars().all()

        prior = {
            (b.employee_id, b.leave_type): b.remaining
            for b in (
                await db.execute(select(LeaveBalance).where(LeaveBalance.year == from_year))
            ).scalars().all()
        }

        target_query = select(LeaveBalance).where(LeaveBalance.year == to_year)
        if lock:
            target_query = target_query.with_for_update().execution_options(
                populate_existing=True
            )
        existing = {
            (b.employee_id, b.leave_type): b
            for b in (await db.execute(target_query)).scalars().all()
        }

        items: list[YearEndItem] = []
        for emp in employees:
            tenure_years = to_year - emp.start_date.year
            for quota in tracked:
                if tenure_years < quota.min_tenure_years:
                    continue
                previous = prior.get((emp.id, quota.leave_type), ZERO)
                if quota.allow_carry_over:
                    carry = max(min(previous, quota.max_carry_over_days), ZERO)
                else:
                    carry = ZERO
                current = existing.get((emp.id, quota.leave_type))
                used = current.used if current is not None else ZERO
                entitlement = quota.default_days
                items.append(
                    YearEndItem(
                        employee_id=emp.id,
                        employee_code=emp.employee_code,
                        leave_type=quota.leave_type,
                        previous_remaining=previous,
                        carry_over=round_days(carry),
                        entitlement=entitlement,
                        used=used,
                        remaining=round_days(entitlement + carry - used),
                    )
                )
        return items, existing, len(employees)

    @staticmethod
    async def preview_rollover(
        db: AsyncSession,
        from_year: int,
        to_year: int,
        quotas: QuotaSettingsCache,
    ) -> YearEndSummary:
        """What :meth:`rollover` would write, without writing it."""
        items, _, employee_count = await BalanceLedger._plan_rollover(
            db, from_year, to_year, quotas, lock=False,
        )
        return YearEndSummary(
            from_year=from_year,
            to_year=to_year,
            already_processed=await BalanceLedger._is_processed(db, to_year),
            employees=employee_count,
            items=items,
        )

    @staticmethod
    async def rollover(
        db: AsyncSession,
        from_year: int,
        to_year: int,
        quotas: QuotaSettingsCache,
        *,
        force_overwrite: bool = False,
        actor_id: Optional[uuid.UUID] = None,
    ) -> YearEndSummary:
        """Produce *to_year* balances from *from_year* remainders.

        Runs in the caller's transaction: either every balance is written or,
        on any error, none is.  Lazily seeded rows are overwritten; rows from
        an earlier rollover are only overwritten with *force_overwrite*.
        Days already used in *to_year* are kept.
        """
        if await BalanceLedger._is_processed(db, to_year) and not force_overwrite:
            raise YearAlreadyProcessedException(to_year)

        items, existing, employee_count = await BalanceLedger._plan_rollover(
            db, from_year, to_year, quotas, lock=True,
        )

        for item in items:
            row = existing.get((item.employee_id, item.leave_type))
            if row is None:
                row = LeaveBalance(
                    employee_id=item.employee_id,
                    leave_type=item.leave_type,
                    year=to_year,
                )
                db.add(row)
            row.entitlement = item.entitlement
            row.carry_over = item.carry_over
            row.used = item.used
            row.remaining = item.remaining
            row.is_auto_created = False
        await db.flush()

        await create_audit_entry(
            db,
            action="year_end_rollover",
            entity_type="leave_balance",
            actor_id=actor_id,
            new_values={
                "from_year": from_year,
                "to_year": to_year,
                "force_overwrite": force_overwrite,
                "balances_written": len(items),
                "employees": employee_count,
            },
        )
        logger.info(
            "Year-end rollover %s -> %s wrote %d balance(s) for %d employee(s)",
            from_year, to_year, len(items), employee_count,
        )
        return YearEndSummary(
            from_year=from_year,
            to_year=to_year,
            already_processed=True,
            employees=employee_count,
            items=items,
        )
