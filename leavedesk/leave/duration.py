"""Leave duration and year-split calculators.

Pure functions: every calendar fact (holidays, working Saturdays, the length
of a working day) is passed in by the caller, so the same inputs always give
the same result and the functions can be used from a preview endpoint, the
request-creation path and tests alike.

Per-day contribution rule, shared by the total and the per-year split:

    holiday                 -> 0
    Sunday                  -> 0
    Saturday                -> 0, unless it is a working Saturday, then
                               work_hours / work_hours_per_day
    Monday..Friday          -> 1

All results are rounded to 2 decimal places with ROUND_HALF_UP.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Protocol

from leavedesk.common.constants import HALF_DAY_SLOTS, TIME_FORMAT, TimeSlot
from leavedesk.config import settings

TWO_PLACES = Decimal("0.01")
HALF = Decimal("0.5")
ZERO = Decimal("0")

_SATURDAY = 5
_SUNDAY = 6


class SaturdayShift(Protocol):
    date: date
    work_hours: Decimal


def round_days(value: Decimal) -> Decimal:
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def parse_time(value: str) -> time:
    return datetime.strptime(value, TIME_FORMAT).time()


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every calendar date from *start* to *end* inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def _saturday_hours(working_saturdays: Iterable[SaturdayShift]) -> dict[date, Decimal]:
    return {ws.date: Decimal(ws.work_hours) for ws in working_saturdays}


def day_contribution(
    day: date,
    holidays: set[date] | frozenset[date],
    saturday_hours: dict[date, Decimal],
    work_hours_per_day: Decimal,
) -> Decimal:
    """Fraction of a working day that *day* represents (unrounded)."""
    if day in holidays:
        return ZERO
    weekday = day.weekday()
    if weekday == _SUNDAY:
        return ZERO
    if weekday == _SATURDAY:
        hours = saturday_hours.get(day)
        if not hours:
            return ZERO
        return Decimal(hours) / Decimal(work_hours_per_day)
    return Decimal(1)


# ── Hourly leave ────────────────────────────────────────────────────


def _minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def hourly_net_minutes(
    start_time: time,
    end_time: time,
    lunch_start: Optional[time] = None,
    lunch_end: Optional[time] = None,
) -> int:
    """Minutes between *start_time* and *end_time* minus any lunch overlap."""
    lunch_start = lunch_start or parse_time(settings.LUNCH_START)
    lunch_end = lunch_end or parse_time(settings.LUNCH_END)

    start_m, end_m = _minutes(start_time), _minutes(end_time)
    overlap = max(0, min(end_m, _minutes(lunch_end)) - max(start_m, _minutes(lunch_start)))
    return max(0, end_m - start_m - overlap)


def calculate_hourly_duration(
    start_time: time,
    end_time: time,
    work_hours_per_day: Decimal,
    lunch_start: Optional[time] = None,
    lunch_end: Optional[time] = None,
) -> Decimal:
    """Hourly leave expressed in days: net hours / working-day length."""
    net_minutes = hourly_net_minutes(start_time, end_time, lunch_start, lunch_end)
    hours = Decimal(net_minutes) / Decimal(60)
    return round_days(hours / Decimal(work_hours_per_day))


def validate_time_range(
    start_time: time,
    end_time: time,
    min_minutes: Optional[int] = None,
) -> Optional[str]:
    """Return an error message for an unusable hourly range, else None."""
    if min_minutes is None:
        min_minutes = settings.MIN_HOURLY_LEAVE_MINUTES
    span = _minutes(end_time) - _minutes(start_time)
    if span <= 0:
        return "End time must be after start time."
    if span < min_minutes:
        return f"Hourly leave must be at least {min_minutes} minutes."
    return None


# ── Day totals ──────────────────────────────────────────────────────


def _require_hourly_times(start_time: Optional[time], end_time: Optional[time]) -> None:
    if start_time is None or end_time is None:
        raise ValueError("Hourly leave needs both start_time and end_time.")


def calculate_leave_days(
    start: date,
    end: date,
    time_slot: TimeSlot,
    holidays: set[date] | frozenset[date],
    working_saturdays: Iterable[SaturdayShift],
    work_hours_per_day: Decimal,
    *,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
    lunch_start: Optional[time] = None,
    lunch_end: Optional[time] = None,
) -> Decimal:
    """Total leave days charged for ``[start, end]``.

    Half-day slots halve the total only when the range is a single date; a
    multi-date range with a half-day slot is charged in full.  An all-off
    range returns 0 and it is up to the caller to reject it.
    """
    if end < start:
        raise ValueError("end date is before start date")

    if time_slot == TimeSlot.hourly:
        _require_hourly_times(start_time, end_time)
        return calculate_hourly_duration(
            start_time, end_time, work_hours_per_day, lunch_start, lunch_end,
        )

    saturday_hours = _saturday_hours(working_saturdays)
    total = ZERO
    for day in iter_dates(start, end):
        total += day_contribution(day, holidays, saturday_hours, work_hours_per_day)

    if time_slot in HALF_DAY_SLOTS and start == end:
        total *= HALF

    return round_days(total)


def split_leave_by_year(
    start: date,
    end: date,
    time_slot: TimeSlot,
    holidays: set[date] | frozenset[date],
    working_saturdays: Iterable[SaturdayShift],
    work_hours_per_day: Decimal,
    *,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
    lunch_start: Optional[time] = None,
    lunch_end: Optional[time] = None,
) -> dict[int, Decimal]:
    """Per-calendar-year breakdown of :func:`calculate_leave_days`.

    Each bucket is rounded on its own; years that contribute nothing are
    left out.  Use :func:`reconcile_year_splits` to make the buckets add up
    exactly to a recorded total.
    """
    if end < start:
        raise ValueError("end date is before start date")

    if time_slot == TimeSlot.hourly:
        _require_hourly_times(start_time, end_time)
        amount = calculate_hourly_duration(
            start_time, end_time, work_hours_per_day, lunch_start, lunch_end,
        )
        return {start.year: amount} if amount > 0 else {}

    saturday_hours = _saturday_hours(working_saturdays)
    buckets: dict[int, Decimal] = {}
    for day in iter_dates(start, end):
        contribution = day_contribution(day, holidays, saturday_hours, work_hours_per_day)
        if contribution:
            buckets[day.year] = buckets.get(day.year, ZERO) + contribution

    if time_slot in HALF_DAY_SLOTS and start == end:
        buckets = {year: amount * HALF for year, amount in buckets.items()}

    return {year: round_days(amount) for year, amount in sorted(buckets.items())}


def reconcile_year_splits(total: Decimal, splits: dict[int, Decimal]) -> dict[int, Decimal]:
    """Adjust the last year's bucket so the splits sum exactly to *total*.

    Independent rounding can leave the buckets a cent or so away from the
    rounded total; the difference goes to the latest year.
    """
    if not splits:
        return {}
    reconciled = dict(sorted(splits.items()))
    diff = round_days(total) - sum(reconciled.values(), ZERO)
    if diff:
        last_year = next(reversed(reconciled))
        reconciled[last_year] = round_days(reconciled[last_year] + diff)
    return reconciled


def format_leave_days(days: Decimal, work_hours_per_day: Decimal) -> str:
    """Human-readable duration, e.g. ``Decimal("2.4")`` -> ``"2 days 3 hrs"``."""
    days = Decimal(days)
    if days <= 0:
        return "0 days"

    whole_days = int(days)
    hours = (days - whole_days) * Decimal(work_hours_per_day)
    whole_hours = int(hours)
    minutes = int(((hours - whole_hours) * 60).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    if minutes == 60:
        whole_hours += 1
        minutes = 0

    parts: list[str] = []
    if whole_days:
        parts.append(f"{whole_days} day" if whole_days == 1 else f"{whole_days} days")
    if whole_hours:
        parts.append(f"{whole_hours} hr" if whole_hours == 1 else f"{whole_hours} hrs")
    if minutes:
        parts.append(f"{minutes} min")
    return " ".join(parts) if parts else "0 days"
