"""Bimonthly pay period calendar (11th-25th, 26th-10th).

Period boundaries, by day of month ``d``:

- ``11 <= d <= 25``: period A, the 11th through the 25th of the same month
- ``d >= 26``: period B, the 26th through the 10th of the following month
- ``d <= 10``: period B that began on the 26th of the previous month

All functions are pure and accept ``date`` or ``datetime`` values; a
datetime is attributed to its calendar date, so 23:59 on the 10th still
belongs to the B period and 00:00 on the 11th starts the A period.
Timezone-aware datetimes are converted to local time first; naive ones are
taken as local time already.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from p4p_engine.calculators.types import PayPeriod, PayPeriodSummary, PeriodType

ONE_DAY = timedelta(days=1)


def _local(value: datetime) -> datetime:
    """Naive local wall-clock time for ``value``."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return _local(value).date()
    return value


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by ``delta`` months, rolling the year over."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _a_period(year: int, month: int) -> PayPeriod:
    return PayPeriod(
        start=date(year, month, 11),
        end=date(year, month, 25),
        period_type=PeriodType.A,
    )


def _b_period(year: int, month: int) -> PayPeriod:
    """B period starting on the 26th of (year, month)."""
    end_year, end_month = _shift_month(year, month, 1)
    return PayPeriod(
        start=date(year, month, 26),
        end=date(end_year, end_month, 10),
        period_type=PeriodType.B,
    )


def period_containing(day: date | datetime) -> PayPeriod:
    """Get the pay period a date belongs to."""
    day = _as_date(day)

    if 11 <= day.day <= 25:
        return _a_period(day.year, day.month)
    if day.day >= 26:
        return _b_period(day.year, day.month)

    # Days 1-10 close out the B period that began last month
    prev_year, prev_month = _shift_month(day.year, day.month, -1)
    return _b_period(prev_year, prev_month)


def next_period(period: PayPeriod) -> PayPeriod:
    """Get the pay period immediately after ``period``."""
    return period_containing(period.end + ONE_DAY)


def previous_period(period: PayPeriod) -> PayPeriod:
    """Get the pay period immediately before ``period``."""
    return period_containing(period.start - ONE_DAY)


def periods_for_year(year: int) -> list[PayPeriod]:
    """Get the 24 pay periods starting in ``year``, in order.

    The last one (December 26 - January 10) ends in the following year.
    """
    periods: list[PayPeriod] = []
    for month in range(1, 13):
        periods.append(_a_period(year, month))
        periods.append(_b_period(year, month))
    return periods


def working_days_between(start: date | datetime, end: date | datetime) -> int:
    """Count Monday-Friday days in ``[start, end]`` inclusive."""
    start = _as_date(start)
    end = _as_date(end)
    if end < start:
        return 0

    total_days = (end - start).days + 1
    full_weeks, remainder = divmod(total_days, 7)
    working_days = full_weeks * 5

    for offset in range(remainder):
        if (start + timedelta(days=offset)).weekday() < 5:
            working_days += 1
    return working_days


def working_days_in(period: PayPeriod) -> int:
    """Count Monday-Friday days in a pay period."""
    return working_days_between(period.start, period.end)


def period_progress(period: PayPeriod, now: date | datetime) -> float:
    """Percent of the period elapsed at ``now``, clamped to [0, 100].

    The period runs from midnight on ``start`` to the end of ``end``. A plain
    date is treated as midnight at the start of that day.
    """
    if isinstance(now, datetime):
        now = _local(now)
    else:
        now = datetime.combine(now, time.min)

    period_start = datetime.combine(period.start, time.min)
    period_end = datetime.combine(period.end + ONE_DAY, time.min)

    total = (period_end - period_start).total_seconds()
    elapsed = (now - period_start).total_seconds()
    return min(100.0, max(0.0, elapsed / total * 100))


def summarize_period(
    now: date | datetime, period: PayPeriod | None = None
) -> PayPeriodSummary:
    """Dashboard summary of ``period`` (default: the one containing ``now``)."""
    if period is None:
        period = period_containing(now)
    working_days_total = working_days_in(period)
    working_days_elapsed = working_days_between(
        period.start, min(_as_date(now), period.end)
    )

    return PayPeriodSummary(
        period=period,
        progress_percent=round(period_progress(period, now), 2),
        working_days_total=working_days_total,
        working_days_remaining=max(0, working_days_total - working_days_elapsed),
        is_current_period=period.contains(now),
    )


def format_period(period: PayPeriod) -> str:
    """Short display form, e.g. 'Mar 11 - Mar 25 (11-25)'."""
    start = f"{period.start:%b} {period.start.day}"
    end = f"{period.end:%b} {period.end.day}"
    return f"{start} - {end} ({period.period_type.value})"
