"""
Period matching for dashboard and chart filters.

Every month window is half-open: ``[first instant of month, first instant of
next month)``. Month boundaries are evaluated in the timestamp's own tzinfo,
so an aware timestamp is compared against aware bounds in the same zone and
a naive one against naive bounds.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, tzinfo

from domain.models.dashboard import (
    AllTime,
    ChartPeriod,
    DashboardPeriod,
    MonthsPeriod,
    QuarterPeriod,
    SpecificMonth,
    YearPeriod,
)
from domain.models.records import Timestamp

MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def as_datetime(value: Timestamp) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


def ordering_key(value: Timestamp) -> datetime:
    """Aware datetime for sorting mixed timestamps; naive values are read as UTC."""
    ts = as_datetime(value)
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=UTC)


def month_bounds(year: int, month: int, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    start = datetime(year, month, 1, tzinfo=tz)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=tz)
    else:
        end = datetime(year, month + 1, 1, tzinfo=tz)
    return start, end


def in_month(timestamp: Timestamp, year: int, month: int) -> bool:
    ts = as_datetime(timestamp)
    start, end = month_bounds(year, month, ts.tzinfo)
    return start <= ts < end


def matches_period(timestamp: Timestamp | None, period: DashboardPeriod) -> bool:
    if isinstance(period, AllTime):
        return True
    if timestamp is None:
        return False
    return in_month(timestamp, period.year, period.month)


def overlaps_period(start: Timestamp | None, end: Timestamp | None, period: DashboardPeriod) -> bool:
    """Whether the closed interval [start, end] touches the period.

    A missing end collapses the interval to its start.
    """
    if isinstance(period, AllTime):
        return True
    if start is None:
        return False
    first = as_datetime(start)
    last = align_to(as_datetime(end), first) if end is not None else first
    if last < first:
        first, last = last, first
    month_start, month_end = month_bounds(period.year, period.month, first.tzinfo)
    return first < month_end and last >= month_start


def months_for(period: ChartPeriod) -> tuple[int, ...]:
    if isinstance(period, YearPeriod):
        return tuple(range(1, 13))
    if isinstance(period, QuarterPeriod):
        first = (period.quarter - 1) * 3 + 1
        return (first, first + 1, first + 2)
    if isinstance(period, MonthsPeriod):
        return period.months
    raise TypeError(f"Unsupported chart period: {period!r}")


def matches_chart_period(timestamp: Timestamp | None, period: ChartPeriod | None) -> bool:
    if period is None:
        return True
    if timestamp is None:
        return False
    return any(in_month(timestamp, period.year, month) for month in months_for(period))


def month_label(month: int) -> str:
    return MONTH_LABELS[month - 1]


@dataclass(frozen=True)
class TemporalKey:
    """Names the timestamp field a KPI filters on, e.g. ``start_date`` or ``created_at``."""

    field_name: str

    def __call__(self, record) -> Timestamp | None:
        return getattr(record, self.field_name)


START_DATE = TemporalKey("start_date")
CREATED_AT = TemporalKey("created_at")
TRANSACTION_DATE = TemporalKey("transaction_date")

TimestampGetter = Callable[[object], Timestamp | None]


def align_to(moment: datetime, reference: datetime) -> datetime:
    """Return ``moment`` with the same naive/aware shape as ``reference`` so the two compare."""
    if reference.tzinfo is None and moment.tzinfo is not None:
        return moment.replace(tzinfo=None)
    if reference.tzinfo is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=reference.tzinfo)
    return moment
