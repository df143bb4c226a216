from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from domain.models.currency import BASE_CURRENCY


# ---------------------------------------------------------------------------
# Dashboard period: the global filter's window
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AllTime:
    pass


@dataclass(frozen=True)
class SpecificMonth:
    year: int
    month: int  # 1..12

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month}")


DashboardPeriod = AllTime | SpecificMonth


@dataclass(frozen=True)
class DashboardFilter:
    period: DashboardPeriod = field(default_factory=AllTime)
    display_currency: str = BASE_CURRENCY


# ---------------------------------------------------------------------------
# Chart periods: each chart's own selector, independent of DashboardFilter
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class YearPeriod:
    year: int


@dataclass(frozen=True)
class QuarterPeriod:
    year: int
    quarter: int  # 1..4

    def __post_init__(self):
        if not 1 <= self.quarter <= 4:
            raise ValueError(f"quarter must be in 1..4, got {self.quarter}")


@dataclass(frozen=True)
class MonthsPeriod:
    year: int
    months: tuple[int, ...]

    def __post_init__(self):
        months = tuple(sorted(set(self.months)))
        if any(not 1 <= m <= 12 for m in months):
            raise ValueError(f"months must be in 1..12, got {self.months}")
        object.__setattr__(self, "months", months)


ChartPeriod = YearPeriod | QuarterPeriod | MonthsPeriod


@dataclass(frozen=True)
class ChartSelection:
    series_period: ChartPeriod
    category_period: ChartPeriod
    leaderboard_period: ChartPeriod
    comparison_period: ChartPeriod | None = None  # None: all time
    capacity_filter: str | None = None  # "7 Seater" / "5 Seater"
    top_n: int = 10

    @classmethod
    def for_year(cls, year: int, **overrides) -> "ChartSelection":
        period = YearPeriod(year)
        values = {
            "series_period": period,
            "category_period": period,
            "leaderboard_period": period,
        }
        values.update(overrides)
        return cls(**values)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KPIResult:
    value: Decimal
    currency: str


@dataclass(frozen=True)
class DashboardKPIs:
    total_revenue: KPIResult
    revenue_mtd: KPIResult
    revenue_ytd: KPIResult
    booking_revenue: KPIResult
    ledger_income: KPIResult
    ancillary_margin: KPIResult
    total_expenses: KPIResult
    outstanding_total: KPIResult
    outstanding_count: int
    avg_booking_value: KPIResult
    active_bookings: int
    confirmed_bookings: int
    pending_bookings: int
    completed_bookings: int
    cancelled_bookings: int
    in_progress_bookings: int
    total_bookings: int
    fleet_utilization: int
    vehicles_in_use: int
    vehicles_available: int
    vehicles_maintenance: int
    total_fleet: int


@dataclass(frozen=True)
class MonthlyPoint:
    year: int
    month: int
    label: str
    revenue: Decimal
    expenses: Decimal


@dataclass(frozen=True)
class CategoryAmount:
    category: str
    amount: Decimal


@dataclass(frozen=True)
class LeaderboardEntry:
    entity_id: str
    name: str
    amount: Decimal
    count: int
    dimension: str | None = None


@dataclass(frozen=True)
class StatusCount:
    status: str
    count: int


@dataclass(frozen=True)
class CapacityStats:
    capacity: str
    fleet_count: int
    total_revenue: Decimal
    total_trips: int
    avg_revenue_per_vehicle: Decimal
    avg_trips_per_vehicle: Decimal
    vehicles: tuple[LeaderboardEntry, ...] = ()


@dataclass(frozen=True)
class OutstandingPayment:
    booking_id: str
    reference: str | None
    client_name: str
    balance_due: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    start_date: datetime | None
    end_date: datetime | None
    original_currency: str


@dataclass(frozen=True)
class RecentBooking:
    booking_id: str
    reference: str | None
    status: str
    amount: Decimal
    client_name: str
    start_date: datetime | None
    end_date: datetime | None
    created_at: datetime | None
    assigned_vehicle_id: str | None


@dataclass(frozen=True)
class DashboardSnapshot:
    filter: DashboardFilter
    charts: ChartSelection
    currency: str
    kpis: DashboardKPIs
    monthly_series: tuple[MonthlyPoint, ...]
    expense_categories: tuple[CategoryAmount, ...]
    fleet_status: tuple[StatusCount, ...]
    top_vehicles: tuple[LeaderboardEntry, ...]
    capacity_comparison: tuple[CapacityStats, ...]
    outstanding_payments: tuple[OutstandingPayment, ...]
    recent_bookings: tuple[RecentBooking, ...]
    rates_refreshed_at: datetime | None
    degraded_currencies: frozenset[str]
    record_set_version: int
    computed_at: datetime


@dataclass(frozen=True)
class SnapshotUpdate:
    """Payload delivered to snapshot listeners; exactly one of snapshot/error is set."""

    filter: DashboardFilter
    charts: ChartSelection
    snapshot: DashboardSnapshot | None = None
    error: Exception | None = None
