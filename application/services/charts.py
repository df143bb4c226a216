from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from application.services.aggregator import ZERO, Aggregator, fold, month_aggregator
from domain.categories import FIVE_SEATER, SEVEN_SEATER, normalize_capacity
from domain.currency import CurrencyConverter
from domain.eligibility import balance_due, is_available, is_in_maintenance, is_in_use, is_revenue_eligible
from domain.models.dashboard import (
    CapacityStats,
    CategoryAmount,
    ChartPeriod,
    LeaderboardEntry,
    MonthlyPoint,
    OutstandingPayment,
    RecentBooking,
    StatusCount,
)
from domain.models.records import BookingRecord
from domain.temporal import START_DATE, as_datetime, matches_chart_period, month_label, months_for, ordering_key

TRIPS_QUANTUM = Decimal("0.1")
RECENT_BOOKINGS_LIMIT = 10


@dataclass(frozen=True)
class RankedItem:
    """One contribution to a leaderboard, amount already in base currency."""

    entity_id: str
    amount: Decimal
    dimension: str | None = None


def monthly_series(base: Aggregator, period: ChartPeriod, display_currency: str) -> tuple[MonthlyPoint, ...]:
    points = []
    for month in months_for(period):
        bucket = month_aggregator(base, period.year, month)
        points.append(MonthlyPoint(
            year=period.year,
            month=month,
            label=month_label(month),
            revenue=base.converter.display(bucket.total_revenue(), display_currency),
            expenses=base.converter.display(bucket.total_expenses(), display_currency),
        ))
    return tuple(points)


def category_breakdown(
    lines: Iterable[tuple[str, Decimal]],
    converter: CurrencyConverter,
    display_currency: str,
) -> tuple[CategoryAmount, ...]:
    """Group base amounts by category, convert, drop non-positive totals, largest first.

    Ties keep the order in which categories first appeared.
    """
    totals: dict[str, Decimal] = {}
    for category, amount in lines:
        totals[category] = totals.get(category, ZERO) + amount

    converted = [
        CategoryAmount(category, converter.display(amount, display_currency))
        for category, amount in totals.items()
    ]
    positive = [item for item in converted if item.amount > 0]
    return tuple(sorted(positive, key=lambda item: item.amount, reverse=True))


def expense_categories(base: Aggregator, period: ChartPeriod, display_currency: str) -> tuple[CategoryAmount, ...]:
    lines: list[tuple[str, Decimal]] = []
    for month in months_for(period):
        lines.extend(month_aggregator(base, period.year, month).expense_lines())
    return category_breakdown(lines, base.converter, display_currency)


def leaderboard(
    items: Iterable[RankedItem],
    converter: CurrencyConverter,
    display_currency: str,
    top_n: int,
    names: dict[str, str] | None = None,
    dimension: str | None = None,
) -> tuple[LeaderboardEntry, ...]:
    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    dimensions: dict[str, str | None] = {}
    for item in items:
        totals[item.entity_id] = totals.get(item.entity_id, ZERO) + item.amount
        counts[item.entity_id] = counts.get(item.entity_id, 0) + 1
        dimensions[item.entity_id] = item.dimension

    names = names or {}
    entries = [
        LeaderboardEntry(
            entity_id=entity_id,
            name=names.get(entity_id, entity_id[:8]),
            amount=converter.display(total, display_currency),
            count=counts[entity_id],
            dimension=dimensions[entity_id],
        )
        for entity_id, total in totals.items()
        if dimension is None or dimensions[entity_id] == dimension
    ]
    entries.sort(key=lambda entry: entry.amount, reverse=True)
    return tuple(entries[:max(top_n, 0)])


def _vehicle_revenue_items(base: Aggregator, period: ChartPeriod | None) -> list[RankedItem]:
    vehicles = base.record_set.vehicles_by_id
    items: list[RankedItem] = []

    def collect(booking: BookingRecord) -> Decimal:
        amount = base.converter.to_base(booking.amount_paid or ZERO, booking.currency)
        vehicle = vehicles.get(booking.assigned_vehicle_id)
        capacity = normalize_capacity(vehicle.capacity if vehicle else None)
        items.append(RankedItem(booking.assigned_vehicle_id, amount, capacity))
        return amount

    fold(
        base.record_set.bookings,
        label="vehicle_revenue",
        eligible=lambda b: bool(b.assigned_vehicle_id) and is_revenue_eligible(b),
        key=START_DATE,
        within=None if period is None else (lambda ts: matches_chart_period(ts, period)),
        amount=collect,
    )
    return items


def _vehicle_names(base: Aggregator) -> dict[str, str]:
    return {vehicle_id: vehicle.display_name for vehicle_id, vehicle in base.record_set.vehicles_by_id.items()}


def top_vehicles(
    base: Aggregator,
    period: ChartPeriod,
    display_currency: str,
    top_n: int,
    capacity_filter: str | None = None,
) -> tuple[LeaderboardEntry, ...]:
    return leaderboard(
        _vehicle_revenue_items(base, period),
        base.converter,
        display_currency,
        top_n,
        names=_vehicle_names(base),
        dimension=capacity_filter,
    )


def capacity_comparison(
    base: Aggregator,
    period: ChartPeriod | None,
    display_currency: str,
) -> tuple[CapacityStats, ...]:
    items = _vehicle_revenue_items(base, period)
    names = _vehicle_names(base)
    stats = []
    for capacity in (SEVEN_SEATER, FIVE_SEATER):
        class_items = [item for item in items if item.dimension == capacity]
        vehicles = leaderboard(class_items, base.converter, display_currency, len(class_items), names=names)
        revenue_in_base = sum((item.amount for item in class_items), ZERO)
        trips = len(class_items)
        earning = len(vehicles)
        fleet_count = sum(1 for v in base.record_set.fleet if normalize_capacity(v.capacity) == capacity)
        stats.append(CapacityStats(
            capacity=capacity,
            fleet_count=fleet_count,
            total_revenue=base.converter.display(revenue_in_base, display_currency),
            total_trips=trips,
            avg_revenue_per_vehicle=(
                base.converter.display(revenue_in_base / earning, display_currency) if earning else ZERO
            ),
            avg_trips_per_vehicle=(
                (Decimal(trips) / earning).quantize(TRIPS_QUANTUM, rounding=ROUND_HALF_UP) if earning else ZERO
            ),
            vehicles=vehicles,
        ))
    return tuple(stats)


def fleet_status_breakdown(base: Aggregator) -> tuple[StatusCount, ...]:
    fleet = base.record_set.fleet
    counts = (
        StatusCount("Available", sum(1 for v in fleet if is_available(v))),
        StatusCount("Hired", sum(1 for v in fleet if is_in_use(v))),
        StatusCount("Maintenance", sum(1 for v in fleet if is_in_maintenance(v))),
    )
    return tuple(item for item in counts if item.count > 0)


def _client(booking: BookingRecord) -> str:
    return booking.client_name or "Unknown"


def _display_amount(base: Aggregator, amount: Decimal | None, currency: str, display_currency: str) -> Decimal:
    return base.converter.display(base.converter.to_base(amount or ZERO, currency), display_currency)


def outstanding_payments(base: Aggregator, display_currency: str) -> tuple[OutstandingPayment, ...]:
    rows = [
        OutstandingPayment(
            booking_id=b.id,
            reference=b.reference,
            client_name=_client(b),
            balance_due=_display_amount(base, balance_due(b), b.currency, display_currency),
            total_amount=_display_amount(base, b.total_amount, b.currency, display_currency),
            amount_paid=_display_amount(base, b.amount_paid, b.currency, display_currency),
            start_date=as_datetime(b.start_date) if b.start_date is not None else None,
            end_date=as_datetime(b.end_date) if b.end_date is not None else None,
            original_currency=b.currency,
        )
        for b in base.outstanding_bookings()
    ]
    rows.sort(key=lambda row: row.balance_due, reverse=True)
    return tuple(rows)


def recent_bookings(
    base: Aggregator,
    display_currency: str,
    limit: int = RECENT_BOOKINGS_LIMIT,
) -> tuple[RecentBooking, ...]:
    dated = [b for b in base.record_set.bookings if b.created_at is not None]
    dated.sort(key=lambda b: ordering_key(b.created_at), reverse=True)
    return tuple(
        RecentBooking(
            booking_id=b.id,
            reference=b.reference,
            status=b.status.value,
            amount=_display_amount(base, b.total_amount, b.currency, display_currency),
            client_name=_client(b),
            start_date=as_datetime(b.start_date) if b.start_date is not None else None,
            end_date=as_datetime(b.end_date) if b.end_date is not None else None,
            created_at=as_datetime(b.created_at),
            assigned_vehicle_id=b.assigned_vehicle_id,
        )
        for b in dated[:limit]
    )
