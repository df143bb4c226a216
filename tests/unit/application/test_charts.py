# nosec B101


from datetime import UTC, date, datetime
from decimal import Decimal

from application.services.aggregator import Aggregator
from application.services.charts import (
    RankedItem,
    capacity_comparison,
    category_breakdown,
    expense_categories,
    fleet_status_breakdown,
    leaderboard,
    monthly_series,
    outstanding_payments,
    recent_bookings,
    top_vehicles,
)
from domain.categories import ADMIN_COSTS, FIVE_SEATER, FLEET_SUPPLIES, SEVEN_SEATER
from domain.models.dashboard import AllTime, MonthsPeriod, QuarterPeriod, SpecificMonth, YearPeriod
from domain.models.records import BookingStatus, FleetStatus, TransactionType
from tests.factories import NOW, booking, record_set, requisition, transaction, vehicle


def make_aggregator(converter, period=AllTime(), **records):
    return Aggregator(record_set(**records), period, converter, NOW)


# ============================================================================
# TEST: category breakdown
# ============================================================================

def test_category_breakdown_drops_non_positive_and_sorts_descending(converter):
    lines = [
        ('A', Decimal('50')),
        ('B', Decimal('0')),
        ('C', Decimal('-10')),
        ('D', Decimal('30')),
    ]

    result = category_breakdown(lines, converter, 'USD')

    assert [(c.category, c.amount) for c in result] == [('A', Decimal('50.00')), ('D', Decimal('30.00'))]


def test_category_breakdown_groups_before_dropping(converter):
    lines = [('A', Decimal('-10')), ('A', Decimal('25')), ('B', Decimal('5'))]

    result = category_breakdown(lines, converter, 'USD')

    assert [(c.category, c.amount) for c in result] == [('A', Decimal('15.00')), ('B', Decimal('5.00'))]


def test_category_breakdown_ties_keep_first_seen_order(converter):
    lines = [('X', Decimal('10')), ('Y', Decimal('10'))]

    assert [c.category for c in category_breakdown(lines, converter, 'USD')] == ['X', 'Y']


def test_expense_categories_are_normalized_and_period_scoped(converter):
    base = make_aggregator(
        converter,
        requisitions=[
            requisition(total_cost='40', category='Fuel', created_at=datetime(2025, 2, 3)),
            requisition(total_cost='10', category='Vehicle repair', created_at=datetime(2025, 3, 3)),
            requisition(total_cost='500', category='Fuel', created_at=datetime(2025, 4, 3)),
        ],
        ledger=[
            transaction(
                amount='25',
                transaction_type=TransactionType.EXPENSE,
                category='Office rent',
                transaction_date=datetime(2025, 1, 20),
            ),
        ],
    )

    result = expense_categories(base, QuarterPeriod(2025, 1), 'USD')

    assert [(c.category, c.amount) for c in result] == [
        (FLEET_SUPPLIES, Decimal('50.00')),
        (ADMIN_COSTS, Decimal('25.00')),
    ]


# ============================================================================
# TEST: monthly series
# ============================================================================

def test_year_series_has_twelve_buckets(converter):
    base = make_aggregator(
        converter,
        bookings=[
            booking(amount_paid='100', start_date=datetime(2025, 3, 10)),
            booking(amount_paid='50', start_date=datetime(2025, 3, 31, 23, 59)),
            booking(amount_paid='70', start_date=datetime(2024, 3, 10)),
        ],
        requisitions=[requisition(total_cost='30', created_at=datetime(2025, 11, 2))],
    )

    series = monthly_series(base, YearPeriod(2025), 'USD')

    assert [p.label for p in series] == ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
                                         'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']
    assert series[2].revenue == Decimal('150.00')
    assert series[10].expenses == Decimal('30.00')
    assert sum(p.revenue for p in series) == Decimal('150.00')


def test_series_ignores_dashboard_filter_period(converter):
    base = make_aggregator(
        converter,
        period=SpecificMonth(2025, 6),
        bookings=[booking(amount_paid='100', start_date=datetime(2025, 2, 10))],
    )

    series = monthly_series(base, MonthsPeriod(2025, (2, 6)), 'USD')

    assert [(p.month, p.revenue) for p in series] == [(2, Decimal('100.00')), (6, Decimal('0.00'))]


def test_series_in_display_currency(converter):
    base = make_aggregator(converter, bookings=[booking(amount_paid='2', start_date=datetime(2025, 1, 5))])

    series = monthly_series(base, QuarterPeriod(2025, 1), 'KES')

    assert len(series) == 3
    assert series[0].revenue == Decimal('260.00')


# ============================================================================
# TEST: leaderboards
# ============================================================================

def test_leaderboard_groups_sorts_and_truncates(converter):
    items = [
        RankedItem('v1', Decimal('10')),
        RankedItem('v2', Decimal('40')),
        RankedItem('v1', Decimal('35')),
        RankedItem('v3', Decimal('5')),
    ]

    result = leaderboard(items, converter, 'USD', top_n=2, names={'v1': 'UAX 1'})

    assert [(e.entity_id, e.name, e.amount, e.count) for e in result] == [
        ('v1', 'UAX 1', Decimal('45.00'), 2),
        ('v2', 'v2', Decimal('40.00'), 1),
    ]


def test_top_vehicles_ranks_revenue_eligible_bookings(converter):
    van = vehicle(capacity='7 seater', license_plate='UAX 7')
    car = vehicle(capacity='5 seater', license_plate='UBB 5')
    base = make_aggregator(
        converter,
        fleet=[van, car],
        bookings=[
            booking(amount_paid='100', assigned_vehicle_id=car.id),
            booking(amount_paid='80', assigned_vehicle_id=van.id),
            booking(amount_paid='80', assigned_vehicle_id=van.id),
            booking(status=BookingStatus.PENDING, amount_paid='999', assigned_vehicle_id=car.id),
            booking(amount_paid='500'),
            booking(amount_paid='300', assigned_vehicle_id=car.id, start_date=datetime(2024, 6, 1)),
        ],
    )

    result = top_vehicles(base, YearPeriod(2025), 'USD', top_n=10)

    assert [(e.name, e.amount, e.count, e.dimension) for e in result] == [
        ('UAX 7', Decimal('160.00'), 2, SEVEN_SEATER),
        ('UBB 5', Decimal('100.00'), 1, FIVE_SEATER),
    ]


def test_top_vehicles_capacity_filter(converter):
    van = vehicle(capacity='SUV')
    car = vehicle(capacity='sedan')
    base = make_aggregator(
        converter,
        fleet=[van, car],
        bookings=[
            booking(amount_paid='100', assigned_vehicle_id=car.id),
            booking(amount_paid='80', assigned_vehicle_id=van.id),
        ],
    )

    result = top_vehicles(base, YearPeriod(2025), 'USD', top_n=10, capacity_filter=FIVE_SEATER)

    assert [e.entity_id for e in result] == [car.id]


def test_capacity_comparison_averages_over_earning_vehicles(converter):
    vans = [vehicle(capacity='7 seater') for _ in range(3)]
    car = vehicle(capacity='5 seater')
    base = make_aggregator(
        converter,
        fleet=vans + [car],
        bookings=[
            booking(amount_paid='100', assigned_vehicle_id=vans[0].id),
            booking(amount_paid='50', assigned_vehicle_id=vans[0].id),
            booking(amount_paid='30', assigned_vehicle_id=vans[1].id),
        ],
    )

    seven, five = capacity_comparison(base, None, 'USD')

    assert seven.capacity == SEVEN_SEATER
    assert seven.fleet_count == 3
    assert seven.total_revenue == Decimal('180.00')
    assert seven.total_trips == 3
    assert seven.avg_revenue_per_vehicle == Decimal('90.00')
    assert seven.avg_trips_per_vehicle == Decimal('1.5')
    assert [v.entity_id for v in seven.vehicles] == [vans[0].id, vans[1].id]
    assert five.fleet_count == 1
    assert five.total_trips == 0
    assert five.avg_revenue_per_vehicle == Decimal('0')


# ============================================================================
# TEST: fleet status and widgets
# ============================================================================

def test_fleet_status_breakdown_drops_empty_slices(converter):
    base = make_aggregator(converter, fleet=[
        vehicle(status=FleetStatus.AVAILABLE),
        vehicle(status=FleetStatus.RENTED),
        vehicle(status=FleetStatus.BOOKED),
    ])

    result = fleet_status_breakdown(base)

    assert [(s.status, s.count) for s in result] == [('Available', 1), ('Hired', 2)]


def test_outstanding_payments_sorted_by_balance(converter):
    base = make_aggregator(converter, bookings=[
        booking(status=BookingStatus.PENDING, amount_paid='90', total_amount='100', client_name='Small'),
        booking(status=BookingStatus.PENDING, amount_paid='0', total_amount='370000', currency='UGX'),
        booking(status=BookingStatus.COMPLETED, amount_paid='0', total_amount='500'),
    ])

    result = outstanding_payments(base, 'USD')

    assert [(p.client_name, p.balance_due) for p in result] == [
        ('Unknown', Decimal('100.00')),
        ('Small', Decimal('10.00')),
    ]
    assert result[0].original_currency == 'UGX'


def test_recent_bookings_newest_first_limited_to_ten(converter):
    bookings = [booking(created_at=datetime(2025, 1, day)) for day in range(1, 16)]
    base = make_aggregator(converter, bookings=bookings)

    result = recent_bookings(base, 'USD')

    assert len(result) == 10
    assert result[0].created_at == datetime(2025, 1, 15)
    assert result[-1].created_at == datetime(2025, 1, 6)


def test_recent_bookings_orders_mixed_naive_and_aware_timestamps(converter):
    base = make_aggregator(converter, bookings=[
        booking(created_at=datetime(2025, 6, 1, 9, 0)),
        booking(created_at=datetime(2025, 6, 2, 9, 0, tzinfo=UTC)),
        booking(created_at=date(2025, 6, 3)),
    ])

    result = recent_bookings(base, 'USD')

    assert [b.created_at for b in result] == [
        datetime(2025, 6, 3),
        datetime(2025, 6, 2, 9, 0, tzinfo=UTC),
        datetime(2025, 6, 1, 9, 0),
    ]
