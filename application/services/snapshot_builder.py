import logging
from datetime import UTC, datetime

from application.services import charts
from application.services.aggregator import Aggregator
from domain.currency import CurrencyConverter
from domain.models.dashboard import ChartSelection, DashboardFilter, DashboardSnapshot
from domain.models.record_set import RecordSet

logger = logging.getLogger(__name__)


def default_charts(now: datetime, top_n: int = 10) -> ChartSelection:
    return ChartSelection.for_year(now.year, top_n=top_n)


def build_snapshot(
    record_set: RecordSet,
    dashboard_filter: DashboardFilter,
    chart_selection: ChartSelection | None = None,
    now: datetime | None = None,
    include_completed_outstanding: bool = False,
) -> DashboardSnapshot:
    """Compute every KPI, chart and widget for one filter from one RecordSet.

    Pure and synchronous: the same inputs always produce the same snapshot,
    apart from ``computed_at``.
    """
    now = now or datetime.now(UTC)
    chart_selection = chart_selection or default_charts(now)
    currency = dashboard_filter.display_currency

    converter = CurrencyConverter(record_set.rates)
    aggregator = Aggregator(
        record_set,
        dashboard_filter.period,
        converter,
        now,
        include_completed_outstanding=include_completed_outstanding,
    )

    snapshot = DashboardSnapshot(
        filter=dashboard_filter,
        charts=chart_selection,
        currency=currency,
        kpis=aggregator.kpis(currency),
        monthly_series=charts.monthly_series(aggregator, chart_selection.series_period, currency),
        expense_categories=charts.expense_categories(aggregator, chart_selection.category_period, currency),
        fleet_status=charts.fleet_status_breakdown(aggregator),
        top_vehicles=charts.top_vehicles(
            aggregator,
            chart_selection.leaderboard_period,
            currency,
            chart_selection.top_n,
            chart_selection.capacity_filter,
        ),
        capacity_comparison=charts.capacity_comparison(aggregator, chart_selection.comparison_period, currency),
        outstanding_payments=charts.outstanding_payments(aggregator, currency),
        recent_bookings=charts.recent_bookings(aggregator, currency),
        rates_refreshed_at=record_set.rates.refreshed_at,
        degraded_currencies=converter.degraded_currencies,
        record_set_version=record_set.version,
        computed_at=now,
    )

    if snapshot.degraded_currencies:
        logger.warning(
            f"Snapshot v{record_set.version} in {currency} used fallback rates for "
            f"{', '.join(sorted(snapshot.degraded_currencies))}"
        )
    logger.debug(f"Built snapshot v{record_set.version} for {dashboard_filter}")
    return snapshot
