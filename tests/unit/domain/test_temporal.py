# nosec B101


from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from domain.models.dashboard import AllTime, MonthsPeriod, QuarterPeriod, SpecificMonth, YearPeriod
from domain.temporal import (
    START_DATE,
    align_to,
    in_month,
    matches_chart_period,
    matches_period,
    month_bounds,
    month_label,
    months_for,
    ordering_key,
    overlaps_period,
)
from tests.factories import booking


# ============================================================================
# TEST: month windows are half-open
# ============================================================================

def test_first_instant_of_month_is_included():
    assert matches_period(datetime(2025, 3, 1, 0, 0, 0), SpecificMonth(2025, 3))


def test_first_instant_of_next_month_is_excluded():
    assert not matches_period(datetime(2025, 4, 1, 0, 0, 0), SpecificMonth(2025, 3))


def test_last_microsecond_of_month_is_included():
    last = datetime(2025, 4, 1) - timedelta(microseconds=1)

    assert matches_period(last, SpecificMonth(2025, 3))


def test_december_rolls_into_next_year():
    start, end = month_bounds(2025, 12)

    assert start == datetime(2025, 12, 1)
    assert end == datetime(2026, 1, 1)


def test_all_time_matches_anything_including_missing_timestamp():
    assert matches_period(None, AllTime())
    assert matches_period(datetime(1999, 1, 1), AllTime())


def test_missing_timestamp_never_matches_a_month():
    assert not matches_period(None, SpecificMonth(2025, 3))


def test_plain_date_is_promoted_to_midnight():
    assert in_month(date(2025, 3, 31), 2025, 3)
    assert not in_month(date(2025, 4, 1), 2025, 3)


def test_aware_timestamp_uses_its_own_zone():
    eat = timezone(timedelta(hours=3))
    # 2025-04-01 01:00 in Kampala is still March in UTC; the local month decides.
    local = datetime(2025, 4, 1, 1, 0, tzinfo=eat)

    assert matches_period(local, SpecificMonth(2025, 4))
    assert not matches_period(local, SpecificMonth(2025, 3))


# ============================================================================
# TEST: trip overlap
# ============================================================================

def test_trip_spanning_month_boundary_overlaps_both_months():
    start, end = datetime(2025, 3, 28), datetime(2025, 4, 3)

    assert overlaps_period(start, end, SpecificMonth(2025, 3))
    assert overlaps_period(start, end, SpecificMonth(2025, 4))
    assert not overlaps_period(start, end, SpecificMonth(2025, 5))


def test_trip_without_end_is_a_single_day():
    assert overlaps_period(datetime(2025, 3, 31), None, SpecificMonth(2025, 3))
    assert not overlaps_period(datetime(2025, 3, 31), None, SpecificMonth(2025, 4))


def test_trip_ending_exactly_at_next_month_start_touches_next_month():
    assert overlaps_period(datetime(2025, 3, 20), datetime(2025, 4, 1), SpecificMonth(2025, 4))


def test_trip_with_mixed_naive_and_aware_ends():
    aware_end = datetime(2025, 4, 2, 9, 0, tzinfo=UTC)

    assert overlaps_period(date(2025, 3, 30), aware_end, SpecificMonth(2025, 4))
    assert overlaps_period(date(2025, 3, 30), aware_end, SpecificMonth(2025, 3))
    assert not overlaps_period(date(2025, 3, 30), aware_end, SpecificMonth(2025, 5))
    assert overlaps_period(datetime(2025, 5, 3, tzinfo=UTC), datetime(2025, 5, 1), SpecificMonth(2025, 5))


# ============================================================================
# TEST: chart periods
# ============================================================================

def test_year_has_twelve_months():
    assert months_for(YearPeriod(2025)) == tuple(range(1, 13))


@pytest.mark.parametrize('quarter, months', [(1, (1, 2, 3)), (2, (4, 5, 6)), (4, (10, 11, 12))])
def test_quarter_months(quarter, months):
    assert months_for(QuarterPeriod(2025, quarter)) == months


def test_months_period_is_sorted_and_unique():
    assert months_for(MonthsPeriod(2025, (9, 2, 9))) == (2, 9)


def test_invalid_selectors_are_rejected():
    with pytest.raises(ValueError):
        QuarterPeriod(2025, 5)
    with pytest.raises(ValueError):
        MonthsPeriod(2025, (0,))
    with pytest.raises(ValueError):
        SpecificMonth(2025, 13)


def test_matches_chart_period():
    quarter = QuarterPeriod(2025, 2)

    assert matches_chart_period(datetime(2025, 5, 20), quarter)
    assert not matches_chart_period(datetime(2025, 7, 1), quarter)
    assert not matches_chart_period(datetime(2024, 5, 20), quarter)
    assert matches_chart_period(None, None)


def test_month_label():
    assert month_label(1) == 'Jan'
    assert month_label(12) == 'Dec'


# ============================================================================
# TEST: helpers
# ============================================================================

def test_temporal_key_reads_named_field():
    record = booking(start_date=datetime(2025, 1, 2))

    assert START_DATE(record) == datetime(2025, 1, 2)


def test_align_to_matches_naive_and_aware_shapes():
    naive = datetime(2025, 6, 1, 12)
    aware = datetime(2025, 6, 1, 12, tzinfo=UTC)

    assert align_to(aware, naive).tzinfo is None
    assert align_to(naive, aware).tzinfo is UTC
    assert align_to(naive, naive) is naive


def test_ordering_key_sorts_mixed_timestamps():
    values = [
        datetime(2025, 6, 2, 12, 0, tzinfo=UTC),
        date(2025, 6, 3),
        datetime(2025, 6, 1, 8, 0),
        datetime(2025, 6, 2, 14, 0, tzinfo=timezone(timedelta(hours=3))),
    ]

    ordered = sorted(values, key=ordering_key)

    assert ordered == [values[2], values[3], values[0], values[1]]
    assert ordering_key(datetime(2025, 6, 1, 8, 0)).tzinfo is UTC
