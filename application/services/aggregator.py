import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from decimal import Decimal
from functools import cached_property

from domain.categories import normalize_expense_category
from domain.currency import CurrencyConverter, round_half_up
from domain.eligibility import (
    balance_due,
    contributes_revenue,
    has_status,
    is_available,
    is_in_maintenance,
    is_in_use,
    is_ledger_expense,
    is_ledger_income,
    is_outstanding,
    is_period_active,
    is_snapshot_active,
    is_valid_expense,
)
from domain.exceptions.dashboard import MalformedRecordError
from domain.models.dashboard import AllTime, DashboardKPIs, DashboardPeriod, KPIResult, SpecificMonth
from domain.models.record_set import RecordSet
from domain.models.records import BookingRecord, BookingStatus, LedgerRecord, RequisitionRecord, RevenueEntry
from domain.temporal import (
    CREATED_AT,
    START_DATE,
    TRANSACTION_DATE,
    TemporalKey,
    align_to,
    as_datetime,
    matches_period,
    month_bounds,
    overlaps_period,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

Window = Callable[[datetime], bool]


def require(record, field_name: str):
    value = getattr(record, field_name)
    if value is None:
        raise MalformedRecordError(record.id, field_name)
    return value


def fold(
    records: Iterable,
    *,
    label: str,
    eligible: Callable[[object], bool],
    key: TemporalKey,
    within: Window | None,
    amount: Callable[[object], Decimal] | None = None,
) -> tuple[Decimal, int]:
    """Sum and count the records passing ``eligible`` whose ``key`` timestamp falls ``within``.

    ``within=None`` disables temporal filtering; the timestamp is then not
    required. A record missing a field it needs is logged and skipped.
    """
    total = ZERO
    count = 0
    for record in records:
        try:
            if not eligible(record):
                continue
            if within is not None:
                timestamp = require(record, key.field_name)
                if not within(as_datetime(timestamp)):
                    continue
            value = amount(record) if amount is not None else ZERO
        except MalformedRecordError as e:
            logger.warning(f"Skipping record {e.record_id} in {label}: missing '{e.field_name}'")
            continue
        total += value
        count += 1
    return total, count


def period_window(period: DashboardPeriod) -> Window | None:
    if isinstance(period, AllTime):
        return None
    return lambda ts: matches_period(ts, period)


# Active bookings have two distinct definitions: a live snapshot for the
# all-time view and a historical count for a chosen month.

def count_active_snapshot(bookings: Iterable[BookingRecord], period: AllTime) -> int:
    return sum(1 for b in bookings if is_snapshot_active(b))


def count_active_in_period(bookings: Iterable[BookingRecord], period: SpecificMonth) -> int:
    return sum(
        1 for b in bookings
        if is_period_active(b) and overlaps_period(b.start_date, b.end_date, period)
    )


ACTIVE_COUNT_BY_PERIOD: dict[type, Callable[[Iterable[BookingRecord], DashboardPeriod], int]] = {
    AllTime: count_active_snapshot,
    SpecificMonth: count_active_in_period,
}


def count_active_bookings(bookings: Iterable[BookingRecord], period: DashboardPeriod) -> int:
    return ACTIVE_COUNT_BY_PERIOD[type(period)](bookings, period)


def utilization_percent(in_use: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(Decimal(in_use) / Decimal(total) * HUNDRED)


def clamped_margin(gross: Decimal, direct_costs: Decimal, allocated_cost: Decimal) -> Decimal:
    return max(ZERO, gross - direct_costs - allocated_cost)


class Aggregator:
    """KPI folds over one RecordSet for one dashboard period.

    Every method returning a Decimal returns base-currency amounts; callers
    convert to the display currency once, at the end.
    """

    def __init__(
        self,
        record_set: RecordSet,
        period: DashboardPeriod,
        converter: CurrencyConverter,
        now: datetime,
        include_completed_outstanding: bool = False,
    ):
        self.record_set = record_set
        self.period = period
        self.converter = converter
        self.now = now
        self.include_completed_outstanding = include_completed_outstanding
        self._window = period_window(period)

    # -- amount accessors (base currency) ----------------------------------

    def _paid(self, booking: BookingRecord) -> Decimal:
        return self.converter.to_base(require(booking, "amount_paid"), booking.currency)

    def _booking_total(self, booking: BookingRecord) -> Decimal:
        return self.converter.to_base(require(booking, "total_amount"), booking.currency)

    def _balance(self, booking: BookingRecord) -> Decimal:
        require(booking, "total_amount")
        return self.converter.to_base(balance_due(booking), booking.currency)

    def _ledger_amount(self, transaction: LedgerRecord) -> Decimal:
        return self.converter.to_base(require(transaction, "amount"), transaction.currency)

    def _requisition_amount(self, requisition: RequisitionRecord) -> Decimal:
        if requisition.amount_base is not None:
            return requisition.amount_base
        return self.converter.to_base(require(requisition, "total_cost"), requisition.currency)

    def _margin(self, entry: RevenueEntry) -> Decimal:
        margin = clamped_margin(
            require(entry, "gross_revenue"),
            entry.direct_costs or ZERO,
            entry.allocated_resource_cost or ZERO,
        )
        return self.converter.to_base(margin, entry.currency)

    # -- revenue -----------------------------------------------------------

    def booking_revenue(self, window: Window | None = None) -> Decimal:
        total, _ = fold(
            self.record_set.bookings,
            label="booking_revenue",
            eligible=contributes_revenue,
            key=START_DATE,
            within=window if window is not None else self._window,
            amount=self._paid,
        )
        return total

    def ledger_income(self) -> Decimal:
        total, _ = fold(
            self.record_set.ledger,
            label="ledger_income",
            eligible=is_ledger_income,
            key=TRANSACTION_DATE,
            within=self._window,
            amount=self._ledger_amount,
        )
        return total

    def ancillary_margin(self) -> Decimal:
        total, _ = fold(
            self.record_set.revenue_entries,
            label="ancillary_margin",
            eligible=lambda entry: True,
            key=START_DATE,
            within=self._window,
            amount=self._margin,
        )
        return total

    def total_revenue(self) -> Decimal:
        return self.booking_revenue() + self.ledger_income() + self.ancillary_margin()

    def _mtd_window(self) -> Window:
        def within(ts: datetime) -> bool:
            now = align_to(self.now, ts)
            start, _ = month_bounds(now.year, now.month, ts.tzinfo)
            return start <= ts <= now

        return within

    def _ytd_window(self) -> Window:
        def within(ts: datetime) -> bool:
            return ts.year == self.now.year and ts <= align_to(self.now, ts)

        return within

    def revenue_mtd(self) -> Decimal:
        if isinstance(self.period, SpecificMonth):
            return self.booking_revenue()
        return self.booking_revenue(self._mtd_window())

    def revenue_ytd(self) -> Decimal:
        if isinstance(self.period, SpecificMonth):
            return self.booking_revenue()
        return self.booking_revenue(self._ytd_window())

    # -- expenses ----------------------------------------------------------

    @cached_property
    def valid_cr_numbers(self) -> frozenset[str]:
        return frozenset(
            cr.cr_number for cr in self.record_set.requisitions
            if cr.cr_number and is_valid_expense(cr)
        )

    def expense_lines(self) -> list[tuple[str, Decimal]]:
        """(normalized category, base amount) for every expense counted in the period."""
        lines: list[tuple[str, Decimal]] = []

        def collect_requisition(cr: RequisitionRecord) -> Decimal:
            amount = self._requisition_amount(cr)
            lines.append((normalize_expense_category(cr.expense_category), amount))
            return amount

        def collect_ledger(tx: LedgerRecord) -> Decimal:
            amount = self._ledger_amount(tx)
            lines.append((normalize_expense_category(tx.category or "Operating Expense"), amount))
            return amount

        fold(
            self.record_set.requisitions,
            label="requisition_expenses",
            eligible=is_valid_expense,
            key=CREATED_AT,
            within=self._window,
            amount=collect_requisition,
        )
        cr_numbers = self.valid_cr_numbers
        fold(
            self.record_set.ledger,
            label="ledger_expenses",
            eligible=lambda tx: is_ledger_expense(tx, cr_numbers),
            key=TRANSACTION_DATE,
            within=self._window,
            amount=collect_ledger,
        )
        return lines

    def total_expenses(self) -> Decimal:
        return sum((amount for _, amount in self.expense_lines()), ZERO)

    # -- bookings ----------------------------------------------------------

    def outstanding(self) -> tuple[Decimal, int]:
        return fold(
            self.record_set.bookings,
            label="outstanding",
            eligible=lambda b: is_outstanding(b, self.include_completed_outstanding),
            key=START_DATE,
            within=self._window,
            amount=self._balance,
        )

    def outstanding_bookings(self) -> list[BookingRecord]:
        bookings: list[BookingRecord] = []

        def collect(booking: BookingRecord) -> Decimal:
            balance = self._balance(booking)
            bookings.append(booking)
            return balance

        fold(
            self.record_set.bookings,
            label="outstanding_bookings",
            eligible=lambda b: is_outstanding(b, self.include_completed_outstanding),
            key=START_DATE,
            within=self._window,
            amount=collect,
        )
        return bookings

    def count_status(self, status: BookingStatus) -> int:
        _, count = fold(
            self.record_set.bookings,
            label=f"count_{status.name.lower()}",
            eligible=has_status(status),
            key=START_DATE,
            within=self._window,
        )
        return count

    def total_bookings(self) -> int:
        _, count = fold(
            self.record_set.bookings,
            label="total_bookings",
            eligible=lambda b: True,
            key=START_DATE,
            within=self._window,
        )
        return count

    def avg_booking_value(self) -> Decimal:
        total, count = fold(
            self.record_set.bookings,
            label="avg_booking_value",
            eligible=lambda b: True,
            key=START_DATE,
            within=self._window,
            amount=self._booking_total,
        )
        if count == 0:
            return ZERO
        return total / count

    def active_bookings(self) -> int:
        return count_active_bookings(self.record_set.bookings, self.period)

    # -- fleet -------------------------------------------------------------

    def fleet_counts(self) -> dict[str, int]:
        fleet = self.record_set.fleet
        return {
            "in_use": sum(1 for v in fleet if is_in_use(v)),
            "available": sum(1 for v in fleet if is_available(v)),
            "maintenance": sum(1 for v in fleet if is_in_maintenance(v)),
            "total": len(fleet),
        }

    def fleet_utilization(self) -> int:
        counts = self.fleet_counts()
        return utilization_percent(counts["in_use"], counts["total"])

    # -- assembly ----------------------------------------------------------

    def kpis(self, display_currency: str) -> DashboardKPIs:
        def money(amount_in_base: Decimal) -> KPIResult:
            return KPIResult(self.converter.display(amount_in_base, display_currency), display_currency)

        booking_revenue = self.booking_revenue()
        ledger_income = self.ledger_income()
        margin = self.ancillary_margin()
        outstanding_total, outstanding_count = self.outstanding()
        fleet = self.fleet_counts()

        return DashboardKPIs(
            total_revenue=money(booking_revenue + ledger_income + margin),
            revenue_mtd=money(self.revenue_mtd()),
            revenue_ytd=money(self.revenue_ytd()),
            booking_revenue=money(booking_revenue),
            ledger_income=money(ledger_income),
            ancillary_margin=money(margin),
            total_expenses=money(self.total_expenses()),
            outstanding_total=money(outstanding_total),
            outstanding_count=outstanding_count,
            avg_booking_value=money(self.avg_booking_value()),
            active_bookings=self.active_bookings(),
            confirmed_bookings=self.count_status(BookingStatus.CONFIRMED),
            pending_bookings=self.count_status(BookingStatus.PENDING),
            completed_bookings=self.count_status(BookingStatus.COMPLETED),
            cancelled_bookings=self.count_status(BookingStatus.CANCELLED),
            in_progress_bookings=self.count_status(BookingStatus.IN_PROGRESS),
            total_bookings=self.total_bookings(),
            fleet_utilization=utilization_percent(fleet["in_use"], fleet["total"]),
            vehicles_in_use=fleet["in_use"],
            vehicles_available=fleet["available"],
            vehicles_maintenance=fleet["maintenance"],
            total_fleet=fleet["total"],
        )


def month_aggregator(base: Aggregator, year: int, month: int) -> Aggregator:
    """Same inputs as ``base``, restricted to a single calendar month."""
    return Aggregator(
        base.record_set,
        SpecificMonth(year, month),
        base.converter,
        base.now,
        base.include_completed_outstanding,
    )

