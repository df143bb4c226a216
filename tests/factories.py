"""
Builders for dashboard records with sensible defaults, so each test only
spells out the fields it is about.
"""

from datetime import datetime
from decimal import Decimal
from itertools import count

from domain.models.currency import ExchangeRateSnapshot
from domain.models.record_set import RecordSet
from domain.models.records import (
    BookingRecord,
    BookingStatus,
    FleetRecord,
    FleetStatus,
    LedgerRecord,
    RequisitionRecord,
    RequisitionStatus,
    RevenueEntry,
    TransactionType,
)

_ids = count(1)

NOW = datetime(2025, 6, 15, 12, 0, 0)

RATES = ExchangeRateSnapshot(
    base_currency="USD",
    rates={"UGX": Decimal("3700"), "KES": Decimal("130")},
    refreshed_at=datetime(2025, 6, 15, 8, 0, 0),
)


def _next_id(prefix: str) -> str:
    return f"{prefix}-{next(_ids)}"


def booking(
    status: BookingStatus = BookingStatus.COMPLETED,
    amount_paid="100",
    total_amount="100",
    start_date: datetime | None = datetime(2025, 6, 10),
    currency: str = "USD",
    **overrides,
) -> BookingRecord:
    values = dict(
        id=_next_id("bk"),
        status=status,
        currency=currency,
        amount_paid=Decimal(amount_paid) if amount_paid is not None else None,
        total_amount=Decimal(total_amount) if total_amount is not None else None,
        start_date=start_date,
        end_date=start_date,
        created_at=start_date,
    )
    values.update(overrides)
    return BookingRecord(**values)


def vehicle(status: FleetStatus = FleetStatus.AVAILABLE, capacity: str = "7 seater", **overrides) -> FleetRecord:
    values = dict(id=_next_id("veh"), status=status, license_plate=f"UAX {next(_ids)}", capacity=capacity)
    values.update(overrides)
    return FleetRecord(**values)


def requisition(
    total_cost="50",
    category: str = "Fuel",
    status: RequisitionStatus = RequisitionStatus.APPROVED,
    created_at: datetime | None = datetime(2025, 6, 5),
    currency: str = "USD",
    **overrides,
) -> RequisitionRecord:
    number = next(_ids)
    values = dict(
        id=_next_id("cr"),
        cr_number=f"CR-2025-{number:04d}",
        status=status,
        currency=currency,
        total_cost=Decimal(total_cost) if total_cost is not None else None,
        created_at=created_at,
        expense_category=category,
    )
    values.update(overrides)
    return RequisitionRecord(**values)


def transaction(
    amount="20",
    transaction_type: TransactionType = TransactionType.INCOME,
    transaction_date: datetime | None = datetime(2025, 6, 8),
    currency: str = "USD",
    **overrides,
) -> LedgerRecord:
    values = dict(
        id=_next_id("tx"),
        transaction_type=transaction_type,
        currency=currency,
        amount=Decimal(amount) if amount is not None else None,
        transaction_date=transaction_date,
    )
    values.update(overrides)
    return LedgerRecord(**values)


def revenue_entry(
    gross="500",
    direct="200",
    allocated="100",
    start_date: datetime | None = datetime(2025, 6, 12),
    currency: str = "USD",
) -> RevenueEntry:
    return RevenueEntry(
        id=_next_id("safari"),
        currency=currency,
        gross_revenue=Decimal(gross) if gross is not None else None,
        direct_costs=Decimal(direct),
        allocated_resource_cost=Decimal(allocated),
        start_date=start_date,
    )


def record_set(
    bookings=(),
    fleet=(),
    requisitions=(),
    ledger=(),
    revenue_entries=(),
    rates: ExchangeRateSnapshot = RATES,
    version: int = 1,
) -> RecordSet:
    return RecordSet(
        bookings=bookings,
        fleet=fleet,
        requisitions=requisitions,
        ledger=ledger,
        revenue_entries=revenue_entries,
        rates=rates,
        version=version,
        loaded_at=NOW,
    )
