"""
Business-rule predicates, one per KPI family.

Predicates look at status and amounts only. They never consult timestamps,
so they hold whether or not a temporal filter has already been applied.
"""

import re
from collections.abc import Collection
from decimal import Decimal

from domain.models.records import (
    BookingRecord,
    BookingStatus,
    FleetRecord,
    FleetStatus,
    LedgerRecord,
    RequisitionRecord,
    RequisitionStatus,
    TransactionType,
)

ZERO = Decimal("0")

REVENUE_TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.IN_PROGRESS})
SNAPSHOT_ACTIVE_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.ACTIVE, BookingStatus.IN_PROGRESS})
PERIOD_ACTIVE_STATUSES = SNAPSHOT_ACTIVE_STATUSES | {BookingStatus.COMPLETED}

VALID_EXPENSE_STATUSES = frozenset({
    RequisitionStatus.COMPLETED,
    RequisitionStatus.APPROVED,
    RequisitionStatus.RESOLVED,
})
EXCLUDED_EXPENSE_STATUSES = frozenset({
    RequisitionStatus.REJECTED,
    RequisitionStatus.DECLINED,
    RequisitionStatus.CANCELLED,
})

IN_USE_FLEET_STATUSES = frozenset({FleetStatus.BOOKED, FleetStatus.RENTED})
MAINTENANCE_FLEET_STATUSES = frozenset({FleetStatus.MAINTENANCE, FleetStatus.OUT_OF_SERVICE})

CR_NUMBER_PATTERN = re.compile(r"CR-\d{4}-\d{4}")


# Bookings

def is_revenue_eligible(booking: BookingRecord) -> bool:
    if booking.status in REVENUE_TERMINAL_STATUSES:
        return True
    return booking.status == BookingStatus.CONFIRMED and (booking.amount_paid or ZERO) > 0


def contributes_revenue(booking: BookingRecord) -> bool:
    """Revenue-eligible and money has actually been received."""
    return is_revenue_eligible(booking) and (booking.amount_paid or ZERO) > 0


def balance_due(booking: BookingRecord) -> Decimal:
    return (booking.total_amount or ZERO) - (booking.amount_paid or ZERO)


def is_outstanding(booking: BookingRecord, include_completed: bool = False) -> bool:
    statuses = {BookingStatus.PENDING}
    if include_completed:
        statuses.add(BookingStatus.COMPLETED)
    return booking.status in statuses and balance_due(booking) > 0


def is_snapshot_active(booking: BookingRecord) -> bool:
    return booking.status in SNAPSHOT_ACTIVE_STATUSES


def is_period_active(booking: BookingRecord) -> bool:
    return booking.status in PERIOD_ACTIVE_STATUSES


def has_status(status: BookingStatus):
    def predicate(booking: BookingRecord) -> bool:
        return booking.status == status

    predicate.__name__ = f"has_status_{status.name.lower()}"
    return predicate


# Cash requisitions

def is_valid_expense(requisition: RequisitionRecord) -> bool:
    if requisition.soft_deleted:
        return False
    if requisition.status in EXCLUDED_EXPENSE_STATUSES:
        return False
    return requisition.status in VALID_EXPENSE_STATUSES or requisition.completed_at is not None


# Ledger

def is_ledger_income(transaction: LedgerRecord) -> bool:
    return transaction.transaction_type == TransactionType.INCOME


def is_cr_linked(transaction: LedgerRecord, linked_cr_numbers: Collection[str]) -> bool:
    reference = transaction.reference_number or ""
    if reference and reference in linked_cr_numbers:
        return True
    return reference.startswith("CR-") or bool(CR_NUMBER_PATTERN.search(transaction.description or ""))


def is_ledger_expense(transaction: LedgerRecord, linked_cr_numbers: Collection[str] = ()) -> bool:
    """Expense not already counted through a cash requisition."""
    if transaction.transaction_type != TransactionType.EXPENSE:
        return False
    if (transaction.status or "").strip().lower() == "cancelled":
        return False
    return not is_cr_linked(transaction, linked_cr_numbers)


# Fleet

def is_in_use(vehicle: FleetRecord) -> bool:
    return vehicle.status in IN_USE_FLEET_STATUSES


def is_available(vehicle: FleetRecord) -> bool:
    return vehicle.status == FleetStatus.AVAILABLE


def is_in_maintenance(vehicle: FleetRecord) -> bool:
    return vehicle.status in MAINTENANCE_FLEET_STATUSES
