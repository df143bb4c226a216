from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


def _normalize_label(raw: str | None) -> str:
    return (raw or "").strip().lower().replace("_", "-").replace(" ", "-")


class _LabelledStatus(str, Enum):
    """Status enum that tolerates the spelling variants found in stored rows."""

    @classmethod
    def from_raw(cls, raw: str | None):
        label = _normalize_label(raw)
        for member in cls:
            if _normalize_label(member.value) == label:
                return member
        return cls.UNKNOWN


class BookingStatus(_LabelledStatus):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    ACTIVE = "Active"
    IN_PROGRESS = "In-Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    UNKNOWN = "Unknown"


class FleetStatus(_LabelledStatus):
    AVAILABLE = "available"
    BOOKED = "booked"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"
    UNKNOWN = "unknown"


class RequisitionStatus(_LabelledStatus):
    PENDING = "Pending"
    APPROVED = "Approved"
    COMPLETED = "Completed"
    RESOLVED = "Resolved"
    REJECTED = "Rejected"
    DECLINED = "Declined"
    CANCELLED = "Cancelled"
    UNKNOWN = "Unknown"


class TransactionType(_LabelledStatus):
    INCOME = "income"
    EXPENSE = "expense"
    UNKNOWN = "unknown"


class RecordKind(str, Enum):
    BOOKINGS = "bookings"
    FLEET = "fleet"
    REQUISITIONS = "requisitions"
    LEDGER = "ledger"
    REVENUE_ENTRIES = "revenue_entries"
    EXCHANGE_RATES = "exchange_rates"


Timestamp = datetime | date


@dataclass(frozen=True)
class BookingRecord:
    id: str
    status: BookingStatus
    currency: str
    amount_paid: Decimal | None
    total_amount: Decimal | None
    start_date: Timestamp | None
    end_date: Timestamp | None = None
    created_at: Timestamp | None = None
    reference: str | None = None
    assigned_vehicle_id: str | None = None
    client_name: str | None = None


@dataclass(frozen=True)
class FleetRecord:
    id: str
    status: FleetStatus
    license_plate: str = ""
    make: str = ""
    model: str = ""
    capacity: str = ""

    @property
    def display_name(self) -> str:
        return self.license_plate or self.id[:8]


@dataclass(frozen=True)
class RequisitionRecord:
    id: str
    cr_number: str
    status: RequisitionStatus
    currency: str
    total_cost: Decimal | None
    created_at: Timestamp | None
    expense_category: str = ""
    amount_base: Decimal | None = None
    completed_at: Timestamp | None = None
    soft_deleted: bool = False


@dataclass(frozen=True)
class LedgerRecord:
    id: str
    transaction_type: TransactionType
    currency: str
    amount: Decimal | None
    transaction_date: Timestamp | None
    status: str = ""
    category: str = ""
    description: str = ""
    reference_number: str = ""


@dataclass(frozen=True)
class RevenueEntry:
    """Ancillary activity (e.g. a safari) with its own revenue and cost lines."""

    id: str
    currency: str
    gross_revenue: Decimal | None
    direct_costs: Decimal | None
    allocated_resource_cost: Decimal | None
    start_date: Timestamp | None
    end_date: Timestamp | None = None


Record = BookingRecord | FleetRecord | RequisitionRecord | LedgerRecord | RevenueEntry
