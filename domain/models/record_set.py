from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import cached_property

from domain.models.currency import ExchangeRateSnapshot
from domain.models.records import (
    BookingRecord,
    FleetRecord,
    LedgerRecord,
    RecordKind,
    RequisitionRecord,
    RevenueEntry,
)


@dataclass(frozen=True)
class RecordSet:
    """One consistent, immutable read of every record collection plus the rate table."""

    bookings: tuple[BookingRecord, ...]
    fleet: tuple[FleetRecord, ...]
    requisitions: tuple[RequisitionRecord, ...]
    ledger: tuple[LedgerRecord, ...]
    revenue_entries: tuple[RevenueEntry, ...]
    rates: ExchangeRateSnapshot
    version: int = 0
    loaded_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self):
        for name in ("bookings", "fleet", "requisitions", "ledger", "revenue_entries"):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    def records(self, kind: RecordKind) -> tuple:
        return getattr(self, kind.value)

    def vehicle(self, vehicle_id: str) -> FleetRecord | None:
        return self.vehicles_by_id.get(vehicle_id)

    @cached_property
    def vehicles_by_id(self) -> dict[str, FleetRecord]:
        return {v.id: v for v in self.fleet}

    @classmethod
    def empty(cls, rates: ExchangeRateSnapshot | None = None) -> "RecordSet":
        return cls(
            bookings=(),
            fleet=(),
            requisitions=(),
            ledger=(),
            revenue_entries=(),
            rates=rates or ExchangeRateSnapshot.defaults(),
        )
