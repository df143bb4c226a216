import logging
from collections.abc import Iterable, Sequence

from application.ports import CallbackSubscription, ChangeCallback, RateWriter, RecordStore, Subscription
from domain.models.currency import ExchangeRateSnapshot
from domain.models.records import Record, RecordKind

logger = logging.getLogger(__name__)


class InMemoryRecordStore(RecordStore, RateWriter):
    """Record store held in process memory.

    Writes notify subscribers synchronously, once per write, for the kind
    that changed.
    """

    def __init__(self, rates: ExchangeRateSnapshot | None = None):
        self._records: dict[RecordKind, dict[str, Record]] = {
            kind: {} for kind in RecordKind if kind != RecordKind.EXCHANGE_RATES
        }
        self._rates = rates or ExchangeRateSnapshot.defaults()
        self._subscribers: list[tuple[frozenset[RecordKind], ChangeCallback]] = []

    async def list_records(self, kind: RecordKind) -> Sequence[Record]:
        return tuple(self._records[kind].values())

    async def current_exchange_rates(self) -> ExchangeRateSnapshot:
        return self._rates

    async def subscribe_to_changes(self, kinds: Iterable[RecordKind], callback: ChangeCallback) -> Subscription:
        entry = (frozenset(kinds), callback)
        self._subscribers.append(entry)
        return CallbackSubscription(lambda: self._subscribers.remove(entry))

    def _notify(self, kind: RecordKind) -> None:
        for kinds, callback in list(self._subscribers):
            if kind not in kinds:
                continue
            try:
                callback()
            except Exception as e:
                logger.error(f"Change subscriber failed for {kind.value}: {e}")

    def replace(self, kind: RecordKind, records: Iterable[Record]) -> None:
        self._records[kind] = {record.id: record for record in records}
        self._notify(kind)

    def upsert(self, kind: RecordKind, record: Record) -> None:
        self._records[kind][record.id] = record
        self._notify(kind)

    def delete(self, kind: RecordKind, record_id: str) -> None:
        if self._records[kind].pop(record_id, None) is not None:
            self._notify(kind)

    def set_exchange_rates(self, rates: ExchangeRateSnapshot) -> None:
        self._rates = rates
        self._notify(RecordKind.EXCHANGE_RATES)

    async def save_exchange_rates(self, snapshot: ExchangeRateSnapshot) -> None:
        self.set_exchange_rates(snapshot)
