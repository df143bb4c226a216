from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence

from domain.models.currency import ExchangeRateSnapshot
from domain.models.records import Record, RecordKind

ChangeCallback = Callable[[], None]


class Subscription(ABC):
    @abstractmethod
    async def unsubscribe(self) -> None:
        ...


class ChangeFeed(ABC):
    """Payload-free, at-least-once change notifications per record kind."""

    @abstractmethod
    async def subscribe(self, kinds: Iterable[RecordKind], callback: ChangeCallback) -> Subscription:
        ...

    @abstractmethod
    async def publish(self, kind: RecordKind) -> None:
        ...


class RecordStore(ABC):
    """Read access to the operational record store."""

    @abstractmethod
    async def list_records(self, kind: RecordKind) -> Sequence[Record]:
        ...

    @abstractmethod
    async def current_exchange_rates(self) -> ExchangeRateSnapshot:
        ...

    @abstractmethod
    async def subscribe_to_changes(self, kinds: Iterable[RecordKind], callback: ChangeCallback) -> Subscription:
        ...


class RateProvider(ABC):
    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def fetch_snapshot(self, base_currency: str, symbols: Iterable[str]) -> ExchangeRateSnapshot:
        ...


class RateWriter(ABC):
    @abstractmethod
    async def save_exchange_rates(self, snapshot: ExchangeRateSnapshot) -> None:
        ...


class CallbackSubscription(Subscription):
    """Subscription whose teardown is a plain callable."""

    def __init__(self, cancel: Callable[[], None]):
        self._cancel = cancel
        self.active = True

    async def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._cancel()
