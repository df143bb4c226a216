import asyncio
import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime

from application.ports import RecordStore, Subscription
from application.services.scheduler import RecomputeScheduler
from application.services.snapshot_builder import build_snapshot, default_charts
from domain.exceptions.dashboard import RecomputationTimeoutError, StoreUnavailableError
from domain.models.dashboard import ChartSelection, DashboardFilter, DashboardSnapshot, SnapshotUpdate
from domain.models.record_set import RecordSet
from domain.models.records import RecordKind

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[SnapshotUpdate], None]
Clock = Callable[[], datetime]

# Every kind a snapshot reads, including the rate table.
WATCHED_KINDS = tuple(RecordKind)

_RECORD_KINDS = (
    RecordKind.BOOKINGS,
    RecordKind.FLEET,
    RecordKind.REQUISITIONS,
    RecordKind.LEDGER,
    RecordKind.REVENUE_ENTRIES,
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DashboardService:
    """Serves dashboard snapshots and keeps them current as records change.

    Every (filter, chart selection) pair that has been requested is watched:
    each recompute cycle reloads one RecordSet and rebuilds all of them, then
    notifies listeners.
    """

    def __init__(
        self,
        store: RecordStore,
        debounce_seconds: float = 0.5,
        recompute_timeout_seconds: float = 5.0,
        include_completed_outstanding: bool = False,
        top_n: int = 10,
        clock: Clock = _utcnow,
    ):
        self.store = store
        self.top_n = top_n
        self.recompute_timeout_seconds = recompute_timeout_seconds
        self.include_completed_outstanding = include_completed_outstanding
        self._clock = clock
        self._record_set: RecordSet | None = None
        self._initial_load: asyncio.Future[RecordSet] | None = None
        self._version = 0
        self._snapshots: dict[tuple[DashboardFilter, ChartSelection], DashboardSnapshot] = {}
        self._watched: list[tuple[DashboardFilter, ChartSelection]] = []
        self._listeners: list[SnapshotListener] = []
        self._subscription: Subscription | None = None
        self.scheduler = RecomputeScheduler(self._recompute, debounce_seconds, on_error=self._on_cycle_error)

    # -- lifecycle ---------------------------------------------------------

    async def start(self) -> None:
        if self._subscription is not None:
            return
        self._subscription = await self.store.subscribe_to_changes(WATCHED_KINDS, self.scheduler.notify)
        logger.info("Dashboard service subscribed to record changes")

    async def close(self) -> None:
        if self._subscription is not None:
            await self._subscription.unsubscribe()
            self._subscription = None
        await self.scheduler.close()
        logger.info("Dashboard service closed")

    # -- listeners ---------------------------------------------------------

    def on_snapshot_updated(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unregister() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unregister

    def _publish(self, update: SnapshotUpdate) -> None:
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception as e:
                logger.error(f"Snapshot listener {listener!r} failed: {e}")

    # -- snapshots ---------------------------------------------------------

    async def get_snapshot(
        self,
        dashboard_filter: DashboardFilter,
        charts: ChartSelection | None = None,
    ) -> DashboardSnapshot:
        charts = charts or default_charts(self._clock(), self.top_n)
        key = (dashboard_filter, charts)
        cached = self._snapshots.get(key)
        if cached is not None:
            return cached

        # Watched before the first build so a cycle running meanwhile rebuilds it too.
        if key not in self._watched:
            self._watched.append(key)

        record_set = await self._initial_record_set()
        while True:
            snapshot = await self._build(record_set, dashboard_filter, charts)
            if self._record_set is record_set:
                self._snapshots[key] = snapshot
                return snapshot
            # A cycle swapped in a newer RecordSet during the build.
            record_set = self._record_set
            latest = self._snapshots.get(key)
            if latest is not None and latest.record_set_version == record_set.version:
                return latest

    async def _initial_record_set(self) -> RecordSet:
        if self._record_set is not None:
            return self._record_set
        if self._initial_load is None:
            self._initial_load = asyncio.ensure_future(self._load_record_set())
        load = self._initial_load
        try:
            record_set = await asyncio.shield(load)
        finally:
            if self._initial_load is load and load.done():
                self._initial_load = None
        if self._record_set is None:
            self._record_set = record_set
        return self._record_set

    async def refresh_now(self) -> None:
        await self.scheduler.refresh_now()

    @property
    def record_set(self) -> RecordSet | None:
        return self._record_set

    async def _load_record_set(self) -> RecordSet:
        try:
            collections = await asyncio.gather(*(self.store.list_records(kind) for kind in _RECORD_KINDS))
            rates = await self.store.current_exchange_rates()
        except StoreUnavailableError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to load records: {e}") from e

        self._version += 1
        bookings, fleet, requisitions, ledger, revenue_entries = collections
        record_set = RecordSet(
            bookings=bookings,
            fleet=fleet,
            requisitions=requisitions,
            ledger=ledger,
            revenue_entries=revenue_entries,
            rates=rates,
            version=self._version,
            loaded_at=self._clock(),
        )
        logger.info(
            f"Loaded record set v{record_set.version}: {len(record_set.bookings)} bookings, "
            f"{len(record_set.fleet)} vehicles, {len(record_set.requisitions)} requisitions, "
            f"{len(record_set.ledger)} transactions, {len(record_set.revenue_entries)} revenue entries"
        )
        return record_set

    async def _build(
        self,
        record_set: RecordSet,
        dashboard_filter: DashboardFilter,
        charts: ChartSelection,
    ) -> DashboardSnapshot:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(
                    build_snapshot,
                    record_set,
                    dashboard_filter,
                    charts,
                    self._clock(),
                    self.include_completed_outstanding,
                ),
                timeout=self.recompute_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise RecomputationTimeoutError(self.recompute_timeout_seconds) from e

    async def _recompute(self) -> None:
        try:
            record_set = await self._load_record_set()
        except StoreUnavailableError as e:
            logger.error(f"Recompute skipped, keeping previous snapshots: {e}")
            for dashboard_filter, charts in self._watched:
                self._publish(SnapshotUpdate(dashboard_filter, charts, error=e))
            raise

        self._record_set = record_set
        started = time.perf_counter()
        rebuilt = 0
        for key in list(self._watched):
            dashboard_filter, charts = key
            try:
                snapshot = await self._build(record_set, dashboard_filter, charts)
            except RecomputationTimeoutError as e:
                logger.error(f"{e}; keeping previous snapshot for {dashboard_filter}")
                self._publish(SnapshotUpdate(dashboard_filter, charts, error=e))
                continue
            self._snapshots[key] = snapshot
            self._publish(SnapshotUpdate(dashboard_filter, charts, snapshot=snapshot))
            rebuilt += 1

        logger.info(
            f"Recomputed {rebuilt}/{len(self._watched)} snapshots for record set v{record_set.version}",
            extra={"extra_data": {
                "record_set_version": record_set.version,
                "rebuilt": rebuilt,
                "watched": len(self._watched),
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            }},
        )

    def _on_cycle_error(self, error: Exception) -> None:
        logger.warning(f"Dashboard recompute cycle ended with {error.__class__.__name__}")
