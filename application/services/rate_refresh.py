import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime

from application.ports import ChangeFeed, RateProvider, RateWriter
from domain.exceptions.dashboard import ProviderError, StoreUnavailableError
from domain.models.currency import ExchangeRateSnapshot
from domain.models.records import RecordKind

logger = logging.getLogger(__name__)


class RateRefreshService:
    """
    Background worker that keeps the exchange_rates table fresh.

    Each cycle fetches one snapshot from the provider, saves it and announces
    an ``exchange_rates`` change so dashboards recompute. A failed cycle keeps
    the previous rates in place.
    """

    def __init__(
        self,
        provider: RateProvider,
        writer: RateWriter,
        change_feed: ChangeFeed,
        base_currency: str,
        symbols: Iterable[str],
        interval_seconds: float = 3600,
    ):
        self.provider = provider
        self.writer = writer
        self.change_feed = change_feed
        self.base_currency = base_currency
        self.symbols = [s for s in symbols if s != base_currency]
        self.interval_seconds = interval_seconds
        self.is_running = False
        self.last_snapshot: ExchangeRateSnapshot | None = None

        logger.info(
            f"Rate refresh for {base_currency} -> {self.symbols} every {interval_seconds}s "
            f"via {provider.name}"
        )

    async def refresh_once(self) -> bool:
        cycle_start = datetime.now()
        try:
            snapshot = await self.provider.fetch_snapshot(self.base_currency, self.symbols)
            await self.writer.save_exchange_rates(snapshot)
        except (ProviderError, StoreUnavailableError) as e:
            logger.error(f"Rate refresh failed, keeping previous rates: {e}")
            return False

        self.last_snapshot = snapshot
        await self.change_feed.publish(RecordKind.EXCHANGE_RATES)

        duration = (datetime.now() - cycle_start).total_seconds()
        logger.info(f"Refreshed {len(snapshot.rates)} rates from {snapshot.source} in {duration:.2f}s")
        return True

    async def run(self) -> None:
        self.is_running = True
        logger.info("Rate refresh worker started")

        while self.is_running:
            try:
                await self.refresh_once()
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                logger.info("Rate refresh worker received cancellation signal")
                break
            except Exception as e:
                logger.error(f"Error in rate refresh cycle: {e}", exc_info=True)
                await asyncio.sleep(self.interval_seconds)

        logger.info("Rate refresh worker stopped")

    def stop(self) -> None:
        logger.info("Stopping rate refresh worker...")
        self.is_running = False
