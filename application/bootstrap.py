import asyncio
import logging
import signal

from redis.asyncio import Redis

from application.services import DashboardService, RateRefreshService
from config.logging import configure_logging
from config.settings import Settings, get_settings
from domain.models.dashboard import DashboardFilter
from infrastructure.cache.redis_cache import RedisRateCache
from infrastructure.notifications.redis_feed import RedisChangeFeed
from infrastructure.persistence.database import Database
from infrastructure.persistence.repositories.records import SqlRecordStore
from infrastructure.providers import OpenExchangeProvider

logger = logging.getLogger(__name__)


class AppDependencies:
	"""Container for process-wide singleton dependencies."""

	db: Database | None = None
	redis_client: Redis | None = None
	rate_cache: RedisRateCache | None = None
	change_feed: RedisChangeFeed | None = None
	store: SqlRecordStore | None = None
	provider: OpenExchangeProvider | None = None
	dashboard: DashboardService | None = None
	rate_refresh: RateRefreshService | None = None


deps = AppDependencies()


def init_dependencies(settings: Settings | None = None) -> AppDependencies:
	"""Wire every dependency from settings. Nothing connects until first use."""
	logger.info('Initializing dependencies...')
	settings = settings or get_settings()

	deps.db = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
	deps.redis_client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
	deps.rate_cache = RedisRateCache(deps.redis_client, ttl_seconds=settings.RATE_CACHE_TTL_SECONDS)
	deps.change_feed = RedisChangeFeed(deps.redis_client)
	deps.store = SqlRecordStore(
		deps.db,
		change_feed=deps.change_feed,
		rate_cache=deps.rate_cache,
		base_currency=settings.BASE_CURRENCY,
	)
	deps.dashboard = DashboardService(
		deps.store,
		debounce_seconds=settings.DEBOUNCE_SECONDS,
		recompute_timeout_seconds=settings.RECOMPUTE_TIMEOUT_SECONDS,
		include_completed_outstanding=settings.OUTSTANDING_INCLUDES_COMPLETED,
		top_n=settings.TOP_N_VEHICLES,
	)

	if settings.OPENEXCHANGE_APP_ID:
		deps.provider = OpenExchangeProvider(settings.OPENEXCHANGE_APP_ID)
		deps.rate_refresh = RateRefreshService(
			deps.provider,
			deps.store,
			deps.change_feed,
			base_currency=settings.BASE_CURRENCY,
			symbols=settings.DISPLAY_CURRENCIES,
			interval_seconds=settings.RATE_REFRESH_INTERVAL_SECONDS,
		)
	else:
		logger.warning('OPENEXCHANGE_APP_ID not set; exchange rates will not be refreshed')

	logger.info('Dependencies initialized')
	return deps


async def cleanup_dependencies() -> None:
	logger.info('Cleaning up dependencies...')

	if deps.rate_refresh:
		deps.rate_refresh.stop()
	if deps.dashboard:
		await deps.dashboard.close()
	if deps.provider:
		await deps.provider.close()
	if deps.redis_client:
		await deps.redis_client.aclose()
	if deps.db:
		await deps.db.close()

	logger.info('Cleanup complete')


async def bootstrap() -> None:
	"""Create tables, start listening for changes and warm the default snapshot."""
	logger.info('Bootstrapping dashboard...')

	if deps.db is None or deps.dashboard is None:
		raise RuntimeError('Dependencies not initialized. Call init_dependencies() first.')

	await deps.db.create_tables()
	await deps.dashboard.start()
	snapshot = await deps.dashboard.get_snapshot(DashboardFilter())
	logger.info(
		f'Initial snapshot v{snapshot.record_set_version}: '
		f'revenue {snapshot.kpis.total_revenue.value} {snapshot.currency}'
	)

	logger.info('Bootstrap complete')


async def main() -> None:
	settings = get_settings()
	configure_logging(settings.LOG_LEVEL, settings.LOG_DIRECTORY or None)

	logger.info('=' * 60)
	logger.info(f'{settings.APP_NAME.upper()} STARTING')
	logger.info('=' * 60)

	init_dependencies(settings)
	stop_event = asyncio.Event()
	loop = asyncio.get_running_loop()

	def signal_handler(sig, frame):
		logger.info(f'Received signal {sig}, shutting down gracefully...')
		loop.call_soon_threadsafe(stop_event.set)

	signal.signal(signal.SIGINT, signal_handler)
	signal.signal(signal.SIGTERM, signal_handler)

	refresh_task = None
	try:
		await bootstrap()
		if deps.rate_refresh:
			refresh_task = asyncio.create_task(deps.rate_refresh.run())
		await stop_event.wait()
	finally:
		if refresh_task:
			refresh_task.cancel()
			await asyncio.gather(refresh_task, return_exceptions=True)
		await cleanup_dependencies()
		logger.info('Shutdown complete')


def run() -> None:
	asyncio.run(main())


if __name__ == '__main__':
	run()
