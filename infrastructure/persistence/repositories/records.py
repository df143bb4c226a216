import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.future import select
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from application.ports import ChangeCallback, ChangeFeed, RateWriter, RecordStore, Subscription
from domain.exceptions.dashboard import StoreUnavailableError
from domain.models.currency import BASE_CURRENCY, ExchangeRateSnapshot
from domain.models.records import (
	BookingRecord,
	BookingStatus,
	FleetRecord,
	FleetStatus,
	LedgerRecord,
	Record,
	RecordKind,
	RequisitionRecord,
	RequisitionStatus,
	RevenueEntry,
	TransactionType,
)
from infrastructure.cache.redis_cache import RedisRateCache
from infrastructure.persistence.database import Database
from infrastructure.persistence.models.records import (
	BookingDB,
	CashRequisitionDB,
	ExchangeRateDB,
	FinancialTransactionDB,
	SafariBookingDB,
	VehicleDB,
)

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (OperationalError, OSError)


def _booking(row: BookingDB) -> BookingRecord:
	return BookingRecord(
		id=row.id,
		status=BookingStatus.from_raw(row.status),
		currency=row.currency or BASE_CURRENCY,
		amount_paid=row.amount_paid,
		total_amount=row.total_amount,
		start_date=row.start_date,
		end_date=row.end_date,
		created_at=row.created_at,
		reference=row.booking_reference,
		assigned_vehicle_id=row.assigned_vehicle_id,
		client_name=row.client_name,
	)


def _vehicle(row: VehicleDB) -> FleetRecord:
	return FleetRecord(
		id=row.id,
		status=FleetStatus.from_raw(row.status),
		license_plate=row.license_plate or '',
		make=row.make or '',
		model=row.model or '',
		capacity=row.capacity or '',
	)


def _requisition(row: CashRequisitionDB) -> RequisitionRecord:
	return RequisitionRecord(
		id=row.id,
		cr_number=row.cr_number or '',
		status=RequisitionStatus.from_raw(row.status),
		currency=row.currency or BASE_CURRENCY,
		total_cost=row.total_cost,
		created_at=row.created_at,
		expense_category=row.expense_category or '',
		amount_base=row.amount_usd,
		completed_at=row.completed_at,
		soft_deleted=bool(row.is_deleted),
	)


def _transaction(row: FinancialTransactionDB) -> LedgerRecord:
	return LedgerRecord(
		id=row.id,
		transaction_type=TransactionType.from_raw(row.transaction_type),
		currency=row.currency or BASE_CURRENCY,
		amount=row.amount,
		transaction_date=row.transaction_date,
		status=row.status or '',
		category=row.category or '',
		description=row.description or '',
		reference_number=row.reference_number or '',
	)


def _revenue_entry(row: SafariBookingDB) -> RevenueEntry:
	return RevenueEntry(
		id=row.id,
		currency=row.currency or BASE_CURRENCY,
		gross_revenue=row.total_price,
		direct_costs=row.total_expenses,
		allocated_resource_cost=row.vehicle_hire_cost,
		start_date=row.start_date,
		end_date=row.end_date,
	)


_TABLES = {
	RecordKind.BOOKINGS: (BookingDB, _booking),
	RecordKind.FLEET: (VehicleDB, _vehicle),
	RecordKind.REQUISITIONS: (CashRequisitionDB, _requisition),
	RecordKind.LEDGER: (FinancialTransactionDB, _transaction),
	RecordKind.REVENUE_ENTRIES: (SafariBookingDB, _revenue_entry),
}


class SqlRecordStore(RecordStore, RateWriter):
	"""Reads dashboard records from the operational database.

	Rates come from the latest ``exchange_rates`` row per currency, cached in
	Redis when a cache is configured. Change notifications are delegated to a
	ChangeFeed; the database itself does not push events.
	"""

	def __init__(
		self,
		db: Database,
		change_feed: ChangeFeed | None = None,
		rate_cache: RedisRateCache | None = None,
		base_currency: str = BASE_CURRENCY,
	):
		self.db = db
		self.change_feed = change_feed
		self.rate_cache = rate_cache
		self.base_currency = base_currency

	@retry(
		stop=stop_after_attempt(3),
		wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
		retry=retry_if_exception_type(TRANSIENT_ERRORS),
		reraise=True,
	)
	async def _fetch_rows(self, model) -> Sequence:
		async with self.db.session() as session:
			result = await session.execute(select(model))
			return result.scalars().all()

	@retry(
		stop=stop_after_attempt(3),
		wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
		retry=retry_if_exception_type(TRANSIENT_ERRORS),
		reraise=True,
	)
	async def _fetch_rate_rows(self) -> Sequence[ExchangeRateDB]:
		stmt = (
			select(ExchangeRateDB)
			.filter(ExchangeRateDB.from_currency == self.base_currency)
			.order_by(ExchangeRateDB.created_at.desc(), ExchangeRateDB.id.desc())
		)
		async with self.db.session() as session:
			result = await session.execute(stmt)
			return result.scalars().all()

	async def list_records(self, kind: RecordKind) -> Sequence[Record]:
		if kind not in _TABLES:
			raise ValueError(f'{kind.value} is not a record collection')
		model, to_record = _TABLES[kind]
		try:
			rows = await self._fetch_rows(model)
		except (SQLAlchemyError, OSError) as e:
			raise StoreUnavailableError(f'Failed to read {kind.value}: {e}') from e
		return [to_record(row) for row in rows]

	async def current_exchange_rates(self) -> ExchangeRateSnapshot:
		if self.rate_cache is not None:
			cached = await self.rate_cache.get_snapshot(self.base_currency)
			if cached is not None:
				return cached

		try:
			rows = await self._fetch_rate_rows()
		except (SQLAlchemyError, OSError) as e:
			raise StoreUnavailableError(f'Failed to read exchange rates: {e}') from e

		if not rows:
			logger.warning('No exchange rates found in database, using default rates')
			return ExchangeRateSnapshot.defaults(self.base_currency)

		# Rows are newest first, so the first row seen per currency wins.
		latest: dict[str, ExchangeRateDB] = {}
		for row in rows:
			latest.setdefault(row.to_currency, row)

		snapshot = ExchangeRateSnapshot(
			base_currency=self.base_currency,
			rates={code: row.rate for code, row in latest.items()},
			refreshed_at=max(row.created_at for row in latest.values()),
			source='database',
		)
		if self.rate_cache is not None:
			await self.rate_cache.set_snapshot(snapshot)
		return snapshot

	async def save_exchange_rates(self, snapshot: ExchangeRateSnapshot) -> None:
		created_at = snapshot.refreshed_at or datetime.now(UTC)
		try:
			async with self.db.session() as session:
				session.add_all([
					ExchangeRateDB(
						from_currency=snapshot.base_currency,
						to_currency=code,
						rate=rate,
						created_at=created_at,
						source=snapshot.source,
					)
					for code, rate in snapshot.rates.items()
				])
		except (SQLAlchemyError, OSError) as e:
			raise StoreUnavailableError(f'Failed to save exchange rates: {e}') from e

		if self.rate_cache is not None:
			await self.rate_cache.invalidate(snapshot.base_currency)
		logger.info(f'Saved {len(snapshot.rates)} {snapshot.base_currency} rates from {snapshot.source}')

	async def subscribe_to_changes(self, kinds: Iterable[RecordKind], callback: ChangeCallback) -> Subscription:
		if self.change_feed is None:
			raise RuntimeError('SqlRecordStore has no change feed configured')
		return await self.change_feed.subscribe(kinds, callback)
