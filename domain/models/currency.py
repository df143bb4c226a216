from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType

from domain.exceptions.dashboard import MissingRateError

BASE_CURRENCY = 'USD'

# Units of currency per one unit of base, used when the rate table has no entry.
DEFAULT_RATES: Mapping[str, Decimal] = MappingProxyType({
	'USD': Decimal('1'),
	'UGX': Decimal('3670'),
	'KES': Decimal('130'),
})

# Rate applied to a currency that has neither a live rate nor a default:
# the amount is treated as if it were already in base currency.
DEFAULT_FALLBACK_RATE = Decimal('1')


@dataclass(frozen=True)
class ExchangeRateSnapshot:
	base_currency: str
	rates: Mapping[str, Decimal]
	refreshed_at: datetime | None = None
	fallbacks: Mapping[str, Decimal] = field(default_factory=lambda: DEFAULT_RATES)
	source: str = 'store'

	def __post_init__(self):
		# Freeze the mappings so a published snapshot can never change under a reader.
		object.__setattr__(self, 'rates', MappingProxyType(dict(self.rates)))
		object.__setattr__(self, 'fallbacks', MappingProxyType(dict(self.fallbacks)))

	def rate_for(self, currency: str) -> Decimal:
		if currency == self.base_currency:
			return Decimal('1')
		rate = self.rates.get(currency)
		if rate is None or rate <= 0:
			raise MissingRateError(currency)
		return rate

	def fallback_for(self, currency: str) -> Decimal:
		return self.fallbacks.get(currency, DEFAULT_FALLBACK_RATE)

	def with_rates(self, rates: Mapping[str, Decimal], refreshed_at: datetime, source: str) -> 'ExchangeRateSnapshot':
		return ExchangeRateSnapshot(
			base_currency=self.base_currency,
			rates=rates,
			refreshed_at=refreshed_at,
			fallbacks=self.fallbacks,
			source=source,
		)

	@classmethod
	def defaults(cls, base_currency: str = BASE_CURRENCY) -> 'ExchangeRateSnapshot':
		return cls(base_currency=base_currency, rates=DEFAULT_RATES, source='defaults')
