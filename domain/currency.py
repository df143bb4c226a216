import logging
from decimal import ROUND_HALF_UP, Decimal

from domain.exceptions.dashboard import MissingRateError
from domain.models.currency import ExchangeRateSnapshot

logger = logging.getLogger(__name__)

MONEY_QUANTUM = Decimal('0.01')


def _resolve_rate(currency: str, rates: ExchangeRateSnapshot) -> tuple[Decimal, bool]:
	try:
		return rates.rate_for(currency), False
	except MissingRateError:
		return rates.fallback_for(currency), True


def _warn_fallback(currency: str, rates: ExchangeRateSnapshot) -> None:
	logger.warning(
		f'No exchange rate for {currency}; using fallback {rates.fallback_for(currency)} '
		f'(figures in {currency} are approximate)'
	)


def to_base(amount: Decimal, currency: str, rates: ExchangeRateSnapshot) -> Decimal:
	if currency == rates.base_currency:
		return amount
	rate, degraded = _resolve_rate(currency, rates)
	if degraded:
		_warn_fallback(currency, rates)
	return amount / rate


def from_base(amount: Decimal, target_currency: str, rates: ExchangeRateSnapshot) -> Decimal:
	if target_currency == rates.base_currency:
		return amount
	rate, degraded = _resolve_rate(target_currency, rates)
	if degraded:
		_warn_fallback(target_currency, rates)
	return amount * rate


def convert(amount: Decimal, from_currency: str, to_currency: str, rates: ExchangeRateSnapshot) -> Decimal:
	return from_base(to_base(amount, from_currency, rates), to_currency, rates)


def quantize_money(amount: Decimal) -> Decimal:
	return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def round_half_up(value: Decimal) -> int:
	return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


class CurrencyConverter:
	"""Conversion bound to one rate snapshot.

	Warns once per missing currency and remembers which currencies were
	converted with a fallback rate so the snapshot can flag degraded figures.
	"""

	def __init__(self, rates: ExchangeRateSnapshot):
		self.rates = rates
		self._degraded: set[str] = set()

	@property
	def base_currency(self) -> str:
		return self.rates.base_currency

	@property
	def degraded_currencies(self) -> frozenset[str]:
		return frozenset(self._degraded)

	def _rate(self, currency: str) -> Decimal:
		rate, degraded = _resolve_rate(currency, self.rates)
		if degraded and currency not in self._degraded:
			self._degraded.add(currency)
			_warn_fallback(currency, self.rates)
		return rate

	def to_base(self, amount: Decimal, currency: str) -> Decimal:
		if currency == self.rates.base_currency:
			return amount
		return amount / self._rate(currency)

	def from_base(self, amount: Decimal, target_currency: str) -> Decimal:
		if target_currency == self.rates.base_currency:
			return amount
		return amount * self._rate(target_currency)

	def display(self, amount_in_base: Decimal, target_currency: str) -> Decimal:
		return quantize_money(self.from_base(amount_in_base, target_currency))
