import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from application.ports import RateProvider
from domain.exceptions.dashboard import ProviderError
from domain.models.currency import ExchangeRateSnapshot

logger = logging.getLogger(__name__)


class OpenExchangeProvider(RateProvider):
    BASE_URL = "https://openexchangerates.org/api"

    def __init__(self, app_id: str, client: httpx.AsyncClient | None = None, timeout: int = 10):
        self.app_id = app_id
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def name(self) -> str:
        return "openexchange"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((httpx.TransportError,)),
        reraise=True,
    )
    async def _get(self, url: str, params: dict) -> httpx.Response:
        return await self._client.get(url, params=params)

    async def _request(self, endpoint: str, params: dict) -> dict:
        params["app_id"] = self.app_id
        url = f"{self.BASE_URL}/{endpoint}"

        try:
            response = await self._get(url, params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"OpenExchange HTTP error {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.RequestError as e:
            raise ProviderError(f"OpenExchange request failed: {e.__class__.__name__}") from e
        except ValueError as e:
            raise ProviderError(f"OpenExchange response parsing error: {str(e)}") from e

        if "error" in data:
            message = data.get("description", data.get("message", "Unknown error"))
            raise ProviderError(f"OpenExchange API error: {message}")

        return data

    async def fetch_snapshot(self, base_currency: str, symbols: Iterable[str]) -> ExchangeRateSnapshot:
        symbols = list(symbols)
        data = await self._request("latest.json", {"base": base_currency, "symbols": ",".join(symbols)})

        try:
            raw_rates = data["rates"]
            rates = {code: Decimal(str(raw_rates[code])) for code in symbols if code in raw_rates}
        except (KeyError, TypeError, InvalidOperation) as e:
            raise ProviderError(f"Malformed OpenExchange rates payload: {e}") from e

        missing = [code for code in symbols if code not in rates]
        if missing:
            logger.warning(f"OpenExchange returned no rate for {', '.join(missing)}")

        timestamp = data.get("timestamp")
        refreshed_at = datetime.fromtimestamp(timestamp, UTC) if timestamp else datetime.now(UTC)
        return ExchangeRateSnapshot(
            base_currency=data.get("base", base_currency),
            rates=rates,
            refreshed_at=refreshed_at,
            source=self.name,
        )

    async def close(self) -> None:
        await self._client.aclose()
