import json
import logging
from datetime import datetime, timedelta
from decimal import Decimal

from redis import asyncio as redis
from redis.exceptions import RedisError

from domain.models.currency import ExchangeRateSnapshot

logger = logging.getLogger(__name__)


class RedisRateCache:
    """Caches the latest exchange rate snapshot per base currency."""

    def __init__(self, redis_client: redis.Redis, ttl_seconds: int = 300):
        self.redis = redis_client
        self.rate_ttl = timedelta(seconds=ttl_seconds)

    def _make_key(self, base_currency: str) -> str:
        return f"rates:latest:{base_currency}"

    async def get_snapshot(self, base_currency: str) -> ExchangeRateSnapshot | None:
        try:
            data = await self.redis.get(self._make_key(base_currency))
        except RedisError as e:
            logger.warning(f"Rate cache read failed for {base_currency}: {e}")
            return None

        if not data:
            return None

        snapshot_dict = json.loads(data)
        refreshed_at = snapshot_dict.get("refreshed_at")
        return ExchangeRateSnapshot(
            base_currency=snapshot_dict["base_currency"],
            rates={code: Decimal(rate) for code, rate in snapshot_dict["rates"].items()},
            refreshed_at=datetime.fromisoformat(refreshed_at) if refreshed_at else None,
            source="cache",
        )

    async def set_snapshot(self, snapshot: ExchangeRateSnapshot) -> None:
        snapshot_dict = {
            "base_currency": snapshot.base_currency,
            "rates": {code: str(rate) for code, rate in snapshot.rates.items()},
            "refreshed_at": snapshot.refreshed_at.isoformat() if snapshot.refreshed_at else None,
            "source": snapshot.source,
        }
        try:
            await self.redis.setex(self._make_key(snapshot.base_currency), self.rate_ttl, json.dumps(snapshot_dict))
        except RedisError as e:
            logger.warning(f"Rate cache write failed for {snapshot.base_currency}: {e}")

    async def invalidate(self, base_currency: str) -> None:
        try:
            await self.redis.delete(self._make_key(base_currency))
        except RedisError as e:
            logger.warning(f"Rate cache invalidation failed for {base_currency}: {e}")
