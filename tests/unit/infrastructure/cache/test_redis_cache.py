# nosec B101


import json
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from domain.models.currency import ExchangeRateSnapshot
from infrastructure.cache.redis_cache import RedisRateCache


@pytest.mark.asyncio
async def test_get_snapshot_cache_hit_returns_decimal_rates():
    mock_redis = AsyncMock()
    mock_redis.get.return_value = json.dumps({
        'base_currency': 'USD',
        'rates': {'UGX': '3700.25', 'KES': '129.5'},
        'refreshed_at': '2025-06-15T08:00:00',
        'source': 'openexchange',
    })
    cache = RedisRateCache(redis_client=mock_redis)

    snapshot = await cache.get_snapshot('USD')

    assert snapshot.rates['UGX'] == Decimal('3700.25')
    assert isinstance(snapshot.rates['KES'], Decimal)
    assert snapshot.refreshed_at == datetime(2025, 6, 15, 8, 0)
    assert snapshot.source == 'cache'
    mock_redis.get.assert_called_once_with('rates:latest:USD')


@pytest.mark.asyncio
async def test_get_snapshot_cache_miss_returns_none():
    mock_redis = AsyncMock()
    mock_redis.get.return_value = None

    assert await RedisRateCache(redis_client=mock_redis).get_snapshot('USD') is None


@pytest.mark.asyncio
async def test_redis_errors_degrade_to_cache_miss():
    mock_redis = AsyncMock()
    mock_redis.get.side_effect = RedisConnectionError('Connection refused')
    mock_redis.setex.side_effect = RedisConnectionError('Connection refused')
    cache = RedisRateCache(redis_client=mock_redis)

    assert await cache.get_snapshot('USD') is None
    await cache.set_snapshot(ExchangeRateSnapshot(base_currency='USD', rates={'UGX': Decimal('1')}))


@pytest.mark.asyncio
async def test_set_snapshot_uses_ttl_and_string_rates():
    mock_redis = AsyncMock()
    cache = RedisRateCache(redis_client=mock_redis, ttl_seconds=60)
    snapshot = ExchangeRateSnapshot(
        base_currency='USD',
        rates={'UGX': Decimal('3700.123456')},
        refreshed_at=datetime(2025, 6, 15, 8, 0),
        source='database',
    )

    await cache.set_snapshot(snapshot)

    key, ttl, body = mock_redis.setex.call_args[0]
    assert key == 'rates:latest:USD'
    assert ttl == timedelta(seconds=60)
    assert json.loads(body)['rates'] == {'UGX': '3700.123456'}
    assert json.loads(body)['refreshed_at'] == '2025-06-15T08:00:00'


@pytest.mark.asyncio
async def test_invalidate_deletes_key():
    mock_redis = AsyncMock()

    await RedisRateCache(redis_client=mock_redis).invalidate('USD')

    mock_redis.delete.assert_called_once_with('rates:latest:USD')
