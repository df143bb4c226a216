import asyncio
import json
import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from redis import asyncio as redis
from redis.exceptions import RedisError

from application.ports import ChangeCallback, ChangeFeed, Subscription
from domain.models.records import RecordKind

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "dashboard:changes"


def channel_for(kind: RecordKind) -> str:
    return f"{CHANNEL_PREFIX}:{kind.value}"


class RedisSubscription(Subscription):
    def __init__(self, pubsub, channels: list[str], task: asyncio.Task):
        self._pubsub = pubsub
        self.channels = channels
        self._task = task

    async def unsubscribe(self) -> None:
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        try:
            await self._pubsub.unsubscribe(*self.channels)
            await self._pubsub.aclose()
        except RedisError as e:
            logger.warning(f"Failed to close change subscription cleanly: {e}")


class RedisChangeFeed(ChangeFeed):
    """Change notifications over Redis pub/sub, one channel per record kind.

    Messages carry only the kind and a timestamp; subscribers re-read the
    store, so a duplicate or reordered message is harmless.
    """

    def __init__(self, redis_client: redis.Redis):
        self.redis_client = redis_client

    async def publish(self, kind: RecordKind) -> int:
        channel = channel_for(kind)
        message = {"kind": kind.value, "published_at": datetime.now(UTC).isoformat()}
        try:
            subscriber_count = await self.redis_client.publish(channel, json.dumps(message))
        except RedisError as e:
            logger.error(f"Failed to publish change on {channel}: {e}")
            return 0
        logger.debug(f"Published change on {channel} to {subscriber_count} subscribers")
        return subscriber_count

    async def subscribe(self, kinds: Iterable[RecordKind], callback: ChangeCallback) -> Subscription:
        channels = [channel_for(kind) for kind in kinds]
        pubsub = self.redis_client.pubsub()
        await pubsub.subscribe(*channels)
        logger.info(f"Subscribed to {', '.join(channels)}")
        task = asyncio.create_task(self._listen(pubsub, callback))
        return RedisSubscription(pubsub, channels, task)

    async def _listen(self, pubsub, callback: ChangeCallback) -> None:
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    callback()
                except Exception as e:
                    logger.error(f"Change callback failed for {message['channel']}: {e}")
        except RedisError as e:
            logger.error(f"Pub/Sub listener stopped: {e}")
