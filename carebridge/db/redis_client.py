"""
Redis connection and Pub/Sub management for the realtime transport.
"""
import json
import logging
import asyncio
from typing import Optional, Dict, Any, List, Callable

import redis.asyncio as redis
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import ConnectionError, RedisError

from carebridge.core.config import settings

logger = logging.getLogger(__name__)


class RedisManager:
    """Redis connection manager with connection pooling and health monitoring."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.redis_url
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = None
        self._pubsub_client: Optional[Redis] = None
        self._is_connected = False

    async def connect(self):
        """Initialize Redis connection pool and clients."""
        try:
            self._pool = ConnectionPool.from_url(
                self.url,
                max_connections=20,
                retry_on_timeout=True,
                socket_keepalive=True,
                health_check_interval=30,
                decode_responses=True,
            )

            self._client = Redis(connection_pool=self._pool)

            # Separate client for Pub/Sub
            self._pubsub_client = Redis(connection_pool=self._pool)

            await self._client.ping()
            self._is_connected = True

            logger.info("Redis connection established successfully")

        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            self._is_connected = False
            raise

    async def disconnect(self):
        """Close Redis connections and cleanup resources."""
        try:
            if self._client:
                await self._client.aclose()
            if self._pubsub_client:
                await self._pubsub_client.aclose()
            if self._pool:
                await self._pool.disconnect()

            self._is_connected = False
            logger.info("Redis connections closed successfully")

        except RedisError as e:
            logger.error(f"Error closing Redis connections: {e}")

    @property
    def client(self) -> Redis:
        """Get the main Redis client."""
        if not self._is_connected or not self._client:
            raise ConnectionError("Redis client not connected")
        return self._client

    @property
    def pubsub_client(self) -> Redis:
        """Get the Pub/Sub Redis client."""
        if not self._is_connected or not self._pubsub_client:
            raise ConnectionError("Redis Pub/Sub client not connected")
        return self._pubsub_client

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform Redis health check.

        Returns:
            dict: Health check results
        """
        health_status = {
            "redis": "unknown",
            "details": {}
        }

        try:
            if self._client:
                pong = await self._client.ping()
                if pong:
                    health_status["redis"] = "healthy"
                    info = await self._client.info()
                    health_status["details"] = {
                        "redis_version": info.get("redis_version"),
                        "connected_clients": info.get("connected_clients"),
                        "pubsub_channels": info.get("pubsub_channels"),
                    }
                else:
                    health_status["redis"] = "unhealthy"
            else:
                health_status["redis"] = "disconnected"

        except RedisError as e:
            health_status["redis"] = "unhealthy"
            health_status["details"]["error"] = str(e)
            logger.error(f"Redis health check failed: {e}")

        return health_status


class RedisPubSub:
    """Redis Pub/Sub fan-out: one listener task, many callbacks per channel."""

    def __init__(self, redis_manager: RedisManager):
        self.redis_manager = redis_manager
        self._subscribers: Dict[str, List[Callable]] = {}
        self._pubsub = None
        self._listening_task = None

    async def subscribe(self, channel: str, callback: Callable[[str, Dict[str, Any]], Any]):
        """
        Subscribe to a channel with callback function.

        Args:
            channel: Channel name to subscribe to
            callback: Sync or async function called with (channel, payload)
        """
        first_for_channel = channel not in self._subscribers
        self._subscribers.setdefault(channel, []).append(callback)

        if not self._pubsub:
            self._pubsub = self.redis_manager.pubsub_client.pubsub()

        if first_for_channel:
            await self._pubsub.subscribe(channel)
            logger.info(f"Subscribed to channel: {channel}")

        # listen() returns immediately while nothing is subscribed
        if self._listening_task is None or self._listening_task.done():
            self._listening_task = asyncio.create_task(self._listen_for_messages())

    async def unsubscribe(self, channel: str, callback: Optional[Callable] = None):
        """
        Unsubscribe from a channel.

        Args:
            channel: Channel name to unsubscribe from
            callback: Specific callback to remove (if None, removes all)
        """
        if channel not in self._subscribers:
            return

        if callback:
            if callback in self._subscribers[channel]:
                self._subscribers[channel].remove(callback)
        else:
            self._subscribers[channel].clear()

        if not self._subscribers[channel]:
            del self._subscribers[channel]
            if self._pubsub:
                await self._pubsub.unsubscribe(channel)
            logger.info(f"Unsubscribed from channel: {channel}")

    async def _dispatch(self, channel: str, payload: Dict[str, Any]):
        for callback in list(self._subscribers.get(channel, [])):
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(channel, payload)
                else:
                    callback(channel, payload)
            except Exception as e:
                logger.error(f"Error in callback for channel {channel}: {e}", exc_info=True)

    async def _listen_for_messages(self):
        """Internal method to listen for Pub/Sub messages."""
        try:
            async for message in self._pubsub.listen():
                if message["type"] != "message":
                    continue
                channel = message["channel"]
                try:
                    parsed_data = json.loads(message["data"])
                except (json.JSONDecodeError, TypeError) as e:
                    logger.error(f"Failed to parse message from channel {channel}: {e}")
                    continue
                await self._dispatch(channel, parsed_data)

        except asyncio.CancelledError:
            raise
        except RedisError as e:
            logger.error(f"Error in Pub/Sub listener: {e}")

    async def close(self):
        """Close Pub/Sub connections and cleanup."""
        if self._listening_task:
            self._listening_task.cancel()
            try:
                await self._listening_task
            except asyncio.CancelledError:
                pass
            self._listening_task = None

        if self._pubsub:
            await self._pubsub.aclose()
            self._pubsub = None

        self._subscribers.clear()
        logger.info("Pub/Sub connections closed")


# Global Redis manager instance
redis_manager = RedisManager()

# Global Pub/Sub instance (realtime transport)
redis_pubsub = RedisPubSub(redis_manager)


async def init_redis():
    """Initialize Redis connections."""
    await redis_manager.connect()


async def close_redis():
    """Close Redis connections."""
    await redis_pubsub.close()
    await redis_manager.disconnect()
