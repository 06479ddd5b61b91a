"""
Connection lifecycle for the Redis cache.

The connector owns the client handle and a resolve-once connect gate: the
first caller of ``ensure_connected()`` starts a connect task, every concurrent
caller awaits that same task, and a successful connect is never repeated.
A failed attempt clears the gate so the next caller may try again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from mempool_cache.config import Settings, settings as default_settings
from mempool_cache.exceptions import CacheConnectionError, StoreOperationError
from .codec import (
    BLOCK_SUMMARIES_KEY,
    BLOCKS_KEY,
    SCHEMA_VERSION,
    SCHEMA_VERSION_KEY,
    TX_KEY_PATTERN,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
ClientFactory = Callable[[], Awaitable[aioredis.Redis]]


class RedisConnector:
    """Lazily connects to Redis and bounds every store call with a deadline"""

    def __init__(
        self,
        config: Optional[Settings] = None,
        client_factory: Optional[ClientFactory] = None,
        schema_version: int = SCHEMA_VERSION,
    ) -> None:
        self._settings = config or default_settings
        self._client_factory = client_factory or self._create_client
        self._schema_version = schema_version
        self._client: Optional[aioredis.Redis] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._command_slots = asyncio.Semaphore(self._settings.redis_max_concurrent_commands)
        self.enabled = self._settings.redis_enabled
        self.connected = False
        self.connect_attempts = 0

    @property
    def schema_version(self) -> int:
        return self._schema_version

    @property
    def client(self) -> aioredis.Redis:
        if self._client is None or not self.connected:
            raise CacheConnectionError("Redis client is not connected")
        return self._client

    async def _create_client(self) -> aioredis.Redis:
        return await aioredis.from_url(
            self._settings.redis_url,
            password=self._settings.redis_password if self._settings.redis_password else None,
            decode_responses=True,
            socket_connect_timeout=self._settings.redis_connect_timeout,
            max_connections=self._settings.redis_max_concurrent_commands,
        )

    async def ensure_connected(self) -> None:
        """
        Make sure the client is connected before a store call.

        No-op when already connected or when the cache is disabled.

        Raises:
            CacheConnectionError: the connect sequence failed
        """
        if not self.enabled or self.connected:
            return

        if self._connect_task is None:
            self._connect_task = asyncio.create_task(self._connect())
        task = self._connect_task

        try:
            # Shielded so a cancelled caller doesn't abort the attempt other callers share
            await asyncio.shield(task)
        except CacheConnectionError:
            if self._connect_task is task:
                self._connect_task = None
            raise

    async def _connect(self) -> None:
        self.connect_attempts += 1
        timeout = self._settings.redis_connect_timeout
        client: Optional[aioredis.Redis] = None
        try:
            client = await asyncio.wait_for(self._client_factory(), timeout=timeout)
            await asyncio.wait_for(client.ping(), timeout=timeout)
            await self._check_schema(client)
        except Exception as exc:
            if client is not None:
                await self._discard(client)
            raise CacheConnectionError(f"Redis connection failed: {exc}") from exc

        self._client = client
        self.connected = True
        logger.info("Redis client connected")

    async def _check_schema(self, client: aioredis.Redis) -> None:
        """Wipe cached documents written under a different schema version"""
        stored = await self.execute("get schema version", client.get(SCHEMA_VERSION_KEY))
        if stored is not None and str(stored) == str(self._schema_version):
            return

        if stored is None:
            logger.info("Redis cache has no schema version, initializing at v%s", self._schema_version)
        else:
            logger.warning(
                "Redis cache schema v%s does not match v%s - wiping cached data",
                stored,
                self._schema_version,
            )

        tx_keys = await self.execute("enumerate transactions", client.keys(TX_KEY_PATTERN))
        keys = [BLOCKS_KEY, BLOCK_SUMMARIES_KEY, *tx_keys]
        batch_size = self._settings.redis_batch_size
        for i in range(0, len(keys), batch_size):
            await self.execute("wipe cache", client.delete(*keys[i : i + batch_size]))
        await self.execute("set schema version", client.set(SCHEMA_VERSION_KEY, self._schema_version))

    async def execute(self, operation: str, awaitable: Awaitable[T]) -> T:
        """
        Await a single store call under the configured deadline.

        At most ``redis_max_concurrent_commands`` calls are in flight at once;
        the deadline starts once a slot is acquired.

        Raises:
            StoreOperationError: the call failed or timed out
        """
        timeout = self._settings.redis_command_timeout
        async with self._command_slots:
            try:
                return await asyncio.wait_for(awaitable, timeout=timeout)
            except asyncio.TimeoutError as exc:
                raise StoreOperationError(operation, f"timed out after {timeout:.1f}s") from exc
            except (RedisError, OSError) as exc:
                raise StoreOperationError(operation, str(exc)) from exc

    async def close(self) -> None:
        """Close the Redis connection"""
        client = self._client
        self._client = None
        self._connect_task = None
        self.connected = False
        if client is not None:
            await self._discard(client)

    async def _discard(self, client: aioredis.Redis) -> None:
        try:
            await client.aclose()
        except Exception as exc:
            logger.debug("Error closing Redis client: %s", exc)
