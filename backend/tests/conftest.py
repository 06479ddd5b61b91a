"""
Pytest fixtures for mempool cache tests
"""
import asyncio
import fnmatch
import json
from typing import Any, Dict, List, Optional, Set

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, ResponseError

from mempool_cache.config import Settings
from mempool_cache.models.blockchain import BlockExtended, BlockSummary, TransactionExtended, TransactionStripped
from mempool_cache.services.redis_cache import RedisCache
from mempool_cache.services.redis_store import SCHEMA_VERSION, SCHEMA_VERSION_KEY, DocumentCodec, RedisConnector


class FakeRedisJSON:
    """The subset of redis-py's ``client.json()`` commands the cache uses"""

    def __init__(self, server: "FakeRedis"):
        self._server = server

    async def set(self, name: str, path: str, obj: Any) -> bool:
        await self._server._command("JSON.SET", name)
        assert path == "$"
        # Round-trip through JSON so non-serializable documents fail like they would on the wire
        self._server.documents[name] = json.loads(json.dumps(obj))
        return True

    async def get(self, name: str, *paths: str) -> Any:
        await self._server._command("JSON.GET", name)
        document = self._server.documents.get(name)
        return json.loads(json.dumps(document)) if document is not None else None

    async def mget(self, keys: List[str], path: str) -> List[Optional[List[Any]]]:
        call_index = len(self._server.mget_batches)
        self._server.mget_batches.append(len(keys))
        await self._server._command("JSON.MGET", *keys)
        if call_index in self._server.fail_mget_calls:
            raise RedisConnectionError("Connection reset by peer")
        assert path == "$"
        return [
            [self._server.documents[key]] if key in self._server.documents else None
            for key in keys
        ]


class FakeRedis:
    """
    In-memory stand-in for a RedisJSON server.

    ``down`` makes every command fail like a dropped connection; ``fail_keys``
    makes commands touching those keys fail with a server error. ``delay``
    keeps each command in flight for a while, and ``max_in_flight`` rejects
    commands beyond that many concurrent ones, like an exhausted connection pool.
    """

    def __init__(self, schema_version: Optional[int] = SCHEMA_VERSION):
        self.documents: Dict[str, Any] = {}
        self.strings: Dict[str, str] = {}
        if schema_version is not None:
            self.strings[SCHEMA_VERSION_KEY] = str(schema_version)
        self.calls: List[str] = []
        self.mget_batches: List[int] = []
        self.fail_mget_calls: Set[int] = set()
        self.fail_keys: Set[str] = set()
        self.down = False
        self.closed = False
        self.delay = 0.0
        self.max_in_flight: Optional[int] = None
        self.in_flight = 0
        self.peak_in_flight = 0

    async def _command(self, name: str, *keys: str) -> None:
        self.calls.append(name)
        if self.down:
            raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")
        for key in keys:
            if key in self.fail_keys:
                raise ResponseError(f"failed on {key}")
        if self.max_in_flight is not None and self.in_flight >= self.max_in_flight:
            raise RedisConnectionError("Too many connections")
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

    def json(self) -> FakeRedisJSON:
        return FakeRedisJSON(self)

    async def ping(self) -> bool:
        await self._command("PING")
        return True

    async def get(self, name: str) -> Optional[str]:
        await self._command("GET", name)
        return self.strings.get(name)

    async def set(self, name: str, value: Any) -> bool:
        await self._command("SET", name)
        self.strings[name] = str(value)
        return True

    async def keys(self, pattern: str) -> List[str]:
        await self._command("KEYS")
        return [key for key in list(self.documents) if fnmatch.fnmatchcase(key, pattern)]

    async def delete(self, *names: str) -> int:
        await self._command("DEL", *names)
        removed = 0
        for name in names:
            if self.documents.pop(name, None) is not None:
                removed += 1
        return removed

    async def aclose(self) -> None:
        self.closed = True


class FakeClientFactory:
    """Hands out the fake client, counting connect attempts"""

    def __init__(self, server: FakeRedis, delay: float = 0.0):
        self.server = server
        self.delay = delay
        self.calls = 0

    async def __call__(self) -> FakeRedis:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.server


def make_settings(**overrides) -> Settings:
    values = {"redis_enabled": True, "redis_command_timeout": 2.0, "redis_connect_timeout": 2.0}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_tx(n: int, **extra) -> TransactionExtended:
    return TransactionExtended(
        txid=f"{n:064x}",
        fee=1000 + n,
        weight=560,
        vsize=140.0,
        feePerVsize=(1000 + n) / 140.0,
        firstSeen=1700000000 + n,
        **extra,
    )


def make_block(height: int, **extra) -> BlockExtended:
    return BlockExtended(
        id=f"{height:064x}",
        height=height,
        timestamp=1700000000 + height * 600,
        tx_count=2,
        size=1200,
        weight=4800,
        previousblockhash=f"{height - 1:064x}" if height else None,
        extras={"totalFees": 5000, "medianFee": 2.5},
        **extra,
    )


def make_summary(height: int) -> BlockSummary:
    return BlockSummary(
        id=f"{height:064x}",
        transactions=[
            TransactionStripped(txid=make_tx(height).txid, fee=1000, vsize=140.0, value=50000, rate=7.1),
        ],
    )


def seed_transactions(server: FakeRedis, count: int) -> List[TransactionExtended]:
    codec = DocumentCodec()
    txs = [make_tx(i) for i in range(count)]
    for tx in txs:
        server.documents[f"tx:{tx.txid}"] = codec.encode_transaction(tx)
    return txs


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def client_factory(fake_redis):
    return FakeClientFactory(fake_redis)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def connector(settings, client_factory):
    return RedisConnector(settings, client_factory=client_factory)


@pytest.fixture
def cache(settings, connector):
    return RedisCache(connector=connector, config=settings)
