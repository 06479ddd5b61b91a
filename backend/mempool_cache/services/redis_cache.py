"""Write-through / restore cache of mempool and block data in Redis"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from mempool_cache.config import Settings, settings as default_settings
from mempool_cache.exceptions import CodecError
from mempool_cache.models.blockchain import BlockExtended, BlockSummary, TransactionExtended
from mempool_cache.models.cache import CacheLoadSummary, WriteResult
from mempool_cache.services.redis_store import (
    BLOCK_SUMMARIES_KEY,
    BLOCKS_KEY,
    BatchedFetchEngine,
    DocumentCodec,
    RedisConnector,
    tx_key,
)

logger = logging.getLogger(__name__)

TransactionLike = Union[TransactionExtended, Dict[str, Any]]


def _record_txid(record: TransactionLike) -> str:
    if isinstance(record, TransactionExtended):
        return record.txid
    if isinstance(record, Mapping):
        return record.get("txid")
    raise CodecError("transaction", f"unsupported record type {type(record).__name__}")


class RedisCache:
    """
    Best-effort mirror of the node's mempool and recent blocks.

    Every public operation is a failure boundary: store errors are logged as
    warnings and turned into a safe default (empty results for reads, a
    ``False``/failed ``WriteResult`` for writes). The in-memory state is
    authoritative; the cache only shortens restarts.
    """

    def __init__(
        self,
        connector: Optional[RedisConnector] = None,
        codec: Optional[DocumentCodec] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self._settings = config or default_settings
        self.codec = codec or DocumentCodec()
        self.connector = connector or RedisConnector(
            self._settings, schema_version=self.codec.schema_version
        )
        self._fetcher = BatchedFetchEngine(self.connector, self.codec, self._settings.redis_batch_size)
        self.last_load: Optional[CacheLoadSummary] = None

    @property
    def enabled(self) -> bool:
        return self.connector.enabled

    async def close(self) -> None:
        await self.connector.close()

    # ==================== BLOCKS ====================

    async def replace_blocks(self, blocks: Iterable[Union[BlockExtended, dict]]) -> bool:
        """Overwrite the cached block list. Returns True if the write went through."""
        return await self._replace(BLOCKS_KEY, self.codec.encode_blocks, blocks, "blocks")

    async def replace_block_summaries(self, summaries: Iterable[Union[BlockSummary, dict]]) -> bool:
        """Overwrite the cached block summaries. Returns True if the write went through."""
        return await self._replace(
            BLOCK_SUMMARIES_KEY, self.codec.encode_block_summaries, summaries, "block summaries"
        )

    async def get_blocks(self) -> List[BlockExtended]:
        return await self._read_list(BLOCKS_KEY, self.codec.decode_blocks, "blocks")

    async def get_block_summaries(self) -> List[BlockSummary]:
        return await self._read_list(BLOCK_SUMMARIES_KEY, self.codec.decode_block_summaries, "block summaries")

    async def _replace(self, key: str, encode: Callable[[list], list], records: Iterable[Any], label: str) -> bool:
        if not self.enabled:
            return False
        count: Any = "?"
        try:
            records = list(records)
            count = len(records)
            await self.connector.ensure_connected()
            document = encode(records)
            client = self.connector.client
            await self.connector.execute(f"set {key}", client.json().set(key, "$", document))
        except Exception as exc:
            logger.warning("Failed to update %s %s in Redis cache: %s", count, label, exc)
            return False
        return True

    async def _read_list(self, key: str, decode: Callable[[Any], list], label: str) -> list:
        if not self.enabled:
            return []
        try:
            await self.connector.ensure_connected()
            client = self.connector.client
            document = await self.connector.execute(f"get {key}", client.json().get(key))
            return decode(document)
        except Exception as exc:
            logger.warning("Failed to retrieve %s from Redis cache: %s", label, exc)
            return []

    # ==================== MEMPOOL ====================

    async def add_transactions(self, transactions: Iterable[TransactionLike]) -> WriteResult:
        """Write one document per transaction under ``tx:<txid>``, concurrently."""
        if not self.enabled:
            return WriteResult(skipped=True)

        def make_write(record: TransactionLike) -> Callable[[], Awaitable[Any]]:
            async def write() -> None:
                document = self.codec.encode_transaction(record)
                # Key derived from the encoded record keeps tx:<id> and txid in step
                key = tx_key(document["txid"])
                client = self.connector.client
                await self.connector.execute(f"set {key}", client.json().set(key, "$", document))

            return write

        return await self._fan_out(
            transactions,
            lambda record: tx_key(_record_txid(record)),
            lambda key, record: make_write(record),
            "add {count} transactions to",
        )

    async def remove_transactions(self, txids: Iterable[str]) -> WriteResult:
        """Delete ``tx:<txid>`` for each txid, concurrently."""
        if not self.enabled:
            return WriteResult(skipped=True)

        def make_delete(key: str) -> Callable[[], Awaitable[Any]]:
            return lambda: self.connector.execute(f"del {key}", self.connector.client.delete(key))

        return await self._fan_out(
            txids,
            tx_key,
            lambda key, txid: make_delete(key),
            "remove {count} transactions from",
        )

    async def _fan_out(
        self,
        items: Iterable[Any],
        key_of: Callable[[Any], str],
        make_call: Callable[[str, Any], Callable[[], Awaitable[Any]]],
        action: str,
    ) -> WriteResult:
        """
        Issue one store call per item and collect per-key outcomes.

        Items whose key cannot be derived are reported as failures under
        ``#<index>``. Concurrency is bounded by the connector's command slots.
        """
        result = WriteResult()
        calls: List[Tuple[str, Callable[[], Awaitable[Any]]]] = []
        try:
            for index, item in enumerate(items):
                try:
                    key = key_of(item)
                except Exception as exc:
                    result.failed[f"#{index}"] = f"invalid record: {exc}"
                    continue
                calls.append((key, make_call(key, item)))
        except Exception as exc:
            result.failed["*"] = f"invalid records: {exc}"

        total = len(calls) + len(result.failed)
        if calls:
            try:
                await self.connector.ensure_connected()
            except Exception as exc:
                result.failed.update({key: str(exc) for key, _ in calls})
            else:
                outcomes = await asyncio.gather(*(call() for _, call in calls), return_exceptions=True)
                for (key, _), outcome in zip(calls, outcomes):
                    if isinstance(outcome, Exception):
                        result.failed[key] = str(outcome)
                    else:
                        result.succeeded.append(key)

        if result.failed:
            logger.warning(
                "Failed to %s Redis cache: %s of %s writes failed (%s)",
                action.format(count=total),
                len(result.failed),
                total,
                next(iter(result.failed.values())),
            )
        return result

    async def get_mempool(self) -> Dict[str, TransactionExtended]:
        """
        Restore every cached transaction, keyed by its own txid.

        Returns whatever could be fetched; a failed batch only loses its own keys.
        """
        if not self.enabled:
            return {}
        try:
            await self.connector.ensure_connected()
            fetched = await self._fetcher.fetch()
        except Exception as exc:
            logger.warning("Failed to retrieve mempool from Redis cache: %s", exc)
            return {}

        if fetched.failed_batches or fetched.undecodable:
            first_error = fetched.failed_batches[0][1] if fetched.failed_batches else None
            logger.warning(
                "Partial mempool restore from Redis cache: %s of %s batches failed, "
                "%s undecodable documents skipped, restored %s transactions (%s)",
                len(fetched.failed_batches),
                fetched.batches,
                fetched.undecodable,
                len(fetched.transactions),
                first_error,
            )
        return fetched.transactions

    # ==================== RESTORE ====================

    async def load_cache(self, block_store, mempool_store) -> CacheLoadSummary:
        """
        Restore blocks, block summaries and the mempool into their in-memory owners.

        Each part loads independently; a part that fails arrives empty and the
        others still proceed.
        """
        logger.info("Restoring mempool and blocks data from Redis cache")
        loaded_blocks = await self.get_blocks()
        loaded_summaries = await self.get_block_summaries()
        loaded_mempool = await self.get_mempool()

        block_store.set_blocks(loaded_blocks)
        block_store.set_block_summaries(loaded_summaries)
        await mempool_store.set_mempool(loaded_mempool)

        summary = CacheLoadSummary(
            blocks=len(loaded_blocks),
            block_summaries=len(loaded_summaries),
            transactions=len(loaded_mempool),
            finished_at=time.time(),
        )
        self.last_load = summary
        logger.info(
            "Restored %s blocks, %s block summaries and %s transactions from Redis cache",
            summary.blocks,
            summary.block_summaries,
            summary.transactions,
        )
        return summary


# Global cache instance
_cache: Optional[RedisCache] = None


def get_redis_cache() -> RedisCache:
    """Get or create global RedisCache instance"""
    global _cache
    if _cache is None:
        _cache = RedisCache()
    return _cache
