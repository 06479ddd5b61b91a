"""Concurrent, batched restore of the cached mempool"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from mempool_cache.exceptions import CodecError
from mempool_cache.models.blockchain import TransactionExtended
from .codec import TX_KEY_PATTERN, DocumentCodec
from .connector import RedisConnector

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10000


@dataclass
class MempoolFetchResult:
    """Transactions recovered by a fetch plus what went wrong along the way"""

    transactions: Dict[str, TransactionExtended] = field(default_factory=dict)
    keys: int = 0
    batches: int = 0
    failed_batches: List[Tuple[int, Exception]] = field(default_factory=list)
    undecodable: int = 0


class BatchedFetchEngine:
    """
    Rebuilds the mempool from ``tx:*`` documents.

    The key set is enumerated once with KEYS, split into batches of
    ``batch_size`` keys and fetched with one JSON.MGET per batch. All batches
    run concurrently; the fetch returns once every batch has resolved. A batch
    that fails contributes nothing but does not stop the others.
    """

    def __init__(
        self,
        connector: RedisConnector,
        codec: DocumentCodec,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._connector = connector
        self._codec = codec
        self.batch_size = batch_size

    def partition(self, keys: Sequence[str]) -> List[Sequence[str]]:
        return [keys[i : i + self.batch_size] for i in range(0, len(keys), self.batch_size)]

    async def fetch(self) -> MempoolFetchResult:
        """
        Fetch every cached transaction.

        Raises:
            StoreOperationError: key enumeration failed (nothing was fetched)
        """
        client = self._connector.client
        keys = await self._connector.execute("enumerate transactions", client.keys(TX_KEY_PATTERN))

        result = MempoolFetchResult(keys=len(keys))
        batches = self.partition(keys)
        result.batches = len(batches)
        if not batches:
            return result

        outcomes = await asyncio.gather(
            *(self._fetch_batch(batch, result) for batch in batches),
            return_exceptions=True,
        )
        for index, outcome in enumerate(outcomes):
            if isinstance(outcome, Exception):
                result.failed_batches.append((index, outcome))

        logger.debug(
            "Fetched %s transactions from %s keys in %s batches (%s failed, %s undecodable)",
            len(result.transactions),
            result.keys,
            result.batches,
            len(result.failed_batches),
            result.undecodable,
        )
        return result

    async def _fetch_batch(self, keys: Sequence[str], result: MempoolFetchResult) -> None:
        client = self._connector.client
        chunk = await self._connector.execute(
            f"mget {len(keys)} transactions", client.json().mget(list(keys), "$")
        )
        for matches in chunk:
            # "$" path queries return a list of matches per key, None for missing keys
            if not matches:
                continue
            for document in matches:
                if document is None:
                    continue
                try:
                    tx = self._codec.decode_transaction(document)
                except CodecError as exc:
                    result.undecodable += 1
                    logger.debug("Skipping cached transaction: %s", exc)
                    continue
                result.transactions[tx.txid] = tx
