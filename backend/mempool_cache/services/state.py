"""In-memory block and mempool state, mirrored to the Redis cache on change"""

import logging
from typing import Dict, Iterable, List, Optional

from mempool_cache.models.blockchain import BlockExtended, BlockSummary, TransactionExtended
from mempool_cache.models.cache import WriteResult
from mempool_cache.services.redis_cache import RedisCache

logger = logging.getLogger(__name__)


class BlockStore:
    """Recent blocks and their summaries, replaced wholesale"""

    def __init__(self, cache: Optional[RedisCache] = None):
        self._cache = cache
        self.blocks: List[BlockExtended] = []
        self.block_summaries: List[BlockSummary] = []

    def set_blocks(self, blocks: Iterable[BlockExtended]) -> None:
        self.blocks = list(blocks)

    def set_block_summaries(self, summaries: Iterable[BlockSummary]) -> None:
        self.block_summaries = list(summaries)

    async def update_blocks(self, blocks: Iterable[BlockExtended]) -> None:
        self.set_blocks(blocks)
        if self._cache:
            await self._cache.replace_blocks(self.blocks)

    async def update_block_summaries(self, summaries: Iterable[BlockSummary]) -> None:
        self.set_block_summaries(summaries)
        if self._cache:
            await self._cache.replace_block_summaries(self.block_summaries)


class MempoolStore:
    """Unconfirmed transactions keyed by txid, mutated incrementally"""

    def __init__(self, cache: Optional[RedisCache] = None):
        self._cache = cache
        self._transactions: Dict[str, TransactionExtended] = {}

    def __len__(self) -> int:
        return len(self._transactions)

    def __contains__(self, txid: str) -> bool:
        return txid in self._transactions

    def get(self, txid: str) -> Optional[TransactionExtended]:
        return self._transactions.get(txid)

    def snapshot(self) -> Dict[str, TransactionExtended]:
        return dict(self._transactions)

    async def set_mempool(self, mempool: Dict[str, TransactionExtended]) -> None:
        """Replace the whole mempool (used once, on restore)"""
        self._transactions = dict(mempool)
        logger.info("Mempool set with %s transactions", len(self._transactions))

    async def add_transactions(self, transactions: Iterable[TransactionExtended]) -> Optional[WriteResult]:
        added = [tx for tx in transactions if tx.txid not in self._transactions]
        for tx in added:
            self._transactions[tx.txid] = tx
        if self._cache and added:
            return await self._cache.add_transactions(added)
        return None

    async def remove_transactions(self, txids: Iterable[str]) -> Optional[WriteResult]:
        removed = [txid for txid in txids if self._transactions.pop(txid, None) is not None]
        if self._cache and removed:
            return await self._cache.remove_transactions(removed)
        return None
