"""
Document codec for the Redis cache.

Records are stored as RedisJSON documents that mirror the models' JSON form
(camelCase aliases included), so the stored shape stays readable by other
consumers of the same keys. Decoding validates every document against its
model; anything that does not fit raises ``CodecError`` instead of leaking an
unvalidated dict into the node's in-memory state.

``SCHEMA_VERSION`` must be bumped whenever a model change makes previously
stored documents unreadable; the connector wipes the cache on mismatch.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from mempool_cache.exceptions import CodecError
from mempool_cache.models.blockchain import BlockExtended, BlockSummary, TransactionExtended

SCHEMA_VERSION = 1

BLOCKS_KEY = "blocks"
BLOCK_SUMMARIES_KEY = "block-summaries"
SCHEMA_VERSION_KEY = "schema-version"
TX_KEY_PREFIX = "tx:"
TX_KEY_PATTERN = TX_KEY_PREFIX + "*"

ModelT = TypeVar("ModelT", bound=BaseModel)


def tx_key(txid: str) -> str:
    """Store key for a transaction; the prefix keeps txids clear of the singleton keys"""
    if not isinstance(txid, str) or not txid:
        raise CodecError("transaction", f"invalid txid {txid!r}")
    return TX_KEY_PREFIX + txid


class DocumentCodec:
    """Converts record models to and from stored JSON documents"""

    schema_version = SCHEMA_VERSION

    def encode_blocks(self, blocks: Iterable[Union[BlockExtended, dict]]) -> List[dict]:
        return [self._encode(BlockExtended, block, "block") for block in blocks]

    def decode_blocks(self, document: Any) -> List[BlockExtended]:
        return self._decode_list(BlockExtended, document, "blocks")

    def encode_block_summaries(self, summaries: Iterable[Union[BlockSummary, dict]]) -> List[dict]:
        return [self._encode(BlockSummary, summary, "block summary") for summary in summaries]

    def decode_block_summaries(self, document: Any) -> List[BlockSummary]:
        return self._decode_list(BlockSummary, document, "block-summaries")

    def encode_transaction(self, tx: Union[TransactionExtended, dict]) -> dict:
        return self._encode(TransactionExtended, tx, "transaction")

    def decode_transaction(self, document: Any) -> TransactionExtended:
        if not isinstance(document, dict):
            raise CodecError("transaction", f"expected object, got {type(document).__name__}")
        try:
            return TransactionExtended.model_validate(document)
        except ValidationError as exc:
            raise CodecError("transaction", str(exc)) from exc

    def _encode(self, model: Type[ModelT], record: Union[ModelT, dict], kind: str) -> dict:
        if not isinstance(record, model):
            try:
                record = model.model_validate(record)
            except ValidationError as exc:
                raise CodecError(kind, str(exc)) from exc
        return record.model_dump(mode="json", by_alias=True)

    def _decode_list(self, model: Type[ModelT], document: Any, kind: str) -> List[ModelT]:
        if document is None:
            return []
        if not isinstance(document, list):
            raise CodecError(kind, f"expected array, got {type(document).__name__}")
        try:
            return [model.model_validate(item) for item in document]
        except ValidationError as exc:
            raise CodecError(kind, str(exc)) from exc
