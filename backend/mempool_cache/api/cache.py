"""Cache status API endpoint"""

from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from mempool_cache.services.redis_cache import get_redis_cache

router = APIRouter()


class CacheStatusResponse(BaseModel):
    """Runtime state of the Redis cache"""

    enabled: bool = Field(..., description="Whether the Redis cache is configured")
    connected: bool = Field(..., description="Whether the Redis client is connected")
    schema_version: int = Field(..., description="Document schema version in use")
    restored_blocks: Optional[int] = Field(None, description="Blocks restored at startup")
    restored_block_summaries: Optional[int] = Field(None, description="Block summaries restored at startup")
    restored_transactions: Optional[int] = Field(None, description="Transactions restored at startup")
    mempool_size: int = Field(default=0, description="Transactions currently held in memory")


@router.get("/cache/status", response_model=CacheStatusResponse)
async def get_cache_status(request: Request):
    """Return connection state and what the last restore loaded."""

    cache = getattr(request.app.state, "cache", None) or get_redis_cache()
    mempool_store = getattr(request.app.state, "mempool_store", None)
    last_load = cache.last_load

    return CacheStatusResponse(
        enabled=cache.enabled,
        connected=cache.connector.connected,
        schema_version=cache.codec.schema_version,
        restored_blocks=last_load.blocks if last_load else None,
        restored_block_summaries=last_load.block_summaries if last_load else None,
        restored_transactions=last_load.transactions if last_load else None,
        mempool_size=len(mempool_store) if mempool_store is not None else 0,
    )
