"""Services for the mempool cache"""

from .redis_cache import RedisCache, get_redis_cache
from .state import BlockStore, MempoolStore

__all__ = ["RedisCache", "get_redis_cache", "BlockStore", "MempoolStore"]
