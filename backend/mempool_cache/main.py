"""FastAPI application hosting the mempool cache"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from mempool_cache.config import settings
from mempool_cache.services.redis_cache import get_redis_cache
from mempool_cache.services.state import BlockStore, MempoolStore
from mempool_cache.api import cache

# Configure logging
log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
logging.basicConfig(
    level=log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logging.getLogger("mempool_cache").setLevel(log_level)
logging.getLogger("uvicorn").setLevel(log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for startup/shutdown"""
    # Startup
    logger.info("Starting mempool cache...")
    redis_cache = get_redis_cache()
    app.state.cache = redis_cache
    app.state.block_store = BlockStore(redis_cache)
    app.state.mempool_store = MempoolStore(redis_cache)
    if redis_cache.enabled:
        await redis_cache.load_cache(app.state.block_store, app.state.mempool_store)
    else:
        logger.info("Redis cache disabled, starting with empty state")

    yield

    # Shutdown
    logger.info("Shutting down mempool cache...")
    await redis_cache.close()


# Create FastAPI app
app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="Redis write-through cache for mempool and block data",
    lifespan=lifespan,
)

app.include_router(cache.router, prefix="/api", tags=["Cache"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": settings.api_title,
        "version": settings.api_version,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
