"""Tests for the host application bootstrap and status endpoint"""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeClientFactory, FakeRedis, make_block, make_settings, seed_transactions
from mempool_cache.services import redis_cache
from mempool_cache.services.redis_cache import RedisCache
from mempool_cache.services.redis_store import BLOCKS_KEY, DocumentCodec, RedisConnector
from mempool_cache import main


@pytest.fixture
def seeded_server():
    server = FakeRedis()
    seed_transactions(server, 4)
    server.documents[BLOCKS_KEY] = DocumentCodec().encode_blocks([make_block(1)])
    return server


def install_cache(monkeypatch, server, **overrides):
    settings = make_settings(**overrides)
    cache = RedisCache(RedisConnector(settings, client_factory=FakeClientFactory(server)), config=settings)
    monkeypatch.setattr(redis_cache, "_cache", cache)
    return cache


class TestApp:
    """Startup restore wired through the FastAPI lifespan"""

    def test_startup_restores_cache(self, monkeypatch, seeded_server):
        install_cache(monkeypatch, seeded_server)

        with TestClient(main.app) as client:
            response = client.get("/api/cache/status")
            assert len(main.app.state.mempool_store) == 4
            assert main.app.state.block_store.blocks[0].height == 1

        assert response.status_code == 200
        data = response.json()
        assert data["enabled"] is True
        assert data["connected"] is True
        assert data["restored_blocks"] == 1
        assert data["restored_transactions"] == 4
        assert data["mempool_size"] == 4
        assert seeded_server.closed

    def test_disabled_cache_starts_empty(self, monkeypatch, seeded_server):
        install_cache(monkeypatch, seeded_server, redis_enabled=False)

        with TestClient(main.app) as client:
            data = client.get("/api/cache/status").json()

        assert data["enabled"] is False
        assert data["connected"] is False
        assert data["restored_transactions"] is None
        assert seeded_server.calls == []

    def test_store_down_does_not_block_startup(self, monkeypatch, seeded_server):
        seeded_server.down = True
        install_cache(monkeypatch, seeded_server)

        with TestClient(main.app) as client:
            assert client.get("/health").json() == {"status": "healthy"}
            data = client.get("/api/cache/status").json()

        assert data["connected"] is False
        assert data["restored_transactions"] == 0
