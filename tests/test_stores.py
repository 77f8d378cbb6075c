import json

import pytest
from fakeredis import aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

from intel_sync.stores.portfolio_store import (
    InMemoryPortfolioStore, Portfolio, RedisPortfolioStore, pick_default_portfolio,
    resolve_portfolio,
)
from intel_sync.stores.redis_client import RedisConnection
from intel_sync.stores.ui_marker import RedisMarkerStore


@pytest.fixture
def redis():
    return aioredis.FakeRedis(decode_responses=True)


def test_default_portfolio_prefers_first_active():
    portfolios = [Portfolio("a", is_active=False), Portfolio("b"), Portfolio("c")]
    assert pick_default_portfolio(portfolios).id == "b"


def test_default_portfolio_falls_back_to_first():
    portfolios = [Portfolio("a", is_active=False), Portfolio("b", is_active=False)]
    assert pick_default_portfolio(portfolios).id == "a"
    assert pick_default_portfolio([]) is None


def test_resolve_by_id_or_default():
    portfolios = [Portfolio("a"), Portfolio("b")]
    assert resolve_portfolio(portfolios, "b").id == "b"
    assert resolve_portfolio(portfolios, "zzz") is None
    assert resolve_portfolio(portfolios, None).id == "a"


@pytest.mark.asyncio
async def test_in_memory_store_round_trip():
    store = InMemoryPortfolioStore()
    store.add_portfolio("u1", Portfolio("p1", "Main"))
    store.set_holdings("p1", [])
    assert [p.id for p in await store.list_portfolios("u1")] == ["p1"]
    assert await store.list_portfolios("nobody") == []
    assert await store.get_holdings("p1") == []


@pytest.mark.asyncio
async def test_redis_store_reads_json_layout(redis):
    await redis.set("portfolios:u1", json.dumps([
        {"id": "p1", "name": "Growth", "is_active": False},
        {"id": "p2", "name": "Income"},
    ]))
    await redis.set("holdings:p2", json.dumps([
        {"symbol": "AAPL", "quantity": "10", "average_price": 150},
        {"quantity": 3},
    ]))
    store = RedisPortfolioStore(redis)

    portfolios = await store.list_portfolios("u1")
    assert [(p.id, p.name, p.is_active) for p in portfolios] == [
        ("p1", "Growth", False),
        ("p2", "Income", True),
    ]

    holdings = await store.get_holdings("p2")
    assert len(holdings) == 1
    assert holdings[0].symbol == "AAPL"
    assert holdings[0].quantity == 10.0


@pytest.mark.asyncio
async def test_redis_store_missing_or_corrupt_keys_read_as_empty(redis):
    await redis.set("portfolios:u2", "{not json")
    store = RedisPortfolioStore(redis)
    assert await store.list_portfolios("u2") == []
    assert await store.list_portfolios("u3") == []
    assert await store.get_holdings("p9") == []


@pytest.mark.asyncio
async def test_redis_marker(redis):
    await redis.set("ui:alerts_last_seen:u1", "1709287200")
    await redis.set("ui:alerts_last_seen:u2", "yesterday")
    marker = RedisMarkerStore(redis)

    assert await marker.last_seen("u1") == 1709287200.0
    assert await marker.last_seen("u2") is None
    assert await marker.last_seen("u3") is None


# ── Connection ────────────────────────────────────────────────

class DownRedis:
    """Client whose server never answers."""

    def __init__(self):
        self.closed = False

    async def ping(self):
        raise RedisConnectionError("connection refused")

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_connection_without_url_stays_in_memory():
    opened = []
    conn = RedisConnection("", factory=lambda url, **kw: opened.append(url))
    assert await conn.connect() is None
    assert opened == []


@pytest.mark.asyncio
async def test_connection_is_opened_once_and_reused(redis):
    opened = []

    def factory(url, **kw):
        opened.append((url, kw))
        return redis

    conn = RedisConnection("redis://cache.test:6379", factory=factory)
    assert await conn.connect() is redis
    assert await conn.connect() is redis
    assert opened == [("redis://cache.test:6379", {"decode_responses": True, "socket_timeout": 2})]
    assert conn.connected

    await conn.close()
    assert not conn.connected


@pytest.mark.asyncio
async def test_unreachable_server_gives_none_and_retries_later(redis):
    down = DownRedis()
    clients = [down, redis]
    conn = RedisConnection("redis://cache.test:6379", factory=lambda url, **kw: clients.pop(0))

    assert await conn.connect() is None
    assert down.closed
    assert not conn.connected
    assert await conn.connect() is redis
