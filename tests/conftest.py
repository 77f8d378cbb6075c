import json
from typing import Callable, List, Optional

import httpx
import pytest

from intel_sync.cache.freshness_cache import FreshnessCache
from intel_sync.gateway.aggregation import AggregationGateway
from intel_sync.transport.client import IntelligenceTransport

UPSTREAM_URL = "http://intelligence.test"

DASHBOARD_X = {"data": {"alerts": [], "narratives": ["rates"]}, "meta": {"holdings_count": 2}}
DASHBOARD_Y = {"data": {"alerts": [], "narratives": ["earnings"]}, "meta": {"holdings_count": 2}}
SIGNALS_X   = {"data": {"by_signal_type": {}, "by_holding": {}}, "meta": {"days_analyzed": 7}}


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Upstream:
    """
    Scriptable stand-in for the analytics service behind httpx.MockTransport.
    Set .handler to change behaviour mid-test; every request is recorded.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable = self.default

    @staticmethod
    def default(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/signals/aggregate":
            return httpx.Response(200, json=SIGNALS_X)
        if request.url.path == "/api/health":
            return httpx.Response(200, json={"status": "ok"})
        return httpx.Response(200, json=DASHBOARD_X)

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        return self.handler(request)

    def calls_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    @staticmethod
    def body(request: httpx.Request) -> Optional[dict]:
        return json.loads(request.content) if request.content else None


def failing(status: int, error: Optional[dict] = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if error is None:
            return httpx.Response(status, text="upstream exploded")
        return httpx.Response(status, json={"error": error})
    return handler


def make_transport(upstream: Upstream, api_key: str = "test-key",
                   timeout: float = 10.0) -> IntelligenceTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    return IntelligenceTransport(base_url=UPSTREAM_URL, api_key=api_key,
                                 timeout=timeout, client=client)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return FreshnessCache(clock=clock)


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def transport(upstream):
    return make_transport(upstream)


@pytest.fixture
def gateway(transport, cache):
    return AggregationGateway(transport=transport, cache=cache, enabled=True)


@pytest.fixture
def holdings():
    return [
        {"ticker": "AAPL", "weight_pct": 75.0},
        {"ticker": "MSFT", "weight_pct": 25.0},
    ]
