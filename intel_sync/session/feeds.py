"""
Intel Sync — Session Feeds
───────────────────────────
Where a ClientSyncSession gets its data from. A feed returns the latest
known payload for one subject:

  { "dashboard": <dashboard response>, "signals": <signal aggregation response> }

plus a single stale flag (either half stale → stale). Feeds raise on failure;
the session turns the exception into a status and a message.

  GatewayFeed  in-process: portfolio store → weights → AggregationGateway
  HttpFeed     remote: the BFF routes over HTTP, stale flag from X-Data-Stale
"""

import asyncio
import logging
from typing import Any, NamedTuple, Optional, Protocol
from urllib.parse import urlencode

import httpx

from intel_sync.cache.ttl_config import DEFAULT_SIGNAL_DAYS
from intel_sync.config import BFF_URL, REQUEST_TIMEOUT, USER_HEADER
from intel_sync.gateway.aggregation import AggregationGateway
from intel_sync.gateway.mappers import compute_portfolio_weights
from intel_sync.models.outcome import Failure
from intel_sync.stores.portfolio_store import PortfolioStore
from intel_sync.transport.client import IntelligenceTransport

log = logging.getLogger("intel.session")


class FeedResult(NamedTuple):
    data:  Any
    stale: bool


class Feed(Protocol):

    async def fetch(self, subject_id: str) -> FeedResult: ...


class GatewayFeed:

    def __init__(self, gateway: AggregationGateway, store: PortfolioStore,
                 days: int = DEFAULT_SIGNAL_DAYS):
        self.gateway = gateway
        self.store   = store
        self.days    = days

    async def fetch(self, subject_id: str) -> FeedResult:
        holdings = await self.store.get_holdings(subject_id)
        weights  = compute_portfolio_weights(holdings)
        dashboard, signals = await asyncio.gather(
            self.gateway.fetch_dashboard(weights),
            self.gateway.fetch_signal_aggregation(weights, self.days),
        )
        return FeedResult(
            data  = {"dashboard": dashboard.payload, "signals": signals.payload},
            stale = dashboard.stale or signals.stale,
        )


class HttpFeed:
    """Reads the BFF the same way a browser would, as one user."""

    def __init__(self, user_id: str, base_url: str = BFF_URL,
                 days: int = DEFAULT_SIGNAL_DAYS,
                 timeout: float = REQUEST_TIMEOUT,
                 client: Optional[httpx.AsyncClient] = None):
        self.user_id   = user_id
        self.days      = days
        self.transport = IntelligenceTransport(base_url=base_url, api_key="",
                                               timeout=timeout, client=client)

    async def fetch(self, subject_id: str) -> FeedResult:
        headers = {USER_HEADER: self.user_id}
        dashboard_q = urlencode({"portfolioId": subject_id})
        signals_q   = urlencode({"portfolioId": subject_id, "days": self.days})
        dashboard, signals = await asyncio.gather(
            self.transport.call(f"/api/intelligence/dashboard?{dashboard_q}", headers=headers),
            self.transport.call(f"/api/intelligence/signals/aggregate?{signals_q}", headers=headers),
        )
        for outcome in (dashboard, signals):
            if isinstance(outcome, Failure):
                raise outcome.to_error()
        return FeedResult(
            data  = {"dashboard": dashboard.payload, "signals": signals.payload},
            stale = dashboard.upstream_stale or signals.upstream_stale,
        )

    async def aclose(self) -> None:
        await self.transport.aclose()
