"""
Intel Sync — Aggregation Gateway
─────────────────────────────────
Composes the transport wrapper and the freshness cache into request/response
operations. Every cached operation follows the same path:

  1. derive a cache key from the normalised request
  2. fresh hit                 → (payload, stale=False), no network call
  3. miss → upstream call
       Success                 → put(key, payload, ttl) → (payload, stale=upstream flag)
       Failure + stale entry   → (old payload, stale=True)
       Failure + nothing       → raise IntelligenceError (never invent data)

No retries happen here; the only recovery is serving what was cached before.
Two concurrent misses on one key make two upstream calls and two
last-writer-wins overwrites.
"""

import logging
from typing import Any, Callable, List, NamedTuple, Optional
from urllib.parse import urlencode

from intel_sync.cache.freshness_cache import FreshnessCache, shared_cache
from intel_sync.cache.ttl_config import (
    DASHBOARD_SECTIONS, DEFAULT_ARTICLE_LIMIT, DEFAULT_SIGNAL_DAYS, TTL,
)
from intel_sync.config import INTELLIGENCE_ENABLED
from intel_sync.gateway.mappers import normalise_holdings, portfolio_hash
from intel_sync.gateway.mock_source import empty_articles, mock_dashboard, mock_signals
from intel_sync.models.outcome import Failure, StaleFallback, Success
from intel_sync.transport.client import IntelligenceTransport

log = logging.getLogger("intel.gateway")

# ── Upstream endpoints ────────────────────────────────────────
PATH_DASHBOARD    = "/api/dashboard"
PATH_SIGNALS      = "/api/signals/aggregate"
PATH_ARTICLES     = "/api/articles"
PATH_ARTICLE_FULL = "/api/articles/{id}/full"
PATH_HEALTH       = "/api/health"


class GatewayResult(NamedTuple):
    payload: Any
    stale:   bool


# ── Cache keys ────────────────────────────────────────────────

def dashboard_key(holdings: List[dict], include: List[str]) -> str:
    sections = ",".join(sorted(set(include)))
    return f"dashboard:{portfolio_hash(holdings)}:{sections}"


def signals_key(holdings: List[dict], days: int) -> str:
    return f"signals:{portfolio_hash(holdings)}:{days}"


def articles_key(ticker: Optional[str], limit: int, offset: int) -> str:
    return f"articles:{(ticker or 'all').upper()}:{limit}:{offset}"


class AggregationGateway:

    def __init__(
        self,
        transport: Optional[IntelligenceTransport] = None,
        cache:     Optional[FreshnessCache] = None,
        enabled:   bool = INTELLIGENCE_ENABLED,
        ttl:       Optional[dict] = None,
    ):
        self.transport = transport or IntelligenceTransport()
        self.cache     = cache if cache is not None else shared_cache
        self.enabled   = enabled
        self.ttl       = {**TTL, **(ttl or {})}

    # ── Operations ────────────────────────────────────────────

    async def fetch_dashboard(self, holdings: List[dict],
                              include: Optional[List[str]] = None) -> GatewayResult:
        include  = list(include or DASHBOARD_SECTIONS)
        holdings = normalise_holdings(holdings)
        return await self._fetch_through(
            key      = dashboard_key(holdings, include),
            ttl      = self.ttl["dashboard"],
            path     = PATH_DASHBOARD,
            body     = {"holdings": holdings, "include": include},
            fallback = lambda: mock_dashboard(holdings, include),
        )

    async def fetch_signal_aggregation(self, holdings: List[dict],
                                       window_days: int = DEFAULT_SIGNAL_DAYS) -> GatewayResult:
        holdings = normalise_holdings(holdings)
        return await self._fetch_through(
            key      = signals_key(holdings, window_days),
            ttl      = self.ttl["signals"],
            path     = PATH_SIGNALS,
            body     = {"holdings": holdings, "days": window_days},
            fallback = lambda: mock_signals(holdings, window_days),
        )

    async def fetch_articles(self, ticker: Optional[str] = None,
                             limit: Optional[int] = None,
                             offset: Optional[int] = None) -> GatewayResult:
        limit  = limit or DEFAULT_ARTICLE_LIMIT
        offset = offset or 0
        params = {k: v for k, v in (("ticker", ticker), ("limit", limit), ("offset", offset)) if v}
        query  = urlencode(params)
        return await self._fetch_through(
            key      = articles_key(ticker, limit, offset),
            ttl      = self.ttl["articles"],
            path     = f"{PATH_ARTICLES}?{query}" if query else PATH_ARTICLES,
            body     = None,
            fallback = empty_articles,
        )

    async def fetch_article_full(self, article_id: int, portfolio_header: str = "") -> Any:
        """Uncached passthrough; personalised by the X-Portfolio header."""
        headers = {"X-Portfolio": portfolio_header} if portfolio_header else None
        outcome = await self.transport.call(PATH_ARTICLE_FULL.format(id=article_id), headers=headers)
        if isinstance(outcome, Failure):
            raise outcome.to_error()
        return outcome.payload

    async def check_health(self) -> bool:
        outcome = await self.transport.call(PATH_HEALTH)
        return isinstance(outcome, Success)

    # ── Shared read-through path ──────────────────────────────

    async def _fetch_through(self, key: str, ttl: float, path: str,
                             body: Optional[dict],
                             fallback: Callable[[], Any]) -> GatewayResult:
        # Entries are GatewayResults so an upstream stale marker survives cache hits.
        cached = self.cache.get_fresh(key)
        if cached is not None:
            log.debug(f"{key}: fresh cache hit (stale={cached.stale})")
            return cached

        if not self.enabled:
            result = GatewayResult(fallback(), False)
            self.cache.put(key, result, ttl)
            return result

        outcome = await self.transport.call(path, body)
        if isinstance(outcome, Success):
            result = GatewayResult(outcome.payload, outcome.upstream_stale)
            self.cache.put(key, result, ttl)
            if outcome.upstream_stale:
                log.info(f"{key}: upstream marked its data stale")
            return result

        served = self._serve_stale(key)
        if served is not None:
            log.info(f"{key}: {outcome.kind.value} — serving stale entry "
                     f"(age={served.age_s:.0f}s)")
            return GatewayResult(served.payload, True)

        log.error(f"{key}: {outcome.kind.value} with nothing cached — {outcome.message}")
        raise outcome.to_error()

    def _serve_stale(self, key: str) -> Optional[StaleFallback]:
        entry = self.cache.get_stale(key)
        if entry is None:
            return None
        return StaleFallback(entry.payload, self.cache.age_seconds(key) or 0.0)
