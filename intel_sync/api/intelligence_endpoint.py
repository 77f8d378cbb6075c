"""
Intel Sync — BFF Intelligence Endpoints
────────────────────────────────────────
Handlers behind /api/intelligence/*. They resolve the caller's portfolio,
turn holdings into weights and go through the AggregationGateway.

  stale result         → 200 + X-Data-Stale: true
  no portfolio at all  → 200 { data: null, meta: { no_portfolio: true } }
  unknown portfolioId  → 404
  cold failure         → upstream error envelope + mapped status
                         (article list: empty list + X-Data-Fallback: empty)
  display=true         → article list shaped into news-card items

Handlers return an EndpointResponse; app.py turns it into a JSONResponse.
"""

import logging
from typing import Any, Dict, NamedTuple, Optional

from intel_sync.cache.ttl_config import DEFAULT_SIGNAL_DAYS
from intel_sync.config import FALLBACK_HEADER, STALE_HEADER
from intel_sync.gateway.aggregation import AggregationGateway, GatewayResult
from intel_sync.gateway.mappers import (
    build_portfolio_header, compute_portfolio_weights, to_article_item,
)
from intel_sync.gateway.mock_source import empty_articles
from intel_sync.models.outcome import IntelligenceError
from intel_sync.stores.portfolio_store import (
    PortfolioStore, pick_default_portfolio, resolve_portfolio,
)

log = logging.getLogger("intel.api")


class EndpointResponse(NamedTuple):
    body:    Any
    status:  int = 200
    headers: Optional[Dict[str, str]] = None


def _error(message: str, code: str, status: int) -> EndpointResponse:
    return EndpointResponse({"error": {"message": message, "code": code}}, status)


def _from_result(result: GatewayResult) -> EndpointResponse:
    headers = {STALE_HEADER: "true"} if result.stale else None
    return EndpointResponse(result.payload, 200, headers)


def _from_error(e: IntelligenceError) -> EndpointResponse:
    return EndpointResponse(e.to_dict(), e.http_status)


NO_PORTFOLIO = EndpointResponse({"data": None, "meta": {"no_portfolio": True}})


async def _resolve_weights(store: PortfolioStore, user_id: str,
                           portfolio_id: Optional[str]):
    """(weights, None) or (None, response to send instead)."""
    portfolios = await store.list_portfolios(user_id)
    selected   = resolve_portfolio(portfolios, portfolio_id)
    if selected is None:
        if portfolio_id:
            return None, _error("Portfolio not found", "portfolio_not_found", 404)
        return None, NO_PORTFOLIO
    holdings = await store.get_holdings(selected.id)
    return compute_portfolio_weights(holdings), None


async def get_dashboard_response(gateway: AggregationGateway, store: PortfolioStore,
                                 user_id: str,
                                 portfolio_id: Optional[str] = None) -> EndpointResponse:
    weights, early = await _resolve_weights(store, user_id, portfolio_id)
    if early:
        return early
    try:
        return _from_result(await gateway.fetch_dashboard(weights))
    except IntelligenceError as e:
        return _from_error(e)


async def get_signals_response(gateway: AggregationGateway, store: PortfolioStore,
                               user_id: str, portfolio_id: Optional[str] = None,
                               days: int = DEFAULT_SIGNAL_DAYS) -> EndpointResponse:
    weights, early = await _resolve_weights(store, user_id, portfolio_id)
    if early:
        return early
    try:
        return _from_result(await gateway.fetch_signal_aggregation(weights, days))
    except IntelligenceError as e:
        return _from_error(e)


async def get_articles_response(gateway: AggregationGateway, ticker: Optional[str] = None,
                                limit: Optional[int] = None,
                                offset: Optional[int] = None,
                                display: bool = False) -> EndpointResponse:
    try:
        response = _from_result(await gateway.fetch_articles(ticker, limit, offset))
    except IntelligenceError as e:
        log.warning(f"articles: {e.kind.value}, answering with an empty list")
        return EndpointResponse(empty_articles(), 200, {FALLBACK_HEADER: "empty"})
    if not display:
        return response
    return response._replace(body=_display_articles(response.body))


def _display_articles(payload: Any) -> Any:
    # Cached payload is shared, so build a new envelope.
    items = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        return payload
    return {**payload, "data": [to_article_item(a) for a in items if isinstance(a, dict)]}


async def get_article_full_response(gateway: AggregationGateway, store: PortfolioStore,
                                    user_id: str, article_id: str) -> EndpointResponse:
    try:
        aid = int(article_id)
    except ValueError:
        return _error("Invalid article ID", "invalid_article_id", 400)

    if not gateway.enabled:
        return _error("Intelligence API not enabled", "disabled", 503)

    header   = ""
    selected = pick_default_portfolio(await store.list_portfolios(user_id))
    if selected:
        header = build_portfolio_header(
            compute_portfolio_weights(await store.get_holdings(selected.id))
        )

    try:
        return EndpointResponse(await gateway.fetch_article_full(aid, header))
    except IntelligenceError as e:
        return _from_error(e)


async def get_health_response(gateway: AggregationGateway) -> EndpointResponse:
    if not gateway.enabled:
        return EndpointResponse({
            "status":  "disabled",
            "message": "Intelligence API integration is not enabled",
        })
    healthy = await gateway.check_health()
    return EndpointResponse({"status": "ok" if healthy else "unavailable"})
