import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from intel_sync.api.intelligence_endpoint import (
    EndpointResponse,
    get_article_full_response,
    get_articles_response,
    get_dashboard_response,
    get_health_response,
    get_signals_response,
)
from intel_sync.cache.ttl_config import DEFAULT_SIGNAL_DAYS
from intel_sync.config import INTELLIGENCE_ENABLED
from intel_sync.gateway.aggregation import AggregationGateway
from intel_sync.stores.portfolio_store import (
    InMemoryPortfolioStore, PortfolioStore, RedisPortfolioStore,
)
from intel_sync.stores.redis_client import shared_redis

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)

_gateway: Optional[AggregationGateway] = None
_store:   Optional[PortfolioStore] = None


def get_gateway() -> AggregationGateway:
    global _gateway
    if _gateway is None:
        _gateway = AggregationGateway()
    return _gateway


async def get_portfolio_store() -> PortfolioStore:
    global _store
    if _store is None:
        r = await shared_redis.connect()
        _store = RedisPortfolioStore(r) if r else InMemoryPortfolioStore()
    return _store


def require_user(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    if not x_user_id:
        raise HTTPException(401, "Unauthorized")
    return x_user_id


@asynccontextmanager
async def lifespan(app: FastAPI):
    await shared_redis.connect()
    log.info(f"Intelligence upstream {'enabled' if INTELLIGENCE_ENABLED else 'disabled (mock source)'}")
    yield
    if _gateway:
        await _gateway.transport.aclose()
    await shared_redis.close()


app = FastAPI(
    title="Intelligence Sync BFF",
    description="Portfolio-aware, cached, stale-tolerant proxy for the intelligence analytics API.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def http_error(request: Request, exc: HTTPException):
    return JSONResponse(
        {"error": {"message": str(exc.detail), "code": str(exc.status_code)}},
        status_code=exc.status_code,
        headers=exc.headers,
    )


def respond(r: EndpointResponse) -> JSONResponse:
    return JSONResponse(r.body, status_code=r.status, headers=r.headers)


@app.get("/")
async def root():
    return {"status": "ok", "docs": "/docs", "api": "/api/intelligence/dashboard"}


@app.get("/health")
async def health(gateway: AggregationGateway = Depends(get_gateway)):
    r = await shared_redis.connect()
    return {
        "status": "healthy",
        "redis": "connected" if r else "unavailable (using in-memory stores)",
        "intelligence": "enabled" if gateway.enabled else "disabled",
        "timestamp": int(time.time()),
    }


@app.get("/api/intelligence/dashboard", tags=["Intelligence"])
async def dashboard(
    portfolio_id: Optional[str] = Query(None, alias="portfolioId"),
    user_id: str = Depends(require_user),
    gateway: AggregationGateway = Depends(get_gateway),
    store: PortfolioStore = Depends(get_portfolio_store),
):
    return respond(await get_dashboard_response(gateway, store, user_id, portfolio_id))


@app.get("/api/intelligence/signals/aggregate", tags=["Intelligence"])
async def signals_aggregate(
    portfolio_id: Optional[str] = Query(None, alias="portfolioId"),
    days: int = Query(DEFAULT_SIGNAL_DAYS, ge=1, le=90),
    user_id: str = Depends(require_user),
    gateway: AggregationGateway = Depends(get_gateway),
    store: PortfolioStore = Depends(get_portfolio_store),
):
    return respond(await get_signals_response(gateway, store, user_id, portfolio_id, days))


@app.get("/api/intelligence/articles", tags=["Intelligence"])
async def articles(
    ticker: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=100),
    offset: Optional[int] = Query(None, ge=0),
    display: bool = Query(False),
    user_id: str = Depends(require_user),
    gateway: AggregationGateway = Depends(get_gateway),
):
    return respond(await get_articles_response(gateway, ticker, limit, offset, display))


@app.get("/api/intelligence/articles/{article_id}/full", tags=["Intelligence"])
async def article_full(
    article_id: str,
    user_id: str = Depends(require_user),
    gateway: AggregationGateway = Depends(get_gateway),
    store: PortfolioStore = Depends(get_portfolio_store),
):
    return respond(await get_article_full_response(gateway, store, user_id, article_id))


@app.get("/api/intelligence/health", tags=["Intelligence"])
async def intelligence_health(gateway: AggregationGateway = Depends(get_gateway)):
    return respond(await get_health_response(gateway))


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("app:app", host="0.0.0.0", port=port, reload=False, log_level="info")
