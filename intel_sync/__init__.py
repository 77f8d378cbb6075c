"""
Intel Sync
───────────
Cached, stale-tolerant synchronization between a portfolio dashboard and the
intelligence analytics API.

    from intel_sync import AggregationGateway, ClientSyncSession, GatewayFeed
    session = ClientSyncSession(GatewayFeed(AggregationGateway(), store), store, user_id="u1")
    await session.start()
"""

from .cache.freshness_cache import FreshnessCache, shared_cache
from .gateway.aggregation import AggregationGateway, GatewayResult
from .models.outcome import Failure, FailureKind, IntelligenceError, StaleFallback, Success
from .session.feeds import FeedResult, GatewayFeed, HttpFeed
from .session.state import SyncState, SyncStatus
from .session.sync_session import ClientSyncSession
from .transport.client import IntelligenceTransport

__all__ = [
    "FreshnessCache", "shared_cache",
    "AggregationGateway", "GatewayResult",
    "Failure", "FailureKind", "IntelligenceError", "StaleFallback", "Success",
    "FeedResult", "GatewayFeed", "HttpFeed",
    "SyncState", "SyncStatus", "ClientSyncSession",
    "IntelligenceTransport",
]
