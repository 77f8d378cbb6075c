"""
Intel Sync — TTL Configuration
───────────────────────────────
Single source of truth for cache durations and client refresh cadence.
The upstream recomputes on a multi-minute cadence, so per-view-load
requests inside these windows are served from cache.
"""

# ── Per operation TTL (seconds) ──────────────────────────────

TTL = {
    "dashboard": 2 * 60,    # 2 min
    "articles":  60,        # 1 min
    "signals":   5 * 60,    # 5 min
}

# ── Client refresh cadence (seconds) ─────────────────────────
POLL_INTERVAL_S   = 5 * 60    # fixed-interval poll
STALE_THRESHOLD_S = 10 * 60   # clock-based staleness / visibility refetch

# ── Request defaults ─────────────────────────────────────────
DEFAULT_SIGNAL_DAYS = 7
DEFAULT_ARTICLE_LIMIT = 20

DASHBOARD_SECTIONS = [
    "digest",
    "exposure",
    "alerts",
    "narratives",
    "alert_history",
]
