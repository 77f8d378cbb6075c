"""
Intel Sync — Disabled-Upstream Source
──────────────────────────────────────
Used when INTELLIGENCE_ENABLED is false. Returns well-formed payloads with the
same envelope as the upstream ({ data, meta }) so every consumer works
unchanged. Content is placeholder only; no analytics are computed.
"""

from datetime import datetime, timezone
from typing import List, Optional


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _tickers(holdings: List[dict]) -> List[str]:
    return [h["ticker"] for h in holdings]


def mock_dashboard(holdings: List[dict], include: Optional[List[str]] = None) -> dict:
    now     = _now_iso()
    tickers = _tickers(holdings)
    include = list(include or [])

    sections = {
        "digest": {
            "digest_id":    f"mock-dg-{now[:10]}",
            "generated_at": now,
            "sections": {
                "direct_news":        [],
                "related_news":       [],
                "risk_alerts":        [],
                "developing_stories": [],
                "discovery":          [],
                "sector_context":     [],
            },
        },
        "exposure": {
            "computed_at":         now,
            "by_sector":           {},
            "by_geography":        {},
            "concentration_risks": [],
        },
        "alerts":        [],
        "narratives":    [],
        "alert_history": [],
    }

    return {
        "data": {name: value for name, value in sections.items() if name in include},
        "meta": {
            "portfolio_hash":    "mock-hash",
            "holdings_count":    len(tickers),
            "computed_at":       now,
            "sections_included": include,
        },
    }


def mock_signals(holdings: List[dict], days: int) -> dict:
    by_holding = {
        ticker: {
            "total_articles":      0,
            "net_sentiment":       0.0,
            "dominant_signal":     "GENERAL_NEWS",
            "risk_signals":        0,
            "opportunity_signals": 0,
        }
        for ticker in _tickers(holdings)
    }
    return {
        "data": {
            "by_signal_type": {},
            "by_holding":     by_holding,
            "portfolio_summary": {
                "total_articles_analyzed": 0,
                "net_sentiment":           0.0,
                "top_opportunity":         "GENERAL_NEWS",
                "top_risk":                "GENERAL_NEWS",
                "signal_diversity":        0,
            },
        },
        "meta": {
            "days_analyzed":  days,
            "holdings_count": len(by_holding),
            "computed_at":    _now_iso(),
        },
    }


def empty_articles() -> dict:
    return {"data": [], "meta": {"count": 0, "total": 0}}
