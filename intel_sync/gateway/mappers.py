"""
Intel Sync — Mappers
─────────────────────
Pure helpers shared by the gateway, the BFF and the client session:
  - holdings → upstream weights, X-Portfolio header, cache-key hash
  - upstream vocab → display vocab (sentiment, magnitude, signal type)
  - timestamps → relative labels
  - upstream articles → news-card items
"""

import hashlib
import re
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional

# ── Holdings ──────────────────────────────────────────────────

def compute_portfolio_weights(holdings: Iterable) -> List[dict]:
    """
    Holdings (symbol, quantity, average_price) → [{ticker, weight_pct}].
    Weight is position cost over total cost, as a percent rounded to 2 dp.
    Empty when there is nothing to weigh.
    """
    holdings = list(holdings)
    values = [Decimal(str(h.quantity)) * Decimal(str(h.average_price)) for h in holdings]
    total  = sum(values, Decimal("0"))
    if not holdings or total == 0:
        return []

    return [
        {
            "ticker":     h.symbol.upper(),
            "weight_pct": float((value / total * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)),
        }
        for h, value in zip(holdings, values)
    ]


def normalise_holdings(holdings: Iterable[dict]) -> List[dict]:
    """Upper-case tickers, merge duplicates, sort by ticker."""
    merged: Dict[str, float] = {}
    for h in holdings:
        ticker = str(h["ticker"]).strip().upper()
        merged[ticker] = merged.get(ticker, 0.0) + float(h.get("weight_pct") or 0.0)
    return [
        {"ticker": t, "weight_pct": round(w, 2)}
        for t, w in sorted(merged.items())
    ]


def build_portfolio_header(weights: Iterable[dict]) -> str:
    return ",".join(f"{w['ticker']}:{float(w['weight_pct']):.1f}" for w in weights)


def portfolio_hash(holdings: Iterable[dict]) -> str:
    """Order-independent fingerprint of a holdings set."""
    canonical = ",".join(f"{h['ticker']}:{h['weight_pct']}" for h in normalise_holdings(holdings))
    return hashlib.sha1(canonical.encode("utf-8")).hexdigest()[:16]


# ── Upstream vocabulary ──────────────────────────────────────

_SENTIMENTS = {"positive", "negative", "neutral"}

_MAGNITUDE_IMPACT = {
    "major":    "high",
    "moderate": "medium",
    "minor":    "low",
}

SIGNAL_LABELS = {
    "EARNINGS_REPORT":   "Earnings",
    "M_AND_A":           "M&A",
    "REGULATORY":        "Regulatory",
    "SUPPLY_DISRUPTION": "Supply Chain",
    "LEADERSHIP_CHANGE": "Leadership",
    "PRODUCT_LAUNCH":    "Product Launch",
    "PARTNERSHIP":       "Partnership",
    "AI_TECHNOLOGY":     "AI/Technology",
    "GEOPOLITICAL":      "Geopolitical",
    "MARKET_MOVEMENT":   "Market",
    "GENERAL_NEWS":      "General",
}


def map_sentiment(value: str) -> str:
    lower = (value or "").lower()
    return lower if lower in _SENTIMENTS else "neutral"


def map_magnitude(value: str) -> str:
    return _MAGNITUDE_IMPACT.get((value or "").lower(), "low")


def map_signal_type(value: str) -> str:
    return SIGNAL_LABELS.get(value, value or "")


_TAG_RE = re.compile(r"<[^>]*>")


def sanitize_text(raw: str) -> str:
    return _TAG_RE.sub("", raw or "").strip()


# ── Time ──────────────────────────────────────────────────────

def to_relative_time(iso: Optional[str], now: Optional[datetime] = None) -> str:
    if not iso:
        return "Unknown"
    try:
        ts = datetime.fromisoformat(iso.replace("Z", "+00:00"))
    except ValueError:
        return "Unknown"
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    now  = now or datetime.now(timezone.utc)
    mins = int((now - ts).total_seconds() // 60)
    if mins < 1:
        return "Just now"
    if mins < 60:
        return f"{mins} min ago"
    hours = mins // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


# ── Display ───────────────────────────────────────────────────

def to_article_item(article: dict, now: Optional[datetime] = None) -> dict:
    """
    Upstream article → news-card item. Display fields come from the first
    enrichment signal; without one the card reads neutral / low impact.
    """
    signals = (article.get("enrichment") or {}).get("signals") or []
    signal  = signals[0] if signals else None
    tickers = article.get("tickers") or []
    return {
        "id":          article.get("id"),
        "stock":       tickers[0] if tickers else "General",
        "title":       sanitize_text(article.get("title", "")),
        "summary":     sanitize_text(article.get("summary", "")),
        "time":        to_relative_time(article.get("published_at"), now),
        "source":      article.get("source", ""),
        "sentiment":   map_sentiment(signal.get("direction")) if signal else "neutral",
        "impact":      map_magnitude(signal.get("magnitude_category")) if signal else "low",
        "signalLabel": map_signal_type(signal.get("signal_type")) if signal else "",
        "url":         article.get("url"),
    }
