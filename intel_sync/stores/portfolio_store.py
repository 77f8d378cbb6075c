"""
Intel Sync — Portfolio Store
─────────────────────────────
Read-only view of the subjects (portfolios) a user owns and their holdings.
Relational persistence lives elsewhere; this layer only reads.

Redis layout (JSON strings):
  portfolios:{user_id}     → [{id, name, is_active}, ...]
  holdings:{portfolio_id}  → [{symbol, quantity, average_price}, ...]
"""

import json
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

import redis.asyncio as aioredis

log = logging.getLogger("intel.stores")


@dataclass
class Holding:
    symbol:        str
    quantity:      float
    average_price: float


@dataclass
class Portfolio:
    id:        str
    name:      str = ""
    is_active: bool = True


class PortfolioStore(Protocol):

    async def list_portfolios(self, user_id: str) -> List[Portfolio]: ...

    async def get_holdings(self, portfolio_id: str) -> List[Holding]: ...


def pick_default_portfolio(portfolios: List[Portfolio]) -> Optional[Portfolio]:
    """First active portfolio, else the first one, else None."""
    for p in portfolios:
        if p.is_active:
            return p
    return portfolios[0] if portfolios else None


def resolve_portfolio(portfolios: List[Portfolio],
                      portfolio_id: Optional[str]) -> Optional[Portfolio]:
    if portfolio_id:
        return next((p for p in portfolios if p.id == portfolio_id), None)
    return pick_default_portfolio(portfolios)


class InMemoryPortfolioStore:

    def __init__(self):
        self._portfolios: Dict[str, List[Portfolio]] = {}
        self._holdings:   Dict[str, List[Holding]] = {}

    def add_portfolio(self, user_id: str, portfolio: Portfolio,
                      holdings: Optional[List[Holding]] = None) -> None:
        self._portfolios.setdefault(user_id, []).append(portfolio)
        self._holdings[portfolio.id] = list(holdings or [])

    def set_holdings(self, portfolio_id: str, holdings: List[Holding]) -> None:
        self._holdings[portfolio_id] = list(holdings)

    async def list_portfolios(self, user_id: str) -> List[Portfolio]:
        return list(self._portfolios.get(user_id, []))

    async def get_holdings(self, portfolio_id: str) -> List[Holding]:
        return list(self._holdings.get(portfolio_id, []))


def key_portfolios(user_id: str) -> str:
    return f"portfolios:{user_id}"


def key_holdings(portfolio_id: str) -> str:
    return f"holdings:{portfolio_id}"


class RedisPortfolioStore:

    def __init__(self, client: aioredis.Redis):
        self._r = client

    async def _load(self, key: str) -> list:
        raw = await self._r.get(key)
        if not raw:
            return []
        try:
            value = json.loads(raw)
        except ValueError as e:
            log.warning(f"{key}: unreadable JSON ({e})")
            return []
        return value if isinstance(value, list) else []

    async def list_portfolios(self, user_id: str) -> List[Portfolio]:
        rows = await self._load(key_portfolios(user_id))
        return [
            Portfolio(id=str(r["id"]), name=r.get("name", ""),
                      is_active=bool(r.get("is_active", True)))
            for r in rows if r.get("id")
        ]

    async def get_holdings(self, portfolio_id: str) -> List[Holding]:
        rows = await self._load(key_holdings(portfolio_id))
        return [
            Holding(symbol=r["symbol"], quantity=float(r.get("quantity", 0)),
                    average_price=float(r.get("average_price", 0)))
            for r in rows if r.get("symbol")
        ]
