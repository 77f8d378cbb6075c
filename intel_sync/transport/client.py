"""
Intel Sync — Transport Wrapper
───────────────────────────────
Issues ONE outbound call to the analytics service and turns whatever
happens into a FetchOutcome. Never raises for upstream trouble, never retries.

  2xx + JSON body        → Success(payload, upstream_stale)
  4xx                    → Failure(CLIENT_ERROR)   message/code from { error: {...} }
  5xx                    → Failure(SERVER_ERROR)
  wall-clock timeout     → Failure(TIMEOUT)        in-flight call is cancelled
  DNS / refused / TLS    → Failure(UNREACHABLE)
  3xx (not followed)     → Failure(UNREACHABLE)

Retry/backoff belongs to callers; the gateway falls back to cache instead.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from intel_sync.config import (
    INTELLIGENCE_API_KEY, INTELLIGENCE_API_URL, REQUEST_TIMEOUT, STALE_HEADER,
)
from intel_sync.models.outcome import Failure, FailureKind, FetchOutcome, Success

log = logging.getLogger("intel.transport")

USER_AGENT = "intel-sync/1.0"


class IntelligenceTransport:

    def __init__(
        self,
        base_url: str = INTELLIGENCE_API_URL,
        api_key:  str = INTELLIGENCE_API_KEY,
        timeout:  float = REQUEST_TIMEOUT,
        client:   Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key  = api_key
        self.timeout  = timeout
        self._client  = client
        self._owns_client = client is None

    async def get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    def _headers(self, extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept":       "application/json",
            "User-Agent":   USER_AGENT,
        }
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        if extra:
            headers.update(extra)
        return headers

    async def call(
        self,
        path:    str,
        body:    Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        method:  Optional[str] = None,
    ) -> FetchOutcome:
        method = method or ("POST" if body is not None else "GET")
        url    = f"{self.base_url}{path}"
        client = await self.get_client()

        # The whole exchange shares one deadline; httpx timeouts are per phase.
        try:
            response = await asyncio.wait_for(
                client.request(method, url, json=body, headers=self._headers(headers)),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            log.warning(f"{method} {path}: timed out after {self.timeout}s")
            return Failure(FailureKind.TIMEOUT, "Intelligence API request timed out")
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            log.warning(f"{method} {path}: unreachable ({e})")
            return Failure(FailureKind.UNREACHABLE, f"Intelligence API unreachable: {e}")

        if not response.is_success:
            return self._classify(method, path, response)

        try:
            payload = response.json()
        except ValueError as e:
            log.warning(f"{method} {path}: unreadable body ({e})")
            return Failure(FailureKind.UNREACHABLE, f"Intelligence API unreachable: {e}")

        upstream_stale = response.headers.get(STALE_HEADER, "").lower() == "true"
        return Success(payload, upstream_stale=upstream_stale)

    def _classify(self, method: str, path: str, response: httpx.Response) -> Failure:
        status  = response.status_code
        message = f"Intelligence API returned {status}"
        code    = None

        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            message = body["error"].get("message") or message
            code    = body["error"].get("code")

        if 400 <= status < 500:
            kind = FailureKind.CLIENT_ERROR
        elif status >= 500:
            kind = FailureKind.SERVER_ERROR
        else:
            # 3xx, redirects are not followed
            kind = FailureKind.UNREACHABLE
        log.warning(f"{method} {path}: HTTP {status} ({kind.value}) {message}")
        return Failure(kind, message, status=status, code=code)
