"""
Intel Sync — Fetch Outcomes
────────────────────────────
Closed set of results a single upstream call can produce.

  Success        parsed JSON body (+ whether the upstream itself marked it stale)
  StaleFallback  cached payload served because the upstream failed
  Failure        one of four failure kinds, never retried here

Outcomes are produced per call and consumed immediately; nothing persists them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union


class FailureKind(Enum):
    CLIENT_ERROR = "client_error"     # 4xx
    SERVER_ERROR = "server_error"     # 5xx
    TIMEOUT      = "timeout"          # wall-clock timeout elapsed
    UNREACHABLE  = "unreachable"      # DNS / connect / TLS / unreadable body


# HTTP status the BFF answers with when a failure reaches it with no fallback
_KIND_STATUS = {
    FailureKind.SERVER_ERROR: 502,
    FailureKind.TIMEOUT:      504,
    FailureKind.UNREACHABLE:  503,
}


class IntelligenceError(Exception):
    """Raised when an upstream failure has no cached payload to fall back on."""

    def __init__(self, kind: FailureKind, message: str,
                 status: Optional[int] = None, code: Optional[str] = None):
        self.kind    = kind
        self.message = message
        self.status  = status
        self.code    = code
        super().__init__(message)

    @property
    def http_status(self) -> int:
        if self.kind is FailureKind.CLIENT_ERROR and self.status:
            return self.status
        return _KIND_STATUS.get(self.kind, 502)

    def to_dict(self) -> dict:
        return {"error": {"message": self.message, "code": self.code or self.kind.value}}


@dataclass(frozen=True)
class Success:
    payload:        Any
    upstream_stale: bool = False


@dataclass(frozen=True)
class StaleFallback:
    payload: Any
    age_s:   float


@dataclass(frozen=True)
class Failure:
    kind:    FailureKind
    message: str
    status:  Optional[int] = None
    code:    Optional[str] = None

    def to_error(self) -> IntelligenceError:
        return IntelligenceError(self.kind, self.message, self.status, self.code)


FetchOutcome = Union[Success, StaleFallback, Failure]
