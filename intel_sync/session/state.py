"""
Intel Sync — Session State
───────────────────────────
The live, UI-facing state owned by one ClientSyncSession.

  Idle → Loading → { Success, Stale, Error }

A refresh that starts while data is already held skips Loading entirely
(soft refresh). Stale and Error never clear data that was set before.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class SyncStatus(str, Enum):
    IDLE    = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    STALE   = "stale"
    ERROR   = "error"


REFRESH_FAILED_MESSAGE = "refresh failed, showing cached data"


@dataclass
class SyncState:
    data:                Optional[Any] = None
    status:              SyncStatus = SyncStatus.IDLE
    error_message:       Optional[str] = None
    last_fetched_at:     Optional[float] = None
    selected_subject_id: Optional[str] = None

    def reset_for(self, subject_id: Optional[str]) -> None:
        self.data                = None
        self.status              = SyncStatus.IDLE
        self.error_message       = None
        self.last_fetched_at     = None
        self.selected_subject_id = subject_id

    def to_dict(self) -> dict:
        return {
            "data":                self.data,
            "status":              self.status.value,
            "error_message":       self.error_message,
            "last_fetched_at":     self.last_fetched_at,
            "selected_subject_id": self.selected_subject_id,
        }
