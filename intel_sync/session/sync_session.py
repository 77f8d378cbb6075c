"""
Intel Sync — Client Synchronization Session
────────────────────────────────────────────
Owns the UI-facing SyncState for one consumer and keeps it current.

Triggers (all funnel into refresh()):
  - subject selected        reset → fetch
  - poll tick               every POLL_INTERVAL_S (5 min)
  - visibility regained     only when now - last_fetched_at > STALE_THRESHOLD_S

Rules:
  - soft refresh            Loading is only shown while there is no data
  - failures degrade        data held → Stale + message, nothing held → Error
  - one fetch per subject   a trigger during an in-flight fetch is a no-op
  - superseded results      dropped when the subject changed meanwhile

All mutation happens on the event loop, so no locks are involved.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Set

from intel_sync.cache.ttl_config import POLL_INTERVAL_S, STALE_THRESHOLD_S
from intel_sync.models.outcome import IntelligenceError
from intel_sync.session.feeds import Feed, FeedResult
from intel_sync.session.poller import SessionPoller
from intel_sync.session.state import REFRESH_FAILED_MESSAGE, SyncState, SyncStatus
from intel_sync.stores.portfolio_store import Portfolio, PortfolioStore, pick_default_portfolio
from intel_sync.stores.ui_marker import MarkerStore

log = logging.getLogger("intel.session")


class ClientSyncSession:

    def __init__(
        self,
        feed:            Feed,
        store:           Optional[PortfolioStore] = None,
        marker:          Optional[MarkerStore] = None,
        user_id:         Optional[str] = None,
        clock:           Callable[[], float] = time.time,
        stale_threshold: float = STALE_THRESHOLD_S,
        poll_interval:   float = POLL_INTERVAL_S,
    ):
        self.feed            = feed
        self.store           = store
        self.marker          = marker
        self.user_id         = user_id
        self.clock           = clock
        self.stale_threshold = stale_threshold
        self.poll_interval   = poll_interval

        self.state      = SyncState()
        self.portfolios: List[Portfolio] = []
        self._in_flight: Set[str] = set()
        self._poller:    Optional[SessionPoller] = None

    # ── Subjects ──────────────────────────────────────────────

    async def load_subjects(self) -> Optional[str]:
        """
        Load the user's portfolios and, when nothing is selected yet, pick the
        default one (first active, else first) and fetch it.
        A failing store is not fatal: the session just stays Idle.
        """
        if self.store is None or self.user_id is None:
            return self.state.selected_subject_id
        try:
            self.portfolios = await self.store.list_portfolios(self.user_id)
        except Exception as e:
            log.warning(f"user {self.user_id}: could not load portfolios ({e})")
            return self.state.selected_subject_id

        if self.state.selected_subject_id is None:
            default = pick_default_portfolio(self.portfolios)
            if default:
                await self.select_subject(default.id)
        return self.state.selected_subject_id

    async def select_subject(self, subject_id: Optional[str]) -> bool:
        if subject_id == self.state.selected_subject_id:
            return False
        log.info(f"subject {self.state.selected_subject_id} → {subject_id}")
        self.state.reset_for(subject_id)
        if subject_id is None:
            return False
        return await self.refresh("select")

    # ── Fetch ─────────────────────────────────────────────────

    async def refresh(self, trigger: str = "manual") -> bool:
        """Run one fetch for the selected subject. False when nothing was fetched."""
        subject = self.state.selected_subject_id
        if subject is None:
            self.state.status = SyncStatus.IDLE
            return False
        if subject in self._in_flight:
            log.debug(f"{subject}: {trigger} ignored, fetch already in flight")
            if self.state.data is None:
                self._set_status(SyncStatus.LOADING)
            return False

        self._in_flight.add(subject)
        if self.state.data is None:
            self._set_status(SyncStatus.LOADING)

        try:
            result = await self.feed.fetch(subject)
        except Exception as e:
            if self._superseded(subject, trigger):
                return False
            self._apply_failure(subject, e)
        else:
            if self._superseded(subject, trigger):
                return False
            self._apply_success(subject, result)
        finally:
            self._in_flight.discard(subject)
        return True

    def _superseded(self, subject: str, trigger: str) -> bool:
        if subject != self.state.selected_subject_id:
            log.info(f"{subject}: {trigger} result discarded, "
                     f"subject is now {self.state.selected_subject_id}")
            return True
        return False

    def _apply_success(self, subject: str, result: FeedResult) -> None:
        self.state.data            = result.data
        self.state.error_message   = None
        self.state.last_fetched_at = self.clock()
        self._set_status(SyncStatus.STALE if result.stale else SyncStatus.SUCCESS)

    def _apply_failure(self, subject: str, error: Exception) -> None:
        message = error.message if isinstance(error, IntelligenceError) else str(error)
        log.warning(f"{subject}: refresh failed ({message or type(error).__name__})")
        if self.state.data is not None:
            self.state.error_message = REFRESH_FAILED_MESSAGE
            self._set_status(SyncStatus.STALE)
        else:
            self.state.error_message = message or "Failed to fetch data"
            self._set_status(SyncStatus.ERROR)

    def _set_status(self, status: SyncStatus) -> None:
        if status is not self.state.status:
            log.info(f"{self.state.selected_subject_id}: "
                     f"{self.state.status.value} → {status.value}")
        self.state.status = status

    # ── Triggers ──────────────────────────────────────────────

    async def on_poll_tick(self) -> bool:
        return await self.refresh("poll")

    async def on_visibility_change(self, visible: bool) -> bool:
        """Consumer became active again: refresh only if the data has aged out."""
        if not visible:
            return False
        last = self.state.last_fetched_at
        if last is not None and self.clock() - last > self.stale_threshold:
            return await self.refresh("visibility")
        return False

    # ── Derived ───────────────────────────────────────────────

    @property
    def is_stale(self) -> bool:
        if self.state.status is SyncStatus.STALE:
            return True
        last = self.state.last_fetched_at
        return last is not None and self.clock() - last > self.stale_threshold

    def freshness_label(self) -> Optional[str]:
        last = self.state.last_fetched_at
        if last is None:
            return None
        mins = int((self.clock() - last) // 60)
        if mins < 1:
            return "Updated just now"
        if mins < 60:
            return f"Updated {mins} min ago"
        return f"Updated {mins // 60}h ago"

    async def unseen_alerts(self) -> List[dict]:
        """Alert-history items triggered after the user last acknowledged alerts."""
        history = _alert_history(self.state.data)
        if not history:
            return []
        last_seen = None
        if self.marker is not None and self.user_id is not None:
            last_seen = await self.marker.last_seen(self.user_id)
        if last_seen is None:
            return list(history)
        return [a for a in history if _epoch(a.get("triggered_at")) > last_seen]

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        await self.load_subjects()
        if self._poller is None:
            self._poller = SessionPoller(self.on_poll_tick, self.poll_interval,
                                         job_id=f"session_poll:{self.user_id or 'anon'}")
        self._poller.start()

    def stop(self) -> None:
        if self._poller is not None:
            self._poller.stop()
            self._poller = None

    def poller_status(self) -> dict:
        if self._poller is None:
            return {"running": False, "next_run": None}
        return self._poller.status()


def _alert_history(data: Any) -> List[dict]:
    try:
        items = data["dashboard"]["data"]["alert_history"]
    except (KeyError, TypeError):
        return []
    return items if isinstance(items, list) else []


def _epoch(iso: Optional[str]) -> float:
    if not iso:
        return 0.0
    try:
        ts = datetime.fromisoformat(iso.replace("Z", "+00:00"))
    except ValueError:
        return 0.0
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.timestamp()
