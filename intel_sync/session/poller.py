"""
Intel Sync — Session Poller
────────────────────────────
Fixed-interval refresh trigger for one ClientSyncSession, driven by an
APScheduler AsyncIOScheduler. The interval does not depend on how long the
previous fetch took; a tick that lands while a fetch is still running is
dropped by the session's own in-flight guard.
"""

import logging
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from intel_sync.cache.ttl_config import POLL_INTERVAL_S

log = logging.getLogger("intel.poller")

GRACE_S = 60


class SessionPoller:

    def __init__(self, tick: Callable[[], Awaitable], interval_s: float = POLL_INTERVAL_S,
                 job_id: str = "session_poll"):
        self.tick       = tick
        self.interval_s = interval_s
        self.job_id     = job_id
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if self.running:
            log.warning(f"{self.job_id}: poller already running — ignoring start call")
            return

        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._scheduler.add_job(
            self.tick,
            IntervalTrigger(seconds=self.interval_s),
            id                 = self.job_id,
            name               = f"Session poll every {self.interval_s:.0f}s",
            max_instances      = 1,
            coalesce           = True,
            misfire_grace_time = GRACE_S,
            replace_existing   = True,
        )
        self._scheduler.start()
        log.info(f"{self.job_id}: polling every {self.interval_s:.0f}s")

    def stop(self) -> None:
        if self.running:
            self._scheduler.shutdown(wait=False)
            log.info(f"{self.job_id}: poller stopped")
        self._scheduler = None

    def status(self) -> dict:
        if not self.running:
            return {"running": False, "next_run": None}
        job = self._scheduler.get_job(self.job_id)
        nxt = job.next_run_time if job else None
        return {
            "running":    True,
            "interval_s": self.interval_s,
            "next_run":   nxt.isoformat() if nxt else None,
        }
