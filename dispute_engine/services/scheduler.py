"""Background sweeps that force the time-based dispute transitions."""

import socket
from datetime import datetime
from typing import Callable
from uuid import uuid4

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from dispute_engine.config import Settings
from dispute_engine.data.storage import Storage
from dispute_engine.services.lifecycle import DisputeService
from dispute_engine.utils.logging import get_logger


NEGOTIATION_LOCK_KEY = "lock:dispute:check-expired-negotiations"
ARBITRATION_LOCK_KEY = "lock:dispute:check-expired-arbitrations"


class EscalationScheduler:
    """Runs the negotiation and arbitration timeout sweeps on an interval.

    Each run takes a short lease in the store first, so two processes (or two
    overlapping runs) never sweep at the same time.
    """

    def __init__(
        self,
        disputes: DisputeService,
        storage: Storage,
        settings: Settings,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.disputes = disputes
        self.storage = storage
        self.settings = settings
        self.clock = clock
        self.owner = f"{socket.gethostname()}:{uuid4().hex[:8]}"
        self.logger = get_logger("disputes.scheduler", settings.log_level)
        self.scheduler: BackgroundScheduler | None = None

    def _acquire(self, key: str) -> bool:
        with self.storage.transaction() as tx:
            return tx.acquire_lease(key, self.owner, self.settings.scheduler.lease_seconds, self.clock())

    def _release(self, key: str):
        with self.storage.transaction() as tx:
            tx.release_lease(key, self.owner)

    def _run_locked(self, key: str, label: str, sweep: Callable[[], int]) -> int | None:
        """Run ``sweep`` under the lease ``key``; None when skipped or failed."""
        if not self._acquire(key):
            self.logger.info(f"{label} sweep already running elsewhere, skipping")
            return None

        try:
            count = sweep()
            self.logger.info(f"{label} sweep transitioned {count} dispute(s)")
            return count
        except Exception as e:
            self.logger.error(f"{label} sweep failed: {e}")
            return None
        finally:
            self._release(key)

    def run_negotiation_sweep(self) -> int | None:
        return self._run_locked(
            NEGOTIATION_LOCK_KEY,
            "Negotiation timeout",
            lambda: self.disputes.mark_expired_negotiations(self.clock()),
        )

    def run_arbitration_sweep(self) -> int | None:
        return self._run_locked(
            ARBITRATION_LOCK_KEY,
            "Arbitration timeout",
            lambda: self.disputes.mark_expired_arbitrations(self.clock()),
        )

    def run_once(self) -> dict[str, int | None]:
        """Run both sweeps immediately, one after the other."""
        return {
            "negotiations": self.run_negotiation_sweep(),
            "arbitrations": self.run_arbitration_sweep(),
        }

    def setup_jobs(self, scheduler: BackgroundScheduler):
        config = self.settings.scheduler
        scheduler.add_job(
            self.run_negotiation_sweep,
            trigger=IntervalTrigger(minutes=config.negotiation_sweep_minutes),
            id="check_expired_negotiations",
            name="Escalate Expired Negotiations",
            max_instances=1,
            coalesce=True,
        )
        scheduler.add_job(
            self.run_arbitration_sweep,
            trigger=IntervalTrigger(minutes=config.arbitration_sweep_minutes),
            id="check_expired_arbitrations",
            name="Close Expired Arbitrations",
            max_instances=1,
            coalesce=True,
        )

    def start(self) -> BackgroundScheduler:
        if self.scheduler is not None and self.scheduler.running:
            return self.scheduler

        self.scheduler = BackgroundScheduler()
        self.setup_jobs(self.scheduler)
        self.scheduler.start()
        self.logger.info(
            f"Escalation scheduler started (negotiations every "
            f"{self.settings.scheduler.negotiation_sweep_minutes}m, arbitrations every "
            f"{self.settings.scheduler.arbitration_sweep_minutes}m)"
        )
        return self.scheduler

    def stop(self):
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            self.logger.info("Escalation scheduler stopped")
        self.scheduler = None
