"""Wiring of the dispute services around one store and one set of gateways."""

from datetime import datetime
from pathlib import Path
from typing import Callable

from dispute_engine.config import Settings, settings as default_settings
from dispute_engine.data.storage import Storage
from dispute_engine.gateways import (
    AuditLog,
    LoggingNotificationGateway,
    NotificationGateway,
    OrderLookup,
    StorageOrderLookup,
)
from dispute_engine.services import (
    ArbitrationService,
    DisputeService,
    EscalationScheduler,
    EvidenceService,
    NegotiationService,
    SideEffects,
)
from dispute_engine.utils.logging import AuditLogger, get_logger


logger = get_logger("engine", default_settings.log_level)


class DisputeEngine:
    """All dispute services sharing a store, gateways, settings and clock."""

    def __init__(
        self,
        storage: Storage | None = None,
        orders: OrderLookup | None = None,
        notifications: NotificationGateway | None = None,
        audit_log: AuditLog | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings or default_settings
        self.storage = storage or Storage(self.settings.data_dir)
        self.orders = orders or StorageOrderLookup(self.storage)
        self.notifications = notifications or LoggingNotificationGateway()
        self.audit_log = audit_log or AuditLogger(
            log_dir=self.settings.audit_log_dir,
            use_presidio=self.settings.audit_use_presidio,
        )
        self.clock = clock

        self.effects = SideEffects(self.notifications, self.audit_log, self.settings)
        self.disputes = DisputeService(
            self.storage, self.orders, self.effects, self.settings, clock
        )
        self.negotiation = NegotiationService(self.storage, self.effects, self.settings, clock)
        self.evidence = EvidenceService(self.storage, self.effects, self.settings, clock)
        self.arbitration = ArbitrationService(self.storage, self.effects, self.settings, clock)
        self.scheduler = EscalationScheduler(self.disputes, self.storage, self.settings, clock)

        logger.debug(f"Dispute engine ready on {self.storage.data_dir}")

    def mark_expired_negotiations(self) -> int:
        return self.disputes.mark_expired_negotiations()

    def mark_expired_arbitrations(self) -> int:
        return self.disputes.mark_expired_arbitrations()


_engine: DisputeEngine | None = None


def get_engine() -> DisputeEngine:
    """Process-wide engine used by the tools and the CLI."""
    global _engine
    if _engine is None:
        _engine = DisputeEngine()
    return _engine


def configure_engine(data_dir: Path | None = None, **kwargs) -> DisputeEngine:
    """Replace the process-wide engine, e.g. to point it at another data directory."""
    global _engine
    storage = Storage(data_dir) if data_dir is not None else None
    _engine = DisputeEngine(storage=storage, **kwargs)
    return _engine
