"""Services module - Dispute lifecycle, negotiation, evidence, arbitration, scheduling."""

from .effects import SideEffects
from .lifecycle import DisputeService, SweepResult, ARBITRATION_TIMEOUT_REASON
from .negotiation import NegotiationService
from .evidence import EvidenceService
from .arbitration import ArbitrationService
from .scheduler import EscalationScheduler, NEGOTIATION_LOCK_KEY, ARBITRATION_LOCK_KEY

__all__ = [
    "SideEffects",
    "DisputeService",
    "SweepResult",
    "ARBITRATION_TIMEOUT_REASON",
    "NegotiationService",
    "EvidenceService",
    "ArbitrationService",
    "EscalationScheduler",
    "NEGOTIATION_LOCK_KEY",
    "ARBITRATION_LOCK_KEY",
]
