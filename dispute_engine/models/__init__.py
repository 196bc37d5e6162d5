"""Models module - Pydantic data models."""

from .dispute import (
    Dispute,
    DisputeRole,
    DisputeStatus,
    DisputeType,
    PartyRole,
    TERMINAL_STATUSES,
    TRANSITIONS,
    resolve_party,
)
from .negotiation import NegotiationEntry, NegotiationKind, ProposalStatus
from .evidence import EvidenceItem, EvidenceSummary, EvidenceType, EvidenceValidity
from .arbitration import ArbitrationDecision, ArbitrationRequest, ArbitrationResult
from .order import OrderInfo
from .detail import DisputeDetail

__all__ = [
    "Dispute",
    "DisputeRole",
    "DisputeStatus",
    "DisputeType",
    "PartyRole",
    "TERMINAL_STATUSES",
    "TRANSITIONS",
    "resolve_party",
    "NegotiationEntry",
    "NegotiationKind",
    "ProposalStatus",
    "EvidenceItem",
    "EvidenceSummary",
    "EvidenceType",
    "EvidenceValidity",
    "ArbitrationDecision",
    "ArbitrationRequest",
    "ArbitrationResult",
    "OrderInfo",
    "DisputeDetail",
]
