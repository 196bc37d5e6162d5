"""Read-side projection of a dispute with everything attached to it."""

from pydantic import BaseModel, Field

from .arbitration import ArbitrationDecision
from .dispute import Dispute
from .evidence import EvidenceItem, EvidenceSummary
from .negotiation import NegotiationEntry


class DisputeDetail(BaseModel):
    """A dispute together with its negotiation history, evidence and outcome."""

    dispute: Dispute
    negotiation: list[NegotiationEntry] = Field(default_factory=list)
    pending_proposal: NegotiationEntry | None = None
    accepted_proposal: NegotiationEntry | None = None
    evidence: list[EvidenceItem] = Field(default_factory=list)
    evidence_summary: EvidenceSummary
    arbitration: ArbitrationDecision | None = None

    def to_display_dict(self) -> dict:
        """Return a dictionary suitable for display."""
        return {
            "dispute": self.dispute.to_display_dict(),
            "negotiation": [entry.to_display_dict() for entry in self.negotiation],
            "pending_proposal": self.pending_proposal.to_display_dict() if self.pending_proposal else None,
            "accepted_proposal": self.accepted_proposal.to_display_dict() if self.accepted_proposal else None,
            "evidence": [item.to_display_dict() for item in self.evidence],
            "evidence_summary": self.evidence_summary.model_dump(),
            "arbitration": self.arbitration.to_display_dict() if self.arbitration else None,
        }
