"""Negotiation ledger entries."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from .dispute import DisputeRole


class NegotiationKind(str, Enum):
    TEXT = "TEXT"
    PROPOSAL = "PROPOSAL"


class ProposalStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class NegotiationEntry(BaseModel):
    """A message or resolution proposal exchanged between the two parties."""

    id: str = Field(default_factory=lambda: str(uuid4()), description="Unique entry ID")
    dispute_id: str = Field(description="Owning dispute")
    sender_id: str = Field(description="Party who wrote the entry")
    sender_role: DisputeRole = Field(description="Buyer/seller role of the sender")
    kind: NegotiationKind = Field(default=NegotiationKind.TEXT)
    content: str = Field(default="", description="Message text or proposal note")
    proposed_refund_amount: Decimal | None = Field(
        default=None, description="Refund offered by a proposal"
    )
    proposal_status: ProposalStatus | None = Field(default=None)
    responder_id: str | None = Field(default=None)
    response_note: str | None = Field(default=None)
    responded_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_proposal(self) -> bool:
        return self.kind is NegotiationKind.PROPOSAL

    @property
    def is_pending_proposal(self) -> bool:
        return self.is_proposal and self.proposal_status is ProposalStatus.PENDING

    def accept(self, responder_id: str, note: str | None, now: datetime):
        self._respond(ProposalStatus.ACCEPTED, responder_id, note, now)

    def reject(self, responder_id: str, note: str | None, now: datetime):
        self._respond(ProposalStatus.REJECTED, responder_id, note, now)

    def _respond(self, status: ProposalStatus, responder_id: str, note: str | None, now: datetime):
        self.proposal_status = status
        self.responder_id = responder_id
        self.response_note = note
        self.responded_at = now

    def to_display_dict(self) -> dict:
        """Return a dictionary suitable for display."""
        data = {
            "id": self.id,
            "kind": self.kind.value,
            "sender_role": self.sender_role.value,
            "content": self.content,
            "created_at": self.created_at.strftime("%Y-%m-%d %H:%M"),
        }
        if self.is_proposal:
            data["proposed_refund_amount"] = f"{self.proposed_refund_amount:.2f}"
            data["proposal_status"] = self.proposal_status.value
            data["response_note"] = self.response_note
        return data
