"""Dispute aggregate and its status state machine."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from dispute_engine.errors import InvalidOperationError


class DisputeRole(str, Enum):
    """Side of the order a party is on."""

    BUYER = "BUYER"
    SELLER = "SELLER"

    @property
    def opposite(self) -> "DisputeRole":
        return DisputeRole.SELLER if self is DisputeRole.BUYER else DisputeRole.BUYER


class PartyRole(str, Enum):
    """Position of an actor relative to a dispute."""

    INITIATOR = "INITIATOR"
    RESPONDENT = "RESPONDENT"
    NONE = "NONE"


class DisputeType(str, Enum):
    GOODS_MISMATCH = "GOODS_MISMATCH"
    GOODS_QUALITY = "GOODS_QUALITY"
    QUALITY_ISSUE = "QUALITY_ISSUE"
    LOGISTICS_DELAY = "LOGISTICS_DELAY"
    NOT_RECEIVED = "NOT_RECEIVED"
    OTHER = "OTHER"


class DisputeStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    NEGOTIATING = "NEGOTIATING"
    PENDING_ARBITRATION = "PENDING_ARBITRATION"
    ARBITRATING = "ARBITRATING"
    COMPLETED = "COMPLETED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_negotiable(self) -> bool:
        return self in NEGOTIABLE_STATUSES

    def can_transition_to(self, target: "DisputeStatus") -> bool:
        return target in TRANSITIONS[self]


TERMINAL_STATUSES = frozenset({
    DisputeStatus.COMPLETED,
    DisputeStatus.CLOSED,
    DisputeStatus.CANCELLED,
})

NEGOTIABLE_STATUSES = frozenset({
    DisputeStatus.SUBMITTED,
    DisputeStatus.NEGOTIATING,
})

# The only legal status moves. Every mutation goes through Dispute.transition_to.
TRANSITIONS: dict[DisputeStatus, frozenset[DisputeStatus]] = {
    DisputeStatus.SUBMITTED: frozenset({
        DisputeStatus.NEGOTIATING,
        DisputeStatus.PENDING_ARBITRATION,
        DisputeStatus.COMPLETED,
        DisputeStatus.CLOSED,
        DisputeStatus.CANCELLED,
    }),
    DisputeStatus.NEGOTIATING: frozenset({
        DisputeStatus.PENDING_ARBITRATION,
        DisputeStatus.COMPLETED,
        DisputeStatus.CLOSED,
        DisputeStatus.CANCELLED,
    }),
    DisputeStatus.PENDING_ARBITRATION: frozenset({
        DisputeStatus.ARBITRATING,
        DisputeStatus.CLOSED,
    }),
    DisputeStatus.ARBITRATING: frozenset({
        DisputeStatus.COMPLETED,
        DisputeStatus.CLOSED,
    }),
    DisputeStatus.COMPLETED: frozenset(),
    DisputeStatus.CLOSED: frozenset(),
    DisputeStatus.CANCELLED: frozenset(),
}


class Dispute(BaseModel):
    """A buyer/seller disagreement over a single order."""

    id: str = Field(default_factory=lambda: str(uuid4()), description="Unique dispute ID")
    dispute_code: str = Field(description="Human-readable code, DSP-YYYYMMDD-NNNNNN")
    order_id: str = Field(description="Disputed order, at most one dispute per order")
    initiator_id: str = Field(description="Party who opened the dispute")
    initiator_role: DisputeRole = Field(description="Side of the order the initiator is on")
    respondent_id: str = Field(description="Counterpart of the initiator on the order")
    dispute_type: DisputeType = Field(default=DisputeType.OTHER)
    description: str = Field(default="", description="Initiator's account of the problem")
    status: DisputeStatus = Field(default=DisputeStatus.SUBMITTED)
    arbitrator_id: str | None = Field(default=None)
    negotiation_deadline: datetime | None = Field(default=None)
    arbitration_deadline: datetime | None = Field(default=None)
    close_reason: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    completed_at: datetime | None = Field(default=None)
    closed_at: datetime | None = Field(default=None)
    cancelled_at: datetime | None = Field(default=None)

    @property
    def respondent_role(self) -> DisputeRole:
        return self.initiator_role.opposite

    def resolve_party(self, actor_id: str | None) -> PartyRole:
        return resolve_party(self, actor_id)

    def is_participant(self, actor_id: str | None) -> bool:
        return self.resolve_party(actor_id) is not PartyRole.NONE

    def role_of(self, actor_id: str | None) -> DisputeRole | None:
        """Buyer/seller role of a participant, None for outsiders."""
        party = self.resolve_party(actor_id)
        if party is PartyRole.INITIATOR:
            return self.initiator_role
        if party is PartyRole.RESPONDENT:
            return self.respondent_role
        return None

    def counterpart_of(self, actor_id: str) -> str | None:
        party = self.resolve_party(actor_id)
        if party is PartyRole.INITIATOR:
            return self.respondent_id
        if party is PartyRole.RESPONDENT:
            return self.initiator_id
        return None

    def party_for_role(self, role: DisputeRole) -> str:
        return self.initiator_id if role is self.initiator_role else self.respondent_id

    def can_cancel(self, actor_id: str) -> bool:
        return (
            self.resolve_party(actor_id) is PartyRole.INITIATOR
            and self.status.is_negotiable
        )

    def transition_to(self, target: DisputeStatus, now: datetime) -> DisputeStatus:
        """Move to ``target`` if the transition table allows it.

        Returns the previous status.
        """
        if not self.status.can_transition_to(target):
            raise InvalidOperationError(
                f"Dispute {self.dispute_code} cannot move from {self.status.value} "
                f"to {target.value}"
            )
        previous = self.status
        self.status = target
        self.updated_at = now
        if target is DisputeStatus.COMPLETED:
            self.completed_at = now
        elif target is DisputeStatus.CLOSED:
            self.closed_at = now
        elif target is DisputeStatus.CANCELLED:
            self.cancelled_at = now
        return previous

    def to_display_dict(self) -> dict:
        """Return a dictionary suitable for display."""
        return {
            "id": self.id,
            "code": self.dispute_code,
            "order_id": self.order_id,
            "type": self.dispute_type.value,
            "status": self.status.value,
            "initiator_role": self.initiator_role.value,
            "created_at": self.created_at.strftime("%Y-%m-%d %H:%M"),
            "negotiation_deadline": _fmt(self.negotiation_deadline),
            "arbitration_deadline": _fmt(self.arbitration_deadline),
            "close_reason": self.close_reason,
            "description": self.description[:100] + "..." if len(self.description) > 100 else self.description,
        }


def resolve_party(dispute: Dispute, actor_id: str | None) -> PartyRole:
    """Classify ``actor_id`` as initiator, respondent or outsider of ``dispute``."""
    if actor_id is None:
        return PartyRole.NONE
    if actor_id == dispute.initiator_id:
        return PartyRole.INITIATOR
    if actor_id == dispute.respondent_id:
        return PartyRole.RESPONDENT
    return PartyRole.NONE


def _fmt(value: datetime | None) -> str | None:
    return value.strftime("%Y-%m-%d %H:%M") if value else None
