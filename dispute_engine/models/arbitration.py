"""Arbitration decisions."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from dispute_engine.errors import ValidationError


class ArbitrationResult(str, Enum):
    FULL_REFUND = "FULL_REFUND"
    PARTIAL_REFUND = "PARTIAL_REFUND"
    REJECT = "REJECT"
    NEED_MORE_EVIDENCE = "NEED_MORE_EVIDENCE"

    @property
    def requires_refund(self) -> bool:
        return self in (ArbitrationResult.FULL_REFUND, ArbitrationResult.PARTIAL_REFUND)


class ArbitrationRequest(BaseModel):
    """Decision content submitted by the assigned arbitrator."""

    dispute_id: str
    result: ArbitrationResult
    refund_amount: Decimal | None = None
    reason: str = ""
    buyer_evidence_analysis: str | None = None
    seller_evidence_analysis: str | None = None

    def validate_refund(self):
        """Refund results need a positive amount; the others carry none."""
        if self.result.requires_refund:
            if self.refund_amount is None or self.refund_amount <= 0:
                raise ValidationError(
                    f"{self.result.value} requires a refund amount greater than zero"
                )
        elif self.refund_amount is not None:
            raise ValidationError(
                f"{self.result.value} must not carry a refund amount"
            )


class ArbitrationDecision(BaseModel):
    """The single binding decision recorded for a dispute."""

    id: str = Field(default_factory=lambda: str(uuid4()), description="Unique arbitration ID")
    dispute_id: str = Field(description="Decided dispute, at most one decision each")
    arbitrator_id: str = Field(description="Arbitrator who decided")
    result: ArbitrationResult
    refund_amount: Decimal | None = Field(default=None)
    reason: str = Field(default="")
    buyer_evidence_analysis: str | None = Field(default=None)
    seller_evidence_analysis: str | None = Field(default=None)
    arbitrated_at: datetime = Field(default_factory=datetime.now)
    executed: bool = Field(default=False)
    executed_at: datetime | None = Field(default=None)
    execution_note: str | None = Field(default=None)

    def mark_executed(self, note: str | None, now: datetime):
        self.executed = True
        self.executed_at = now
        self.execution_note = note

    def summary(self) -> str:
        """Human-readable outcome used in notifications."""
        if self.result is ArbitrationResult.FULL_REFUND:
            return f"Arbitration result: full refund of {self.refund_amount:.2f}"
        if self.result is ArbitrationResult.PARTIAL_REFUND:
            return f"Arbitration result: partial refund of {self.refund_amount:.2f}"
        if self.result is ArbitrationResult.REJECT:
            return "Arbitration result: refund request rejected"
        return "Arbitration result: more evidence is required"

    def to_display_dict(self) -> dict:
        """Return a dictionary suitable for display."""
        return {
            "id": self.id,
            "dispute_id": self.dispute_id,
            "result": self.result.value,
            "refund_amount": f"{self.refund_amount:.2f}" if self.refund_amount is not None else None,
            "reason": self.reason,
            "summary": self.summary(),
            "arbitrated_at": self.arbitrated_at.strftime("%Y-%m-%d %H:%M"),
            "executed": self.executed,
            "executed_at": self.executed_at.strftime("%Y-%m-%d %H:%M") if self.executed_at else None,
        }
