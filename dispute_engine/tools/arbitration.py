"""Arbitration tools, used by arbitrators and operations staff."""

from typing import Any

from langchain_core.tools import tool
from pydantic import ValidationError as PydanticValidationError

from dispute_engine import core
from dispute_engine.errors import DisputeError, ValidationError
from dispute_engine.models import ArbitrationRequest
from dispute_engine.tools.common import error_response
from dispute_engine.utils.session import get_current_user_id


@tool
def take_arbitration_case(dispute_id: str) -> dict[str, Any]:
    """Assign an escalated dispute to the current user as arbitrator.

    Args:
        dispute_id: A dispute waiting for arbitration

    Returns:
        Dictionary with the decision deadline or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        engine.arbitration.assign_arbitrator(dispute_id, user_id)
        dispute = engine.disputes.get_dispute(dispute_id)
    except DisputeError as e:
        return error_response(e)

    return {
        "success": True,
        "status": dispute.status.value,
        "arbitration_deadline": f"{dispute.arbitration_deadline:%Y-%m-%d %H:%M}",
    }


@tool
def submit_arbitration(
    dispute_id: str,
    result: str,
    reason: str,
    refund_amount: float | None = None,
    buyer_evidence_analysis: str | None = None,
    seller_evidence_analysis: str | None = None,
) -> dict[str, Any]:
    """Record the arbitrator's binding decision on a dispute.

    Args:
        dispute_id: The dispute being decided
        result: FULL_REFUND, PARTIAL_REFUND, REJECT or NEED_MORE_EVIDENCE
        reason: Grounds for the decision
        refund_amount: Required for refund results, omitted otherwise
        buyer_evidence_analysis: Assessment of the buyer's evidence
        seller_evidence_analysis: Assessment of the seller's evidence

    Returns:
        Dictionary with the decision or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        try:
            request = ArbitrationRequest(
                dispute_id=dispute_id,
                result=result.upper(),
                refund_amount=str(refund_amount) if refund_amount is not None else None,
                reason=reason,
                buyer_evidence_analysis=buyer_evidence_analysis,
                seller_evidence_analysis=seller_evidence_analysis,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid arbitration decision: {e.errors()[0]['msg']}")
        arbitration_id = engine.arbitration.submit_arbitration(request, user_id)
        decision = engine.arbitration.get_arbitration(dispute_id)
    except DisputeError as e:
        return error_response(e)

    return {"success": True, "arbitration_id": arbitration_id, "decision": decision.to_display_dict()}


@tool
def mark_arbitration_executed(arbitration_id: str, note: str | None = None) -> dict[str, Any]:
    """Record that an arbitration decision has been carried out.

    For arbitrators and operations staff; the buyer and seller of the
    dispute are refused.

    Args:
        arbitration_id: The decision
        note: Optional execution note

    Returns:
        Dictionary with confirmation or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        engine.arbitration.mark_executed(arbitration_id, note, actor_id=user_id)
    except DisputeError as e:
        return error_response(e)

    return {"success": True, "message": "Decision marked as executed."}


@tool
def list_pending_executions() -> dict[str, Any]:
    """List arbitration decisions that have not been carried out yet.

    Returns:
        Dictionary with the pending decisions
    """
    engine = core.get_engine()
    decisions = engine.arbitration.list_pending_executions()
    return {
        "success": True,
        "count": len(decisions),
        "decisions": [d.to_display_dict() for d in decisions],
    }


@tool
def list_my_arbitration_cases() -> dict[str, Any]:
    """List the disputes assigned to the current user as arbitrator.

    Returns:
        Dictionary with the assigned disputes
    """
    engine = core.get_engine()
    user_id = get_current_user_id()
    disputes = engine.disputes.list_arbitrator_disputes(user_id)
    return {
        "success": True,
        "count": len(disputes),
        "disputes": [d.to_display_dict() for d in disputes],
    }
