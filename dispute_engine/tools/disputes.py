"""Dispute lifecycle tools."""

from typing import Any

from langchain_core.tools import tool

from dispute_engine import core
from dispute_engine.errors import DisputeError, ValidationError
from dispute_engine.models import DisputeStatus
from dispute_engine.tools.common import error_response
from dispute_engine.utils.session import get_current_user_id


@tool
def submit_dispute(order_id: str, dispute_type: str, description: str) -> dict[str, Any]:
    """Open a dispute on an order the current user bought or sold.

    Args:
        order_id: The disputed order
        dispute_type: One of GOODS_MISMATCH, GOODS_QUALITY, QUALITY_ISSUE,
            LOGISTICS_DELAY, NOT_RECEIVED, OTHER
        description: What went wrong

    Returns:
        Dictionary with the new dispute or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        dispute_id = engine.disputes.submit_dispute(order_id, user_id, dispute_type, description)
        dispute = engine.disputes.get_dispute(dispute_id)
    except DisputeError as e:
        return error_response(e)

    return {
        "success": True,
        "dispute_id": dispute_id,
        "dispute_code": dispute.dispute_code,
        "message": f"Dispute {dispute.dispute_code} has been opened.",
        "next_steps": [
            "The other party has been notified and can respond.",
            f"Negotiation is open until {dispute.negotiation_deadline:%Y-%m-%d %H:%M}.",
            "Either party may escalate to arbitration if no agreement is reached.",
        ],
    }


@tool
def get_dispute(dispute_id: str) -> dict[str, Any]:
    """Look up a dispute by its id or by its DSP- code.

    Args:
        dispute_id: The dispute id or code

    Returns:
        Dictionary with the dispute or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        if dispute_id.startswith("DSP-"):
            dispute = engine.disputes.get_dispute_by_code(dispute_id, viewer_id=user_id)
        else:
            dispute = engine.disputes.get_dispute(dispute_id, viewer_id=user_id)
    except DisputeError as e:
        return error_response(e)

    return {"success": True, "dispute": dispute.to_display_dict()}


@tool
def get_dispute_detail(dispute_id: str) -> dict[str, Any]:
    """Full view of a dispute: negotiation history, evidence and arbitration outcome.

    Args:
        dispute_id: The dispute id

    Returns:
        Dictionary with the dispute detail or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        detail = engine.disputes.get_dispute_detail(dispute_id, viewer_id=user_id)
    except DisputeError as e:
        return error_response(e)

    return {"success": True, **detail.to_display_dict()}


@tool
def list_my_disputes(status: str | None = None) -> dict[str, Any]:
    """List the disputes the current user is a party to, newest first.

    Args:
        status: Optional status filter, e.g. NEGOTIATING

    Returns:
        Dictionary with the disputes
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        status_filter = _parse_status(status)
    except DisputeError as e:
        return error_response(e)

    disputes = engine.disputes.list_user_disputes(user_id, status_filter)
    return {
        "success": True,
        "count": len(disputes),
        "disputes": [d.to_display_dict() for d in disputes],
    }


@tool
def escalate_dispute(dispute_id: str) -> dict[str, Any]:
    """Ask for arbitration when negotiation has not led to an agreement.

    Args:
        dispute_id: The dispute to escalate

    Returns:
        Dictionary with confirmation or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        engine.disputes.escalate_to_arbitration(dispute_id, actor_id=user_id)
        dispute = engine.disputes.get_dispute(dispute_id)
    except DisputeError as e:
        return error_response(e)

    return {
        "success": True,
        "status": dispute.status.value,
        "message": f"Dispute {dispute.dispute_code} has been escalated to arbitration.",
        "arbitration_deadline": f"{dispute.arbitration_deadline:%Y-%m-%d %H:%M}",
    }


@tool
def cancel_dispute(dispute_id: str, reason: str | None = None) -> dict[str, Any]:
    """Withdraw a dispute the current user opened, before it is escalated.

    Args:
        dispute_id: The dispute to withdraw
        reason: Optional reason

    Returns:
        Dictionary with confirmation or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        engine.disputes.cancel_dispute(dispute_id, user_id, reason)
    except DisputeError as e:
        return error_response(e)

    return {"success": True, "status": DisputeStatus.CANCELLED.value, "message": "Dispute withdrawn."}


@tool
def close_dispute(dispute_id: str, reason: str) -> dict[str, Any]:
    """Administratively close a dispute.

    For arbitrators and operations staff; the buyer and seller of the
    dispute are refused and should cancel or escalate instead.

    Args:
        dispute_id: The dispute to close
        reason: Why it is being closed

    Returns:
        Dictionary with confirmation or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        engine.disputes.close_dispute(dispute_id, reason, actor_id=user_id)
    except DisputeError as e:
        return error_response(e)

    return {"success": True, "status": DisputeStatus.CLOSED.value, "message": "Dispute closed."}


def _parse_status(status: str | None) -> DisputeStatus | None:
    if not status:
        return None
    try:
        return DisputeStatus(status.upper())
    except ValueError:
        raise ValidationError(f"Unknown dispute status: {status!r}")
