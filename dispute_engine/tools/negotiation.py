"""Negotiation tools: messages and refund proposals."""

from typing import Any

from langchain_core.tools import tool

from dispute_engine import core
from dispute_engine.errors import DisputeError
from dispute_engine.tools.common import error_response
from dispute_engine.utils.session import get_current_user_id


@tool
def send_dispute_message(dispute_id: str, content: str) -> dict[str, Any]:
    """Send a message to the other party of a dispute.

    Args:
        dispute_id: The dispute
        content: Message text

    Returns:
        Dictionary with the message id or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        entry_id = engine.negotiation.send_message(dispute_id, user_id, content)
    except DisputeError as e:
        return error_response(e)

    return {"success": True, "entry_id": entry_id, "message": "Message sent."}


@tool
def propose_resolution(dispute_id: str, refund_amount: float, note: str | None = None) -> dict[str, Any]:
    """Propose settling the dispute for a refund amount.

    Only one proposal can be open at a time; the other party accepts or rejects it.

    Args:
        dispute_id: The dispute
        refund_amount: Refund offered, greater than zero
        note: Optional explanation

    Returns:
        Dictionary with the proposal id or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        proposal_id = engine.negotiation.propose_resolution(
            dispute_id, user_id, str(refund_amount), note
        )
    except DisputeError as e:
        return error_response(e)

    return {
        "success": True,
        "proposal_id": proposal_id,
        "message": f"Proposed a refund of {refund_amount:.2f}; waiting for the other party.",
    }


@tool
def respond_to_proposal(proposal_id: str, accept: bool, note: str | None = None) -> dict[str, Any]:
    """Accept or reject the other party's proposal. Accepting settles the dispute.

    Args:
        proposal_id: The proposal to answer
        accept: True to accept, False to reject
        note: Optional response note

    Returns:
        Dictionary with confirmation or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        engine.negotiation.respond_to_proposal(proposal_id, user_id, accept, note)
    except DisputeError as e:
        return error_response(e)

    return {
        "success": True,
        "accepted": accept,
        "message": "Proposal accepted; the dispute is settled." if accept else "Proposal rejected.",
    }


@tool
def get_negotiation_history(dispute_id: str) -> dict[str, Any]:
    """Show the messages and proposals exchanged on a dispute, oldest first.

    Args:
        dispute_id: The dispute

    Returns:
        Dictionary with the history and any open proposal
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        history = engine.negotiation.get_history(dispute_id, viewer_id=user_id)
    except DisputeError as e:
        return error_response(e)

    pending = [entry for entry in history if entry.is_pending_proposal]
    return {
        "success": True,
        "count": len(history),
        "entries": [entry.to_display_dict() for entry in history],
        "pending_proposal_id": pending[-1].id if pending else None,
    }
