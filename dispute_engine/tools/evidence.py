"""Evidence tools."""

from typing import Any

from langchain_core.tools import tool

from dispute_engine import core
from dispute_engine.errors import DisputeError
from dispute_engine.tools.common import error_response
from dispute_engine.utils.session import get_current_user_id


@tool
def upload_evidence(
    dispute_id: str,
    evidence_type: str,
    file_url: str,
    description: str | None = None,
    file_name: str | None = None,
    file_size: int | None = None,
) -> dict[str, Any]:
    """Attach evidence (already stored elsewhere) to a dispute.

    Args:
        dispute_id: The dispute
        evidence_type: One of IMAGE, VIDEO, CHAT_RECORD, DOCUMENT, OTHER
        file_url: Reference to the stored file
        description: What the evidence shows
        file_name: Optional original file name
        file_size: Optional size in bytes

    Returns:
        Dictionary with the evidence id or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        evidence_id = engine.evidence.upload_evidence(
            dispute_id, user_id, evidence_type, file_url, description, file_name, file_size
        )
    except DisputeError as e:
        return error_response(e)

    return {"success": True, "evidence_id": evidence_id, "message": "Evidence uploaded."}


@tool
def evaluate_evidence(evidence_id: str, validity: str, reason: str | None = None) -> dict[str, Any]:
    """Record whether a piece of evidence is VALID, INVALID or DOUBTFUL.

    Args:
        evidence_id: The evidence item
        validity: VALID, INVALID or DOUBTFUL
        reason: Why

    Returns:
        Dictionary with confirmation or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        engine.evidence.evaluate_evidence(evidence_id, validity.upper(), reason, user_id)
    except DisputeError as e:
        return error_response(e)

    return {"success": True, "message": f"Evidence marked {validity.upper()}."}


@tool
def delete_evidence(evidence_id: str) -> dict[str, Any]:
    """Remove evidence the current user uploaded, as long as it was not evaluated.

    Args:
        evidence_id: The evidence item

    Returns:
        Dictionary with confirmation or an error
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        engine.evidence.delete_evidence(evidence_id, user_id)
    except DisputeError as e:
        return error_response(e)

    return {"success": True, "message": "Evidence deleted."}


@tool
def list_evidence(dispute_id: str) -> dict[str, Any]:
    """List the evidence of a dispute with a summary of its assessment.

    Args:
        dispute_id: The dispute

    Returns:
        Dictionary with the evidence items and counts
    """
    engine = core.get_engine()
    user_id = get_current_user_id()

    try:
        items = engine.evidence.list_evidence(dispute_id, viewer_id=user_id)
        summary = engine.evidence.get_summary(dispute_id)
    except DisputeError as e:
        return error_response(e)

    return {
        "success": True,
        "evidence": [item.to_display_dict() for item in items],
        "summary": summary.model_dump(),
    }
