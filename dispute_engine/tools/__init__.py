"""Tools module - LangChain tools over the dispute services."""

from .disputes import (
    submit_dispute,
    get_dispute,
    get_dispute_detail,
    list_my_disputes,
    escalate_dispute,
    cancel_dispute,
    close_dispute,
)
from .negotiation import (
    send_dispute_message,
    propose_resolution,
    respond_to_proposal,
    get_negotiation_history,
)
from .evidence import upload_evidence, evaluate_evidence, delete_evidence, list_evidence
from .arbitration import (
    take_arbitration_case,
    submit_arbitration,
    mark_arbitration_executed,
    list_pending_executions,
    list_my_arbitration_cases,
)

PARTY_TOOLS = [
    submit_dispute,
    get_dispute,
    get_dispute_detail,
    list_my_disputes,
    escalate_dispute,
    cancel_dispute,
    send_dispute_message,
    propose_resolution,
    respond_to_proposal,
    get_negotiation_history,
    upload_evidence,
    delete_evidence,
    list_evidence,
]

ARBITRATOR_TOOLS = [
    take_arbitration_case,
    evaluate_evidence,
    submit_arbitration,
    mark_arbitration_executed,
    list_pending_executions,
    list_my_arbitration_cases,
    close_dispute,
]

ALL_TOOLS = PARTY_TOOLS + ARBITRATOR_TOOLS

__all__ = [tool.name for tool in ALL_TOOLS] + ["PARTY_TOOLS", "ARBITRATOR_TOOLS", "ALL_TOOLS"]
