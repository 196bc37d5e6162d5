"""Tests for the tools module."""

import pytest

from dispute_engine import core
from dispute_engine.tools import (
    ALL_TOOLS,
    cancel_dispute,
    close_dispute,
    delete_evidence,
    escalate_dispute,
    evaluate_evidence,
    get_dispute,
    get_dispute_detail,
    get_negotiation_history,
    list_evidence,
    list_my_arbitration_cases,
    list_my_disputes,
    list_pending_executions,
    mark_arbitration_executed,
    propose_resolution,
    respond_to_proposal,
    send_dispute_message,
    submit_arbitration,
    submit_dispute,
    take_arbitration_case,
    upload_evidence,
)
from dispute_engine.utils.session import reset_current_user_id, set_current_user_id


@pytest.fixture(autouse=True)
def patched_engine(engine, monkeypatch):
    """Point every tool at the test engine."""
    monkeypatch.setattr(core, "get_engine", lambda: engine)
    return engine


@pytest.fixture
def as_user():
    """Switch the acting user; the context is restored after the test."""
    tokens = []

    def _as_user(user_id: str):
        tokens.append(set_current_user_id(user_id))

    yield _as_user
    for token in reversed(tokens):
        reset_current_user_id(token)


def open_via_tool(as_user) -> dict:
    as_user("user_001")
    return submit_dispute.invoke({
        "order_id": "order_001",
        "dispute_type": "GOODS_QUALITY",
        "description": "The handle broke on first use",
    })


class TestToolSurface:
    """Tests for the registered tool set."""

    def test_tool_names_are_unique(self):
        names = [t.name for t in ALL_TOOLS]
        assert len(names) == len(set(names))

    def test_every_tool_has_a_description(self):
        for t in ALL_TOOLS:
            assert t.description


class TestDisputeTools:
    """Tests for the dispute lifecycle tools."""

    def test_submit_and_lookup(self, as_user):
        result = open_via_tool(as_user)

        assert result["success"]
        assert result["dispute_code"].startswith("DSP-")
        assert len(result["next_steps"]) == 3

        by_code = get_dispute.invoke({"dispute_id": result["dispute_code"]})
        assert by_code["dispute"]["id"] == result["dispute_id"]
        assert by_code["dispute"]["status"] == "SUBMITTED"

    def test_duplicate_dispute_reports_conflict(self, as_user):
        open_via_tool(as_user)
        as_user("user_002")
        result = submit_dispute.invoke({
            "order_id": "order_001", "dispute_type": "OTHER", "description": "again",
        })
        assert result == {
            "success": False,
            "error": "conflict",
            "message": "Order ORD-20250101-0001 already has a dispute",
        }

    def test_outsider_gets_forbidden(self, as_user):
        dispute_id = open_via_tool(as_user)["dispute_id"]
        as_user("user_004")
        result = get_dispute_detail.invoke({"dispute_id": dispute_id})
        assert not result["success"]
        assert result["error"] == "forbidden"

    def test_list_my_disputes(self, as_user):
        open_via_tool(as_user)
        result = list_my_disputes.invoke({})
        assert result["count"] == 1

        assert list_my_disputes.invoke({"status": "negotiating"})["count"] == 0
        assert list_my_disputes.invoke({"status": "bogus"})["error"] == "validation_error"

    def test_escalate_and_cancel(self, as_user):
        dispute_id = open_via_tool(as_user)["dispute_id"]
        escalated = escalate_dispute.invoke({"dispute_id": dispute_id})
        assert escalated["status"] == "PENDING_ARBITRATION"

        cancelled = cancel_dispute.invoke({"dispute_id": dispute_id})
        assert cancelled["error"] == "invalid_operation"

    def test_party_cannot_close_through_tool(self, as_user):
        dispute_id = open_via_tool(as_user)["dispute_id"]
        as_user("user_002")
        result = close_dispute.invoke({"dispute_id": dispute_id, "reason": "Go away"})
        assert result["error"] == "forbidden"
        assert get_dispute.invoke({"dispute_id": dispute_id})["dispute"]["status"] == "SUBMITTED"


class TestNegotiationTools:
    """Tests for messaging and proposals through the tools."""

    def test_propose_and_accept(self, as_user):
        dispute_id = open_via_tool(as_user)["dispute_id"]
        send_dispute_message.invoke({"dispute_id": dispute_id, "content": "Would 20 work?"})
        proposal = propose_resolution.invoke({"dispute_id": dispute_id, "refund_amount": 20.0})
        assert proposal["success"]

        as_user("user_002")
        history = get_negotiation_history.invoke({"dispute_id": dispute_id})
        assert history["count"] == 2
        assert history["pending_proposal_id"] == proposal["proposal_id"]

        accepted = respond_to_proposal.invoke({"proposal_id": proposal["proposal_id"], "accept": True})
        assert accepted["accepted"]
        detail = get_dispute_detail.invoke({"dispute_id": dispute_id})
        assert detail["dispute"]["status"] == "COMPLETED"
        assert detail["accepted_proposal"]["proposed_refund_amount"] == "20.00"

    def test_invalid_amount(self, as_user):
        dispute_id = open_via_tool(as_user)["dispute_id"]
        result = propose_resolution.invoke({"dispute_id": dispute_id, "refund_amount": 0})
        assert result["error"] == "validation_error"


class TestEvidenceAndArbitrationTools:
    """End-to-end path from evidence to an executed decision."""

    def test_full_arbitration_flow(self, as_user):
        dispute_id = open_via_tool(as_user)["dispute_id"]
        uploaded = upload_evidence.invoke({
            "dispute_id": dispute_id,
            "evidence_type": "IMAGE",
            "file_url": "s3://evidence/handle.jpg",
            "description": "Broken handle",
        })
        assert uploaded["success"]
        escalate_dispute.invoke({"dispute_id": dispute_id})

        as_user("arb_001")
        assert take_arbitration_case.invoke({"dispute_id": dispute_id})["status"] == "ARBITRATING"
        assert list_my_arbitration_cases.invoke({})["count"] == 1
        assert evaluate_evidence.invoke({
            "evidence_id": uploaded["evidence_id"], "validity": "valid", "reason": "Consistent",
        })["success"]

        refused = submit_arbitration.invoke({
            "dispute_id": dispute_id, "result": "FULL_REFUND", "reason": "Defective", "refund_amount": 0,
        })
        assert refused["error"] == "validation_error"

        decided = submit_arbitration.invoke({
            "dispute_id": dispute_id, "result": "full_refund", "reason": "Defective", "refund_amount": 120.0,
        })
        assert decided["success"]
        assert decided["decision"]["summary"] == "Arbitration result: full refund of 120.00"

        assert list_pending_executions.invoke({})["count"] == 1
        assert mark_arbitration_executed.invoke({"arbitration_id": decided["arbitration_id"]})["success"]
        assert list_pending_executions.invoke({})["count"] == 0

        as_user("user_001")
        result = delete_evidence.invoke({"evidence_id": uploaded["evidence_id"]})
        assert result["error"] == "invalid_operation"
        summary = list_evidence.invoke({"dispute_id": dispute_id})["summary"]
        assert summary["valid_count"] == 1

    def test_unknown_result_is_a_validation_error(self, as_user, engine, arbitrating_dispute):
        as_user("arb_001")
        result = submit_arbitration.invoke({
            "dispute_id": arbitrating_dispute, "result": "SPLIT", "reason": "?",
        })
        assert result["error"] == "validation_error"
