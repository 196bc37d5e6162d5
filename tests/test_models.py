"""Tests for the dispute models and the status state machine."""

import pytest
from datetime import datetime
from decimal import Decimal

from dispute_engine.errors import (
    ConflictError,
    DisputeError,
    InvalidOperationError,
    ValidationError,
)
from dispute_engine.models import (
    ArbitrationDecision,
    ArbitrationRequest,
    ArbitrationResult,
    Dispute,
    DisputeRole,
    DisputeStatus,
    EvidenceItem,
    EvidenceSummary,
    EvidenceValidity,
    PartyRole,
    TERMINAL_STATUSES,
    TRANSITIONS,
    resolve_party,
)


NOW = datetime(2025, 3, 14, 9, 30)


def make_dispute(**overrides) -> Dispute:
    data = {
        "dispute_code": "DSP-20250314-000001",
        "order_id": "order_001",
        "initiator_id": "user_001",
        "initiator_role": DisputeRole.BUYER,
        "respondent_id": "user_002",
    }
    data.update(overrides)
    return Dispute(**data)


class TestTransitionTable:
    """Tests for the central status transition table."""

    def test_terminal_statuses_have_no_exits(self):
        for status in TERMINAL_STATUSES:
            assert TRANSITIONS[status] == frozenset()
            assert status.is_terminal

    def test_every_status_has_an_entry(self):
        assert set(TRANSITIONS) == set(DisputeStatus)

    def test_happy_path_is_allowed(self):
        path = [
            DisputeStatus.SUBMITTED,
            DisputeStatus.NEGOTIATING,
            DisputeStatus.PENDING_ARBITRATION,
            DisputeStatus.ARBITRATING,
            DisputeStatus.COMPLETED,
        ]
        for current, target in zip(path, path[1:]):
            assert current.can_transition_to(target)

    def test_cannot_cancel_after_escalation(self):
        assert not DisputeStatus.PENDING_ARBITRATION.can_transition_to(DisputeStatus.CANCELLED)
        assert not DisputeStatus.ARBITRATING.can_transition_to(DisputeStatus.CANCELLED)

    def test_cannot_go_back_to_negotiation(self):
        assert not DisputeStatus.PENDING_ARBITRATION.can_transition_to(DisputeStatus.NEGOTIATING)

    def test_negotiable_statuses(self):
        assert DisputeStatus.SUBMITTED.is_negotiable
        assert DisputeStatus.NEGOTIATING.is_negotiable
        assert not DisputeStatus.PENDING_ARBITRATION.is_negotiable


class TestDispute:
    """Tests for the Dispute aggregate."""

    def test_respondent_role_is_opposite(self):
        assert make_dispute().respondent_role is DisputeRole.SELLER
        assert make_dispute(initiator_role=DisputeRole.SELLER).respondent_role is DisputeRole.BUYER

    def test_resolve_party(self):
        dispute = make_dispute()
        assert resolve_party(dispute, "user_001") is PartyRole.INITIATOR
        assert resolve_party(dispute, "user_002") is PartyRole.RESPONDENT
        assert resolve_party(dispute, "user_999") is PartyRole.NONE
        assert resolve_party(dispute, None) is PartyRole.NONE

    def test_role_of_and_counterpart(self):
        dispute = make_dispute()
        assert dispute.role_of("user_001") is DisputeRole.BUYER
        assert dispute.role_of("user_002") is DisputeRole.SELLER
        assert dispute.role_of("user_999") is None
        assert dispute.counterpart_of("user_002") == "user_001"
        assert dispute.party_for_role(DisputeRole.SELLER) == "user_002"

    def test_transition_sets_timestamps(self):
        dispute = make_dispute()
        previous = dispute.transition_to(DisputeStatus.CANCELLED, NOW)
        assert previous is DisputeStatus.SUBMITTED
        assert dispute.cancelled_at == NOW
        assert dispute.updated_at == NOW

    def test_illegal_transition_raises(self):
        dispute = make_dispute(status=DisputeStatus.COMPLETED)
        with pytest.raises(InvalidOperationError):
            dispute.transition_to(DisputeStatus.CLOSED, NOW)
        assert dispute.status is DisputeStatus.COMPLETED

    def test_can_cancel_only_initiator_before_escalation(self):
        dispute = make_dispute()
        assert dispute.can_cancel("user_001")
        assert not dispute.can_cancel("user_002")
        dispute.status = DisputeStatus.PENDING_ARBITRATION
        assert not dispute.can_cancel("user_001")

    def test_display_truncates_long_description(self):
        dispute = make_dispute(description="x" * 150)
        assert dispute.to_display_dict()["description"].endswith("...")


class TestArbitrationRequest:
    """Tests for refund validation of arbitration decisions."""

    @pytest.mark.parametrize("result", [ArbitrationResult.FULL_REFUND, ArbitrationResult.PARTIAL_REFUND])
    def test_refund_result_requires_positive_amount(self, result):
        with pytest.raises(ValidationError):
            ArbitrationRequest(dispute_id="d1", result=result).validate_refund()
        with pytest.raises(ValidationError):
            ArbitrationRequest(dispute_id="d1", result=result, refund_amount=Decimal("0")).validate_refund()

    def test_reject_with_amount_is_invalid(self):
        request = ArbitrationRequest(
            dispute_id="d1", result=ArbitrationResult.REJECT, refund_amount=Decimal("5")
        )
        with pytest.raises(ValidationError):
            request.validate_refund()

    def test_valid_requests_pass(self):
        ArbitrationRequest(
            dispute_id="d1", result=ArbitrationResult.PARTIAL_REFUND, refund_amount=Decimal("10")
        ).validate_refund()
        ArbitrationRequest(dispute_id="d1", result=ArbitrationResult.NEED_MORE_EVIDENCE).validate_refund()

    def test_summary_reads_naturally(self):
        decision = ArbitrationDecision(
            dispute_id="d1", arbitrator_id="arb_001",
            result=ArbitrationResult.FULL_REFUND, refund_amount=Decimal("80"),
        )
        assert decision.summary() == "Arbitration result: full refund of 80.00"


class TestEvidenceSummary:
    """Tests for evidence counts."""

    def test_counts_by_side_and_validity(self):
        items = [
            EvidenceItem(dispute_id="d1", uploader_id="u1", uploader_role=DisputeRole.BUYER,
                         file_url="s3://a", validity=EvidenceValidity.VALID),
            EvidenceItem(dispute_id="d1", uploader_id="u1", uploader_role=DisputeRole.BUYER,
                         file_url="s3://b"),
            EvidenceItem(dispute_id="d1", uploader_id="u2", uploader_role=DisputeRole.SELLER,
                         file_url="s3://c", validity=EvidenceValidity.DOUBTFUL),
        ]
        summary = EvidenceSummary.from_items("d1", items)
        assert summary.total_count == 3
        assert summary.buyer_count == 2
        assert summary.seller_count == 1
        assert summary.valid_count == 1
        assert summary.doubtful_count == 1
        assert summary.invalid_count == 0
        assert summary.unevaluated_count == 1


class TestErrors:
    """Tests for the domain error hierarchy."""

    def test_conflict_is_invalid_operation(self):
        error = ConflictError("dup")
        assert isinstance(error, InvalidOperationError)
        assert isinstance(error, DisputeError)
        assert error.to_dict() == {"error": "conflict", "message": "dup"}
