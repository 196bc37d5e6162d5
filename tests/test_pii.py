"""Tests for PII masking, the audit trail and input hygiene."""

import json

import pytest
import spacy

from dispute_engine.errors import ValidationError
from dispute_engine.models import Dispute, DisputeRole, DisputeStatus
from dispute_engine.utils.logging import AuditLogger
from dispute_engine.utils.pii import (
    _mask_pii_presidio,
    _mask_pii_regex,
    hash_user_id,
    mask_pii,
    redact_for_logging,
)
from dispute_engine.utils.security import sanitize_text, validate_user_id


requires_spacy_model = pytest.mark.skipif(
    not spacy.util.is_package("en_core_web_lg"),
    reason="Presidio needs the en_core_web_lg spaCy model",
)


@requires_spacy_model
class TestMaskPiiPresidio:
    """Tests for Presidio-based PII masking."""

    def test_masks_person_names(self):
        result = _mask_pii_presidio("John Smith never shipped my order")
        assert "John Smith" not in result
        assert "[REDACTED_PERSON]" in result

    def test_masks_email(self):
        result = _mask_pii_presidio("Reach the seller at john.doe@example.com")
        assert "john.doe@example.com" not in result

    def test_no_pii_returns_unchanged(self):
        text = "The parcel arrived with a cracked lid"
        assert _mask_pii_presidio(text) == text


class TestMaskPiiRegex:
    """Tests for regex-based PII masking."""

    def test_masks_credit_card_with_dashes(self):
        result = _mask_pii_regex("Refund to card 4111-1111-1111-1111 please")
        assert "[REDACTED_CREDIT_CARD]" in result

    def test_masks_ssn(self):
        assert "[REDACTED_SSN]" in _mask_pii_regex("SSN: 123-45-6789")

    def test_masks_email(self):
        assert "[REDACTED_EMAIL]" in _mask_pii_regex("Email: buyer@example.com")

    def test_masks_phone(self):
        assert "[REDACTED_PHONE]" in _mask_pii_regex("Call me on (555) 123-4567")

    def test_masks_bank_account(self):
        assert "[REDACTED_ACCOUNT]" in _mask_pii_regex("Send it to account 12345678901")


class TestMaskPiiHybrid:
    """Tests for the hybrid mask_pii function."""

    def test_presidio_disabled(self):
        result = mask_pii("John Smith paid with card 4111-1111-1111-1111", use_presidio=False)
        assert "4111-1111-1111-1111" not in result
        # Without Presidio, names are left alone
        assert "John Smith" in result

    def test_empty_returns_empty(self):
        assert mask_pii("", use_presidio=False) == ""
        assert mask_pii(None, use_presidio=False) is None


class TestRedactForLogging:
    def test_redacts_sensitive_keys_recursively(self):
        data = {
            "file_url": "s3://private/receipt.pdf",
            "nested": {"email": "a@b.com", "status": "OPEN"},
            "items": [{"token": "abc"}, "plain"],
        }
        redacted = redact_for_logging(data)
        assert redacted["file_url"] == "[REDACTED]"
        assert redacted["nested"] == {"email": "[REDACTED]", "status": "OPEN"}
        assert redacted["items"] == [{"token": "[REDACTED]"}, "plain"]


class TestAuditLogger:
    """Tests for the JSON Lines audit trail."""

    def test_record_change_writes_masked_snapshot(self, temp_data_dir):
        audit = AuditLogger(log_dir=temp_data_dir, use_presidio=False)
        dispute = Dispute(
            dispute_code="DSP-20250314-000001",
            order_id="order_001",
            initiator_id="user_001",
            initiator_role=DisputeRole.BUYER,
            respondent_id="user_002",
            description="Call me at 555-123-4567",
        )

        audit.record_change("user_001", None, "DISPUTE_CREATE", "Dispute", dispute.id, None, dispute)
        audit.record_change(None, "SYSTEM", "DISPUTE_UPDATE", "Dispute", dispute.id,
                            DisputeStatus.NEGOTIATING, DisputeStatus.PENDING_ARBITRATION)

        log_files = list(temp_data_dir.glob("audit_*.jsonl"))
        assert len(log_files) == 1
        created, updated = [json.loads(line) for line in log_files[0].read_text().splitlines()]

        assert created["actor_hash"] == hash_user_id("user_001")
        assert "user_001" not in json.dumps(created["actor_hash"])
        assert created["after"]["description"] == "Call me at [REDACTED_PHONE]"
        assert created["before"] is None

        assert updated["actor_name"] == "SYSTEM"
        assert updated["actor_hash"] is None
        assert (updated["before"], updated["after"]) == ("NEGOTIATING", "PENDING_ARBITRATION")


class TestInputHygiene:
    """Tests for free-text sanitizing and user id validation."""

    def test_strips_control_characters(self):
        assert sanitize_text("bad\x00 input\x1b") == "bad input"

    def test_truncates_long_text(self):
        result = sanitize_text("a" * 20, max_length=10)
        assert result == "a" * 10 + "... [truncated]"

    def test_none_becomes_empty(self):
        assert sanitize_text(None) == ""

    @pytest.mark.parametrize("user_id", ["", "user 001", "user;drop", None])
    def test_rejects_malformed_user_ids(self, user_id):
        with pytest.raises(ValidationError):
            validate_user_id(user_id)

    def test_accepts_normal_ids(self):
        assert validate_user_id("arb_001") == "arb_001"
