"""Evidence store: uploads by the parties and their validity assessment."""

from dispute_engine.errors import (
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from dispute_engine.gateways import AuditAction, NotificationKind
from dispute_engine.models import (
    DisputeRole,
    EvidenceItem,
    EvidenceSummary,
    EvidenceType,
    EvidenceValidity,
)
from dispute_engine.services.base import DisputeServiceBase


class EvidenceService(DisputeServiceBase):
    logger_name = "disputes.evidence"

    def upload_evidence(
        self,
        dispute_id: str,
        uploader_id: str,
        evidence_type: EvidenceType | str,
        file_url: str,
        description: str | None = None,
        file_name: str | None = None,
        file_size: int | None = None,
    ) -> str:
        """Attach a piece of evidence to a dispute for one of its parties.

        The file itself lives in an external store; only its reference is kept.

        Returns:
            The new evidence id
        """
        try:
            evidence_type = EvidenceType(evidence_type)
        except ValueError:
            raise ValidationError(f"Unknown evidence type: {evidence_type!r}")
        if not file_url or not file_url.strip():
            raise ValidationError("Evidence needs a file reference")
        if file_size is not None and file_size < 0:
            raise ValidationError("File size cannot be negative")
        self.logger.info(f"User {uploader_id} uploading {evidence_type.value} to dispute {dispute_id}")

        with self.storage.transaction() as tx:
            dispute = self._load_dispute(tx, dispute_id)
            role = self._require_participant(dispute, uploader_id)
            if dispute.status.is_terminal:
                raise InvalidOperationError(
                    f"Dispute {dispute.dispute_code} is {dispute.status.value}; "
                    "no more evidence is accepted"
                )

            item = EvidenceItem(
                dispute_id=dispute_id,
                uploader_id=uploader_id,
                uploader_role=role,
                evidence_type=evidence_type,
                file_url=file_url.strip(),
                file_name=file_name,
                file_size=file_size,
                description=self._clean(description),
                created_at=self.clock(),
            )
            tx.add_evidence(item)

            self.effects.audit_after(
                tx, uploader_id, AuditAction.DISPUTE_UPDATE, "DisputeEvidence", item.id,
                None, item.model_copy(),
            )
            self.effects.notify_after(
                tx,
                dispute.counterpart_of(uploader_id),
                NotificationKind.DISPUTE_EVIDENCE,
                "New evidence uploaded",
                f"The other party uploaded evidence to dispute {dispute.dispute_code}",
                dispute.id,
            )

        return item.id

    def evaluate_evidence(
        self,
        evidence_id: str,
        validity: EvidenceValidity | str,
        reason: str | None,
        evaluator_id: str,
    ) -> bool:
        """Record the validity of an evidence item.

        Only the arbitrator assigned to the dispute may evaluate, and validity
        is written once.
        """
        try:
            validity = EvidenceValidity(validity)
        except ValueError:
            raise ValidationError(f"Unknown validity: {validity!r}")
        self.logger.info(f"User {evaluator_id} evaluating evidence {evidence_id} as {validity.value}")

        with self.storage.transaction() as tx:
            item = tx.get_evidence(evidence_id)
            if item is None:
                raise NotFoundError(f"Evidence {evidence_id} not found")
            if item.is_evaluated:
                raise InvalidOperationError(f"Evidence {evidence_id} has already been evaluated")

            dispute = self._load_dispute(tx, item.dispute_id)
            if dispute.arbitrator_id is None or evaluator_id != dispute.arbitrator_id:
                self.logger.warning(f"User {evaluator_id} tried to evaluate evidence {evidence_id}")
                raise ForbiddenError("Only the dispute's assigned arbitrator can evaluate its evidence")

            before = item.model_copy()
            item.validity = validity
            item.validity_reason = self._clean(reason) or None
            item.evaluated_by = evaluator_id
            item.evaluated_at = self.clock()
            tx.save_evidence(item)

            self.effects.audit_after(
                tx, evaluator_id, AuditAction.DISPUTE_UPDATE, "DisputeEvidence", item.id,
                before, item.model_copy(),
            )

        return True

    def delete_evidence(self, evidence_id: str, requester_id: str) -> bool:
        """Withdraw an unevaluated item; only its uploader may."""
        self.logger.info(f"User {requester_id} deleting evidence {evidence_id}")

        with self.storage.transaction() as tx:
            item = tx.get_evidence(evidence_id)
            if item is None:
                raise NotFoundError(f"Evidence {evidence_id} not found")
            if item.uploader_id != requester_id:
                raise ForbiddenError("Only the uploader can delete this evidence")
            if item.is_evaluated:
                raise InvalidOperationError("Evaluated evidence cannot be deleted")

            tx.delete_evidence(evidence_id)
            self.effects.audit_after(
                tx, requester_id, AuditAction.DISPUTE_UPDATE, "DisputeEvidence", item.id,
                item, None,
            )

        return True

    def list_evidence(
        self,
        dispute_id: str,
        role: DisputeRole | None = None,
        viewer_id: str | None = None,
    ) -> list[EvidenceItem]:
        with self.storage.transaction() as tx:
            dispute = self._load_dispute(tx, dispute_id)
            if viewer_id is not None and not (
                dispute.is_participant(viewer_id) or dispute.arbitrator_id == viewer_id
            ):
                raise ForbiddenError("You are not allowed to view this dispute")
            return tx.list_evidence(dispute_id, role)

    def list_unevaluated(self, dispute_id: str) -> list[EvidenceItem]:
        return [item for item in self.list_evidence(dispute_id) if not item.is_evaluated]

    def get_summary(self, dispute_id: str) -> EvidenceSummary:
        return EvidenceSummary.from_items(dispute_id, self.list_evidence(dispute_id))
