"""Arbitration coordinator: assignment, the binding decision and its execution."""

from datetime import timedelta

from dispute_engine.data.storage import IntegrityError
from dispute_engine.errors import ForbiddenError, InvalidOperationError, NotFoundError
from dispute_engine.gateways import AuditAction, NotificationKind
from dispute_engine.models import (
    ArbitrationDecision,
    ArbitrationRequest,
    DisputeStatus,
)
from dispute_engine.services.base import DisputeServiceBase
from dispute_engine.utils.security import validate_user_id


class ArbitrationService(DisputeServiceBase):
    """Hands escalated disputes to arbitrators and records their decisions."""

    logger_name = "disputes.arbitration"

    def assign_arbitrator(self, dispute_id: str, arbitrator_id: str) -> bool:
        """Give an escalated dispute to an arbitrator.

        The arbitrator gets a fresh decision window from the moment of assignment.
        """
        validate_user_id(arbitrator_id, "arbitrator_id")
        self.logger.info(f"Assigning arbitrator {arbitrator_id} to dispute {dispute_id}")

        with self.storage.transaction() as tx:
            dispute = self._load_dispute(tx, dispute_id)
            if dispute.arbitrator_id is not None:
                raise InvalidOperationError(
                    f"Dispute {dispute.dispute_code} already has an arbitrator"
                )
            if dispute.status is not DisputeStatus.PENDING_ARBITRATION:
                raise InvalidOperationError(
                    f"Dispute {dispute.dispute_code} is {dispute.status.value}, "
                    "not waiting for arbitration"
                )
            if dispute.is_participant(arbitrator_id):
                self.logger.warning(f"Party {arbitrator_id} cannot arbitrate dispute {dispute_id}")
                raise ForbiddenError("A party cannot arbitrate its own dispute")

            now = self.clock()
            previous = dispute.transition_to(DisputeStatus.ARBITRATING, now)
            dispute.arbitrator_id = arbitrator_id
            dispute.arbitration_deadline = now + timedelta(
                days=self.settings.deadlines.assignment_arbitration_days
            )
            tx.save_dispute(dispute)

            self.effects.audit_after(
                tx, arbitrator_id, AuditAction.DISPUTE_UPDATE, "Dispute", dispute.id,
                previous, dispute.status,
            )
            self.effects.notify_after(
                tx,
                [dispute.initiator_id, dispute.respondent_id],
                NotificationKind.DISPUTE_ESCALATED,
                "Arbitrator assigned",
                f"An arbitrator is now reviewing dispute {dispute.dispute_code}",
                dispute.id,
            )

        return True

    def submit_arbitration(self, request: ArbitrationRequest, arbitrator_id: str) -> str:
        """Record the binding decision on a dispute and complete it.

        Returns:
            The decision id

        Raises:
            ForbiddenError: The caller is not the assigned arbitrator
            InvalidOperationError: The dispute is not being arbitrated or was decided
            ValidationError: The refund amount does not match the result
        """
        self.logger.info(
            f"Arbitrator {arbitrator_id} submitting {request.result.value} on dispute {request.dispute_id}"
        )

        with self.storage.transaction() as tx:
            dispute = self._load_dispute(tx, request.dispute_id)
            if dispute.arbitrator_id != arbitrator_id:
                self.logger.warning(
                    f"User {arbitrator_id} is not the arbitrator of dispute {dispute.id}"
                )
                raise ForbiddenError("You are not the arbitrator of this dispute")
            if tx.get_arbitration_by_dispute(dispute.id) is not None:
                raise InvalidOperationError(f"Dispute {dispute.dispute_code} was already decided")
            if dispute.status is not DisputeStatus.ARBITRATING:
                raise InvalidOperationError(
                    f"Dispute {dispute.dispute_code} is {dispute.status.value}, not under arbitration"
                )
            request.validate_refund()

            now = self.clock()
            decision = ArbitrationDecision(
                dispute_id=dispute.id,
                arbitrator_id=arbitrator_id,
                result=request.result,
                refund_amount=request.refund_amount,
                reason=self._clean(request.reason),
                buyer_evidence_analysis=self._clean(request.buyer_evidence_analysis) or None,
                seller_evidence_analysis=self._clean(request.seller_evidence_analysis) or None,
                arbitrated_at=now,
            )
            try:
                tx.add_arbitration(decision)
            except IntegrityError as e:
                raise InvalidOperationError(
                    f"Dispute {dispute.dispute_code} was already decided"
                ) from e

            previous = dispute.transition_to(DisputeStatus.COMPLETED, now)
            tx.save_dispute(dispute)

            self.effects.audit_after(
                tx, arbitrator_id, AuditAction.DISPUTE_UPDATE, "Dispute", dispute.id,
                previous, dispute.status,
            )
            self.effects.notify_after(
                tx,
                [dispute.initiator_id, dispute.respondent_id],
                NotificationKind.DISPUTE_RESOLVED,
                "Arbitration decided",
                f"Dispute {dispute.dispute_code}: {decision.summary()}",
                dispute.id,
            )

        self.logger.info(f"Dispute {request.dispute_id} decided: {decision.summary()}")
        return decision.id

    def mark_executed(
        self, arbitration_id: str, note: str | None = None, actor_id: str | None = None
    ) -> bool:
        """Record that the decision has been carried out. No money moves here.

        The parties to the dispute may not mark their own decision executed.
        """
        self.logger.info(f"Marking arbitration {arbitration_id} executed")

        with self.storage.transaction() as tx:
            decision = tx.get_arbitration(arbitration_id)
            if decision is None:
                raise NotFoundError(f"Arbitration {arbitration_id} not found")
            self._refuse_parties(
                self._load_dispute(tx, decision.dispute_id), actor_id, "mark the decision executed"
            )
            if decision.executed:
                raise InvalidOperationError(f"Arbitration {arbitration_id} was already executed")

            decision.mark_executed(self._clean(note) or None, self.clock())
            tx.save_arbitration(decision)

            self.effects.audit_after(
                tx, actor_id, AuditAction.DISPUTE_UPDATE, "DisputeArbitration", decision.id,
                False, True,
            )

        return True

    def get_arbitration(self, dispute_id: str) -> ArbitrationDecision | None:
        with self.storage.transaction() as tx:
            self._load_dispute(tx, dispute_id)
            return tx.get_arbitration_by_dispute(dispute_id)

    def list_arbitrator_cases(self, arbitrator_id: str) -> list[ArbitrationDecision]:
        with self.storage.transaction() as tx:
            return tx.list_arbitrations(arbitrator_id=arbitrator_id)

    def list_pending_executions(self) -> list[ArbitrationDecision]:
        """Decisions that have not been carried out yet, newest first."""
        with self.storage.transaction() as tx:
            return tx.list_arbitrations(executed=False)
