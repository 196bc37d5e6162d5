"""Dispute lifecycle controller.

Creates disputes and drives the status transitions that are not owned by the
negotiation ledger or the arbitration coordinator: escalation, closing,
cancelling and the deadline sweeps.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from dispute_engine.config import Settings
from dispute_engine.data.storage import DisputeFilter, IntegrityError, Storage
from dispute_engine.errors import (
    ConflictError,
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from dispute_engine.gateways import AuditAction, NotificationKind, OrderLookup
from dispute_engine.models import (
    Dispute,
    DisputeDetail,
    DisputeRole,
    DisputeStatus,
    DisputeType,
    EvidenceSummary,
    ProposalStatus,
)
from dispute_engine.services.base import DisputeServiceBase
from dispute_engine.services.effects import SideEffects
from dispute_engine.utils.security import validate_user_id


ARBITRATION_TIMEOUT_REASON = "arbitration deadline exceeded"


@dataclass
class SweepResult:
    """Outcome of one deadline sweep."""

    candidates: int = 0
    transitioned: int = 0
    skipped: int = 0
    failed: int = 0


class DisputeService(DisputeServiceBase):
    """Top-level state machine for disputes."""

    logger_name = "disputes.lifecycle"

    def __init__(
        self,
        storage: Storage,
        orders: OrderLookup,
        effects: SideEffects,
        settings: Settings,
        clock: Callable[[], datetime] = datetime.now,
    ):
        super().__init__(storage, effects, settings, clock)
        self.orders = orders

    def _generate_code(self, tx, now: datetime) -> str:
        date_part = now.strftime("%Y%m%d")
        sequence = tx.next_sequence(f"dispute_code:{date_part}")
        return f"DSP-{date_part}-{sequence % 1000000:06d}"

    def submit_dispute(
        self,
        order_id: str,
        initiator_id: str,
        dispute_type: DisputeType | str,
        description: str,
    ) -> str:
        """Open a dispute on an order on behalf of its buyer or seller.

        Returns:
            The new dispute's id

        Raises:
            NotFoundError: The order does not exist
            ForbiddenError: The initiator is neither buyer nor seller
            ConflictError: The order already has a dispute
        """
        validate_user_id(initiator_id, "initiator_id")
        try:
            dispute_type = DisputeType(dispute_type)
        except ValueError:
            raise ValidationError(f"Unknown dispute type: {dispute_type!r}")
        self.logger.info(f"User {initiator_id} submitting dispute on order {order_id}")

        with self.storage.transaction() as tx:
            order = self.orders.get_order(order_id)
            if order is None:
                raise NotFoundError(f"Order {order_id} not found")

            if not order.is_party(initiator_id):
                self.logger.warning(f"User {initiator_id} is not a party to order {order_id}")
                raise ForbiddenError("You are not a party to this order")

            if tx.get_dispute_by_order(order_id) is not None:
                self.logger.warning(f"Order {order_id} already has a dispute")
                raise ConflictError(f"Order {order.order_no} already has a dispute")

            is_buyer = initiator_id == order.buyer_id
            now = self.clock()
            dispute = Dispute(
                dispute_code=self._generate_code(tx, now),
                order_id=order_id,
                initiator_id=initiator_id,
                initiator_role=DisputeRole.BUYER if is_buyer else DisputeRole.SELLER,
                respondent_id=order.seller_id if is_buyer else order.buyer_id,
                dispute_type=dispute_type,
                description=self._clean(description),
                status=DisputeStatus.SUBMITTED,
                negotiation_deadline=now + timedelta(hours=self.settings.deadlines.negotiation_hours),
                created_at=now,
                updated_at=now,
            )
            try:
                tx.add_dispute(dispute)
            except IntegrityError as e:
                raise ConflictError(f"Order {order.order_no} already has a dispute") from e

            self.effects.audit_after(
                tx, initiator_id, AuditAction.DISPUTE_CREATE, "Dispute", dispute.id,
                None, dispute.model_copy(deep=True),
            )
            self.effects.notify_after(
                tx,
                dispute.respondent_id,
                NotificationKind.DISPUTE_SUBMITTED,
                "You have a new dispute",
                f"A dispute was opened on order {order.order_no}; please respond",
                dispute.id,
            )

        self.logger.info(f"Dispute {dispute.dispute_code} created ({dispute.id})")
        return dispute.id

    def escalate_to_arbitration(self, dispute_id: str, actor_id: str | None = None) -> bool:
        """Move a dispute out of negotiation into the arbitration queue.

        ``actor_id`` is None for system escalation; otherwise it must be a party.
        """
        self.logger.info(f"Escalating dispute {dispute_id} to arbitration")

        with self.storage.transaction() as tx:
            dispute = self._load_dispute(tx, dispute_id)
            if actor_id is not None:
                self._require_participant(dispute, actor_id)
            self._require_negotiable(dispute)

            now = self.clock()
            previous = self._escalate(dispute, now)
            tx.save_dispute(dispute)

            self.effects.audit_after(
                tx, actor_id, AuditAction.DISPUTE_UPDATE, "Dispute", dispute.id,
                previous, dispute.status,
            )
            self.effects.notify_after(
                tx,
                [dispute.initiator_id, dispute.respondent_id],
                NotificationKind.DISPUTE_ESCALATED,
                "Dispute escalated to arbitration",
                f"Dispute {dispute.dispute_code} is waiting for an arbitrator",
                dispute.id,
            )

        self.logger.info(
            f"Dispute {dispute_id} pending arbitration until {dispute.arbitration_deadline}"
        )
        return True

    def _escalate(self, dispute: Dispute, now: datetime) -> DisputeStatus:
        previous = dispute.transition_to(DisputeStatus.PENDING_ARBITRATION, now)
        dispute.arbitration_deadline = now + timedelta(
            days=self.settings.deadlines.escalation_arbitration_days
        )
        return previous

    def close_dispute(self, dispute_id: str, reason: str, actor_id: str | None = None) -> bool:
        """Administratively close a dispute.

        Closing an already closed dispute is a no-op; closing a completed or
        cancelled one is refused. ``actor_id`` is None for the sweeps; an
        actor who is the buyer or seller gets ``ForbiddenError``.
        """
        self.logger.info(f"Closing dispute {dispute_id}: {reason}")

        with self.storage.transaction() as tx:
            dispute = self._load_dispute(tx, dispute_id)
            self._refuse_parties(dispute, actor_id, "close the dispute")
            if dispute.status is DisputeStatus.CLOSED:
                self.logger.info(f"Dispute {dispute_id} already closed")
                return True

            now = self.clock()
            previous = dispute.transition_to(DisputeStatus.CLOSED, now)
            dispute.close_reason = self._clean(reason)
            tx.save_dispute(dispute)

            self.effects.audit_after(
                tx, actor_id, AuditAction.DISPUTE_CLOSE, "Dispute", dispute.id,
                previous, dispute.status,
            )
            self.effects.notify_after(
                tx,
                [dispute.initiator_id, dispute.respondent_id, dispute.arbitrator_id],
                NotificationKind.DISPUTE_CLOSED,
                "Dispute closed",
                f"Dispute {dispute.dispute_code} was closed: {dispute.close_reason}",
                dispute.id,
            )

        self.logger.info(f"Dispute {dispute_id} closed at {dispute.closed_at}")
        return True

    def cancel_dispute(self, dispute_id: str, requester_id: str, reason: str | None = None) -> bool:
        """Withdraw a dispute; only its initiator may, and only before escalation."""
        self.logger.info(f"User {requester_id} cancelling dispute {dispute_id}")

        with self.storage.transaction() as tx:
            dispute = self._load_dispute(tx, dispute_id)
            if dispute.initiator_id != requester_id:
                self.logger.warning(f"User {requester_id} cannot cancel dispute {dispute_id}")
                raise ForbiddenError("Only the initiator can cancel a dispute")
            if not dispute.can_cancel(requester_id):
                raise InvalidOperationError(
                    f"Dispute {dispute.dispute_code} is {dispute.status.value} and can no longer be cancelled"
                )

            now = self.clock()
            previous = dispute.transition_to(DisputeStatus.CANCELLED, now)
            if reason:
                dispute.close_reason = self._clean(reason)
            tx.save_dispute(dispute)

            self.effects.audit_after(
                tx, requester_id, AuditAction.DISPUTE_CANCEL, "Dispute", dispute.id,
                previous, dispute.status,
            )
            self.effects.notify_after(
                tx,
                dispute.respondent_id,
                NotificationKind.DISPUTE_CANCELLED,
                "Dispute withdrawn",
                f"Dispute {dispute.dispute_code} was withdrawn by the other party",
                dispute.id,
            )

        return True

    # Queries

    def _authorize_viewer(self, dispute: Dispute, viewer_id: str | None):
        if viewer_id is None:
            return
        if dispute.is_participant(viewer_id) or dispute.arbitrator_id == viewer_id:
            return
        raise ForbiddenError("You are not allowed to view this dispute")

    def get_dispute(self, dispute_id: str, viewer_id: str | None = None) -> Dispute:
        with self.storage.transaction() as tx:
            dispute = self._load_dispute(tx, dispute_id)
        self._authorize_viewer(dispute, viewer_id)
        return dispute

    def get_dispute_by_code(self, dispute_code: str, viewer_id: str | None = None) -> Dispute:
        with self.storage.transaction() as tx:
            dispute = tx.get_dispute_by_code(dispute_code)
        if dispute is None:
            raise NotFoundError(f"Dispute {dispute_code} not found")
        self._authorize_viewer(dispute, viewer_id)
        return dispute

    def get_dispute_detail(self, dispute_id: str, viewer_id: str | None = None) -> DisputeDetail:
        """Dispute with negotiation history, evidence and arbitration outcome."""
        self.logger.debug(f"Loading detail of dispute {dispute_id}")

        with self.storage.transaction() as tx:
            dispute = self._load_dispute(tx, dispute_id)
            self._authorize_viewer(dispute, viewer_id)
            history = tx.list_negotiations(dispute_id)
            evidence = tx.list_evidence(dispute_id)
            arbitration = tx.get_arbitration_by_dispute(dispute_id)

        pending = [e for e in history if e.is_pending_proposal]
        accepted = [e for e in history if e.proposal_status is ProposalStatus.ACCEPTED]
        return DisputeDetail(
            dispute=dispute,
            negotiation=history,
            pending_proposal=pending[-1] if pending else None,
            accepted_proposal=accepted[-1] if accepted else None,
            evidence=evidence,
            evidence_summary=EvidenceSummary.from_items(dispute_id, evidence),
            arbitration=arbitration,
        )

    def list_user_disputes(self, user_id: str, status: DisputeStatus | None = None) -> list[Dispute]:
        """Disputes the user is initiator or respondent of, newest first."""
        with self.storage.transaction() as tx:
            return tx.list_disputes(DisputeFilter(user_id=user_id, status=status))

    def list_arbitrator_disputes(
        self, arbitrator_id: str, status: DisputeStatus | None = None
    ) -> list[Dispute]:
        with self.storage.transaction() as tx:
            return tx.list_disputes(DisputeFilter(arbitrator_id=arbitrator_id, status=status))

    def list_disputes(self, status: DisputeStatus | None = None) -> list[Dispute]:
        with self.storage.transaction() as tx:
            return tx.list_disputes(DisputeFilter(status=status))

    # Deadline sweeps

    def sweep_negotiation_timeouts(self, now: datetime | None = None) -> SweepResult:
        """Escalate every negotiating dispute whose negotiation deadline passed."""
        now = now or self.clock()
        return self._sweep(
            DisputeFilter(status=DisputeStatus.NEGOTIATING, negotiation_deadline_before=now),
            self._expire_negotiation,
            now,
            "negotiation",
        )

    def sweep_arbitration_timeouts(self, now: datetime | None = None) -> SweepResult:
        """Close every arbitrating dispute whose arbitration deadline passed."""
        now = now or self.clock()
        return self._sweep(
            DisputeFilter(status=DisputeStatus.ARBITRATING, arbitration_deadline_before=now),
            self._expire_arbitration,
            now,
            "arbitration",
        )

    def mark_expired_negotiations(self, now: datetime | None = None) -> int:
        return self.sweep_negotiation_timeouts(now).transitioned

    def mark_expired_arbitrations(self, now: datetime | None = None) -> int:
        return self.sweep_arbitration_timeouts(now).transitioned

    def _sweep(
        self,
        filters: DisputeFilter,
        expire: Callable[[str, DisputeFilter, datetime], bool],
        now: datetime,
        label: str,
    ) -> SweepResult:
        with self.storage.transaction() as tx:
            candidate_ids = [d.id for d in tx.list_disputes(filters)]

        result = SweepResult(candidates=len(candidate_ids))
        if not candidate_ids:
            self.logger.debug(f"No expired {label} disputes")
            return result

        for dispute_id in candidate_ids:
            try:
                if expire(dispute_id, filters, now):
                    result.transitioned += 1
                else:
                    result.skipped += 1
            except Exception as e:
                result.failed += 1
                self.logger.error(f"Failed to expire {label} of dispute {dispute_id}: {e}")

        self.logger.info(
            f"Expired {label} sweep: {result.transitioned} transitioned, "
            f"{result.skipped} skipped, {result.failed} failed"
        )
        return result

    def _expire_negotiation(self, dispute_id: str, filters: DisputeFilter, now: datetime) -> bool:
        with self.storage.transaction() as tx:
            dispute = self._load_dispute(tx, dispute_id)
            # Re-check inside the unit of work; another request may have moved it
            if not filters.matches(dispute):
                return False

            previous = self._escalate(dispute, now)
            tx.save_dispute(dispute)

            self.effects.audit_after(
                tx, None, AuditAction.DISPUTE_UPDATE, "Dispute", dispute.id,
                previous, dispute.status,
            )
            self.effects.notify_after(
                tx,
                [dispute.initiator_id, dispute.respondent_id],
                NotificationKind.DISPUTE_ESCALATED,
                "Negotiation period expired",
                f"Negotiation on dispute {dispute.dispute_code} expired; it has moved to arbitration",
                dispute.id,
            )
        return True

    def _expire_arbitration(self, dispute_id: str, filters: DisputeFilter, now: datetime) -> bool:
        with self.storage.transaction() as tx:
            dispute = self._load_dispute(tx, dispute_id)
            if not filters.matches(dispute):
                return False

            previous = dispute.transition_to(DisputeStatus.CLOSED, now)
            dispute.close_reason = ARBITRATION_TIMEOUT_REASON
            tx.save_dispute(dispute)

            self.effects.audit_after(
                tx, None, AuditAction.DISPUTE_CLOSE, "Dispute", dispute.id,
                previous, dispute.status,
            )
            self.effects.notify_after(
                tx,
                [dispute.initiator_id, dispute.respondent_id],
                NotificationKind.DISPUTE_CLOSED,
                "Dispute closed automatically",
                f"The arbitration period of dispute {dispute.dispute_code} expired; it has been closed",
                dispute.id,
            )
            self.effects.notify_after(
                tx,
                [dispute.arbitrator_id],
                NotificationKind.DISPUTE_CLOSED,
                "Arbitration timed out",
                f"Dispute {dispute.dispute_code} was closed because its arbitration deadline passed",
                dispute.id,
            )
        return True
