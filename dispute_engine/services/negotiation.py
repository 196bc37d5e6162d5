"""Negotiation ledger: messages and refund proposals between the parties."""

from datetime import datetime
from decimal import Decimal, InvalidOperation

from dispute_engine.data.storage import IntegrityError, Transaction
from dispute_engine.errors import (
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from dispute_engine.gateways import AuditAction, NotificationKind
from dispute_engine.models import (
    Dispute,
    DisputeStatus,
    NegotiationEntry,
    NegotiationKind,
    ProposalStatus,
)
from dispute_engine.services.base import DisputeServiceBase


class NegotiationService(DisputeServiceBase):
    """Append-only ledger of negotiation activity on a dispute."""

    logger_name = "disputes.negotiation"

    def _open_negotiation(self, tx: Transaction, dispute: Dispute, now: datetime):
        """First activity on a submitted dispute starts the negotiation."""
        if dispute.status is DisputeStatus.SUBMITTED:
            previous = dispute.transition_to(DisputeStatus.NEGOTIATING, now)
            self.effects.audit_after(
                tx, None, AuditAction.DISPUTE_UPDATE, "Dispute", dispute.id,
                previous, dispute.status,
            )
        else:
            dispute.updated_at = now
        tx.save_dispute(dispute)

    def send_message(self, dispute_id: str, sender_id: str, content: str) -> str:
        """Append a text message from one of the parties.

        Returns:
            The new entry's id
        """
        content = self._clean(content)
        if not content:
            raise ValidationError("Message content must not be empty")
        self.logger.info(f"User {sender_id} messaging on dispute {dispute_id}")

        with self.storage.transaction() as tx:
            dispute = self._load_dispute(tx, dispute_id)
            role = self._require_participant(dispute, sender_id)
            self._require_negotiable(dispute)

            now = self.clock()
            entry = NegotiationEntry(
                dispute_id=dispute_id,
                sender_id=sender_id,
                sender_role=role,
                kind=NegotiationKind.TEXT,
                content=content,
                created_at=now,
            )
            tx.add_negotiation(entry)
            self._open_negotiation(tx, dispute, now)

            self.effects.notify_after(
                tx,
                dispute.counterpart_of(sender_id),
                NotificationKind.DISPUTE_MESSAGE,
                "New dispute message",
                f"The other party sent a message on dispute {dispute.dispute_code}",
                dispute.id,
            )

        return entry.id

    def propose_resolution(
        self,
        dispute_id: str,
        proposer_id: str,
        amount: Decimal | float | str,
        note: str | None = None,
    ) -> str:
        """Offer to settle the dispute for a refund of ``amount``.

        Raises:
            ValidationError: The amount is not a positive number
            InvalidOperationError: A proposal is already awaiting a response
        """
        try:
            amount = Decimal(str(amount))
        except InvalidOperation:
            raise ValidationError(f"Invalid refund amount: {amount!r}")
        if not amount.is_finite() or amount <= 0:
            raise ValidationError("Proposed refund amount must be greater than zero")
        self.logger.info(f"User {proposer_id} proposing {amount:.2f} on dispute {dispute_id}")

        with self.storage.transaction() as tx:
            dispute = self._load_dispute(tx, dispute_id)
            role = self._require_participant(dispute, proposer_id)
            self._require_negotiable(dispute)

            now = self.clock()
            entry = NegotiationEntry(
                dispute_id=dispute_id,
                sender_id=proposer_id,
                sender_role=role,
                kind=NegotiationKind.PROPOSAL,
                content=self._clean(note),
                proposed_refund_amount=amount,
                proposal_status=ProposalStatus.PENDING,
                created_at=now,
            )
            try:
                tx.add_negotiation(entry)
            except IntegrityError as e:
                self.logger.warning(f"Dispute {dispute_id} already has a pending proposal")
                raise InvalidOperationError(
                    "A proposal is already awaiting a response on this dispute"
                ) from e
            self._open_negotiation(tx, dispute, now)

            self.effects.notify_after(
                tx,
                dispute.counterpart_of(proposer_id),
                NotificationKind.DISPUTE_PROPOSAL,
                "New resolution proposal",
                f"The other party proposed a refund of {amount:.2f} on dispute {dispute.dispute_code}",
                dispute.id,
            )

        return entry.id

    def respond_to_proposal(
        self,
        proposal_id: str,
        responder_id: str,
        accept: bool,
        note: str | None = None,
    ) -> bool:
        """Accept or reject a pending proposal.

        Accepting settles the dispute; rejecting leaves it open.
        """
        self.logger.info(
            f"User {responder_id} {'accepting' if accept else 'rejecting'} proposal {proposal_id}"
        )

        with self.storage.transaction() as tx:
            proposal = tx.get_negotiation(proposal_id)
            if proposal is None or not proposal.is_proposal:
                raise NotFoundError(f"Proposal {proposal_id} not found")
            if not proposal.is_pending_proposal:
                raise InvalidOperationError(
                    f"Proposal {proposal_id} was already {proposal.proposal_status.value.lower()}"
                )
            if proposal.sender_id == responder_id:
                raise ForbiddenError("You cannot respond to your own proposal")

            dispute = self._load_dispute(tx, proposal.dispute_id)
            self._require_participant(dispute, responder_id)
            self._require_negotiable(dispute)

            now = self.clock()
            note = self._clean(note) or None
            if accept:
                proposal.accept(responder_id, note, now)
                previous = dispute.transition_to(DisputeStatus.COMPLETED, now)
                self.effects.audit_after(
                    tx, responder_id, AuditAction.DISPUTE_UPDATE, "Dispute", dispute.id,
                    previous, dispute.status,
                )
            else:
                proposal.reject(responder_id, note, now)
                dispute.updated_at = now
            tx.save_negotiation(proposal)
            tx.save_dispute(dispute)

            if accept:
                self.effects.notify_after(
                    tx,
                    [dispute.initiator_id, dispute.respondent_id],
                    NotificationKind.DISPUTE_RESOLVED,
                    "Dispute settled",
                    f"Dispute {dispute.dispute_code} was settled with a refund of "
                    f"{proposal.proposed_refund_amount:.2f}",
                    dispute.id,
                )
            else:
                self.effects.notify_after(
                    tx,
                    proposal.sender_id,
                    NotificationKind.DISPUTE_PROPOSAL,
                    "Proposal rejected",
                    f"Your proposal on dispute {dispute.dispute_code} was rejected",
                    dispute.id,
                )

        return True

    def _authorized_dispute(self, tx: Transaction, dispute_id: str, viewer_id: str | None) -> Dispute:
        dispute = self._load_dispute(tx, dispute_id)
        if viewer_id is not None and not (
            dispute.is_participant(viewer_id) or dispute.arbitrator_id == viewer_id
        ):
            raise ForbiddenError("You are not allowed to view this dispute")
        return dispute

    def get_history(self, dispute_id: str, viewer_id: str | None = None) -> list[NegotiationEntry]:
        """All entries of a dispute in the order they were written."""
        with self.storage.transaction() as tx:
            self._authorized_dispute(tx, dispute_id, viewer_id)
            return tx.list_negotiations(dispute_id)

    def get_pending_proposal(
        self, dispute_id: str, viewer_id: str | None = None
    ) -> NegotiationEntry | None:
        for entry in reversed(self.get_history(dispute_id, viewer_id)):
            if entry.is_pending_proposal:
                return entry
        return None

    def get_accepted_proposal(
        self, dispute_id: str, viewer_id: str | None = None
    ) -> NegotiationEntry | None:
        for entry in reversed(self.get_history(dispute_id, viewer_id)):
            if entry.proposal_status is ProposalStatus.ACCEPTED:
                return entry
        return None
