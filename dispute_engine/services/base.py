"""Shared plumbing for the dispute services."""

from datetime import datetime
from typing import Callable

from dispute_engine.config import Settings
from dispute_engine.data.storage import Storage, Transaction
from dispute_engine.errors import ForbiddenError, InvalidOperationError, NotFoundError
from dispute_engine.models import Dispute, DisputeRole
from dispute_engine.services.effects import SideEffects
from dispute_engine.utils.logging import get_logger
from dispute_engine.utils.security import sanitize_text


class DisputeServiceBase:
    """Storage, side effects, settings and clock shared by every service."""

    logger_name = "disputes"

    def __init__(
        self,
        storage: Storage,
        effects: SideEffects,
        settings: Settings,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.storage = storage
        self.effects = effects
        self.settings = settings
        self.clock = clock
        self.logger = get_logger(self.logger_name, settings.log_level)

    def _clean(self, text: str | None) -> str:
        return sanitize_text(text, self.settings.max_text_length)

    def _load_dispute(self, tx: Transaction, dispute_id: str) -> Dispute:
        dispute = tx.get_dispute(dispute_id)
        if dispute is None:
            raise NotFoundError(f"Dispute {dispute_id} not found")
        return dispute

    def _require_participant(self, dispute: Dispute, user_id: str) -> DisputeRole:
        """Return the buyer/seller role of ``user_id`` or refuse outsiders."""
        role = dispute.role_of(user_id)
        if role is None:
            self.logger.warning(f"User {user_id} is not a party to dispute {dispute.id}")
            raise ForbiddenError("You are not a party to this dispute")
        return role

    def _require_negotiable(self, dispute: Dispute):
        if not dispute.status.is_negotiable:
            raise InvalidOperationError(
                f"Dispute {dispute.dispute_code} is {dispute.status.value}; "
                "negotiation is closed"
            )

    def _refuse_parties(self, dispute: Dispute, actor_id: str | None, action: str):
        """Refuse ``action`` to the buyer and seller; other actors may proceed."""
        if dispute.role_of(actor_id) is not None:
            self.logger.warning(f"Party {actor_id} tried to {action} on dispute {dispute.id}")
            raise ForbiddenError(f"Parties to a dispute cannot {action}")
