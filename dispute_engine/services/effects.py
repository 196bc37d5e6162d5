"""Best-effort side effects (notifications and audit) run after commit."""

import functools
from typing import Any

from dispute_engine.config import Settings
from dispute_engine.data.storage import Transaction
from dispute_engine.gateways import AuditAction, AuditLog, NotificationGateway, NotificationKind
from dispute_engine.utils.logging import get_logger
from dispute_engine.utils.resilience import CircuitBreaker, with_retry


class SideEffects:
    """Dispatches notifications and audit records without ever failing the caller."""

    def __init__(
        self,
        notifications: NotificationGateway,
        audit_log: AuditLog,
        settings: Settings,
    ):
        self.notifications = notifications
        self.audit_log = audit_log
        self.settings = settings
        self.logger = get_logger("effects", settings.log_level)
        config = settings.notifications
        self.breaker = CircuitBreaker(
            name="notifications",
            failure_threshold=config.circuit_breaker_threshold,
            recovery_timeout=config.circuit_breaker_recovery_seconds,
        )
        self._deliver = with_retry(
            max_attempts=config.max_attempts,
            backoff_base=config.retry_backoff_base,
        )(self._send)

    def deep_link(self, dispute_id: str) -> str:
        return f"{self.settings.deep_link_prefix}/{dispute_id}"

    def _send(self, user_id: str, kind: NotificationKind, title: str, body: str, dispute_id: str):
        self.breaker.call(
            self.notifications.notify,
            user_id,
            kind,
            title,
            body,
            dispute_id,
            "Dispute",
            self.deep_link(dispute_id),
        )

    def notify(self, user_id: str, kind: NotificationKind, title: str, body: str, dispute_id: str):
        try:
            self._deliver(user_id, kind, title, body, dispute_id)
        except Exception as e:
            self.logger.error(
                f"Notification {kind.value} to {user_id} for dispute {dispute_id} failed: {e}"
            )

    def audit(
        self,
        actor_id: str | None,
        action: AuditAction,
        entity_type: str,
        entity_id: str,
        before: Any = None,
        after: Any = None,
    ):
        try:
            self.audit_log.record_change(
                actor_id,
                None if actor_id else "SYSTEM",
                action.value,
                entity_type,
                entity_id,
                before,
                after,
            )
        except Exception as e:
            self.logger.error(f"Audit {action.value} on {entity_type} {entity_id} failed: {e}")

    def notify_after(
        self,
        tx: Transaction,
        user_ids: list[str | None] | str,
        kind: NotificationKind,
        title: str,
        body: str,
        dispute_id: str,
    ):
        """Queue a notification to each user once ``tx`` commits."""
        if isinstance(user_ids, str):
            user_ids = [user_ids]
        for user_id in user_ids:
            if user_id:
                tx.after_commit(functools.partial(self.notify, user_id, kind, title, body, dispute_id))

    def audit_after(
        self,
        tx: Transaction,
        actor_id: str | None,
        action: AuditAction,
        entity_type: str,
        entity_id: str,
        before: Any = None,
        after: Any = None,
    ):
        """Queue an audit record once ``tx`` commits."""
        tx.after_commit(
            functools.partial(self.audit, actor_id, action, entity_type, entity_id, before, after)
        )
