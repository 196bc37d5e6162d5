"""Collaborator interfaces consumed by the dispute engine, with default adapters."""

from enum import Enum
from typing import Any, Protocol

from dispute_engine.config import settings
from dispute_engine.data.storage import Storage
from dispute_engine.models import OrderInfo
from dispute_engine.utils.logging import get_logger


logger = get_logger("gateways", settings.log_level)


class NotificationKind(str, Enum):
    DISPUTE_SUBMITTED = "DISPUTE_SUBMITTED"
    DISPUTE_MESSAGE = "DISPUTE_MESSAGE"
    DISPUTE_PROPOSAL = "DISPUTE_PROPOSAL"
    DISPUTE_EVIDENCE = "DISPUTE_EVIDENCE"
    DISPUTE_ESCALATED = "DISPUTE_ESCALATED"
    DISPUTE_RESOLVED = "DISPUTE_RESOLVED"
    DISPUTE_CLOSED = "DISPUTE_CLOSED"
    DISPUTE_CANCELLED = "DISPUTE_CANCELLED"


class AuditAction(str, Enum):
    DISPUTE_CREATE = "DISPUTE_CREATE"
    DISPUTE_UPDATE = "DISPUTE_UPDATE"
    DISPUTE_CLOSE = "DISPUTE_CLOSE"
    DISPUTE_CANCEL = "DISPUTE_CANCEL"


class OrderLookup(Protocol):
    def get_order(self, order_id: str) -> OrderInfo | None:
        ...


class NotificationGateway(Protocol):
    def notify(
        self,
        user_id: str,
        kind: NotificationKind,
        title: str,
        body: str,
        related_entity_id: str,
        related_entity_type: str,
        deep_link: str,
    ) -> None:
        ...


class AuditLog(Protocol):
    def record_change(
        self,
        actor_id: str | None,
        actor_name: str | None,
        action_type: str,
        entity_type: str,
        entity_id: str,
        before: Any = None,
        after: Any = None,
    ) -> None:
        ...


class StorageOrderLookup:
    """Order lookup backed by the orders collection of the store."""

    def __init__(self, storage: Storage):
        self.storage = storage

    def get_order(self, order_id: str) -> OrderInfo | None:
        with self.storage.transaction() as tx:
            return tx.get_order(order_id)


class LoggingNotificationGateway:
    """Notification gateway that only writes to the application log."""

    def notify(
        self,
        user_id: str,
        kind: NotificationKind,
        title: str,
        body: str,
        related_entity_id: str,
        related_entity_type: str,
        deep_link: str,
    ) -> None:
        logger.info(
            f"Notify {user_id} [{kind.value}] {title}: {body} "
            f"({related_entity_type} {related_entity_id}, {deep_link})"
        )
