"""Utilities module - Logging, PII masking, resilience, input hygiene, session."""

from .pii import mask_pii, hash_user_id, redact_for_logging
from .logging import get_logger, AuditLogger
from .resilience import with_retry, CircuitBreaker, CircuitBreakerOpen, RetryError
from .security import sanitize_text, validate_user_id
from .session import get_current_user_id, set_current_user_id, reset_current_user_id, acting_as

__all__ = [
    "mask_pii",
    "hash_user_id",
    "redact_for_logging",
    "get_logger",
    "AuditLogger",
    "with_retry",
    "CircuitBreaker",
    "CircuitBreakerOpen",
    "RetryError",
    "sanitize_text",
    "validate_user_id",
    "get_current_user_id",
    "set_current_user_id",
    "reset_current_user_id",
    "acting_as",
]
