"""Structured audit logging with PII redaction."""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from dispute_engine.utils.pii import mask_pii, hash_user_id, redact_for_logging


# Free-text fields masked before an entity snapshot is written
TEXT_FIELDS = {
    "description", "content", "response_note", "close_reason", "reason",
    "validity_reason", "buyer_evidence_analysis", "seller_evidence_analysis",
    "execution_note",
}


def get_logger(name: str, level: str = "INFO") -> logging.Logger:
    """Get a configured logger instance."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(getattr(logging, level.upper()))
    return logger


class AuditLogger:
    """Audit log of committed dispute mutations, written as JSON Lines."""

    def __init__(self, log_dir: Path | None = None, use_presidio: bool = True):
        self.log_dir = log_dir or Path("logs")
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.use_presidio = use_presidio
        self._logger = get_logger("audit")

    def _get_log_file(self) -> Path:
        """Get the current audit log file path."""
        date_str = datetime.now().strftime("%Y-%m-%d")
        return self.log_dir / f"audit_{date_str}.jsonl"

    def _write_entry(self, entry: dict):
        """Write an audit entry to the log file."""
        entry["timestamp"] = datetime.now().isoformat()

        with open(self._get_log_file(), "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, default=str) + "\n")

    def _snapshot(self, value: Any) -> Any:
        """Turn a before/after value into redacted, JSON-friendly data."""
        if value is None:
            return None
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        if isinstance(value, dict):
            redacted = redact_for_logging(value)
            for key in TEXT_FIELDS & redacted.keys():
                if isinstance(redacted[key], str):
                    redacted[key] = mask_pii(redacted[key], use_presidio=self.use_presidio)
            return redacted
        if hasattr(value, "value"):
            return value.value
        return value

    def record_change(
        self,
        actor_id: str | None,
        actor_name: str | None,
        action_type: str,
        entity_type: str,
        entity_id: str,
        before: Any = None,
        after: Any = None,
    ):
        """Record a committed change to a dispute entity."""
        entry = {
            "event": "entity_change",
            "actor_hash": hash_user_id(actor_id) if actor_id else None,
            "actor_name": actor_name or ("SYSTEM" if actor_id is None else None),
            "action": action_type,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "before": self._snapshot(before),
            "after": self._snapshot(after),
        }
        self._write_entry(entry)
        self._logger.debug(f"Audit {action_type} on {entity_type} {entity_id}")
