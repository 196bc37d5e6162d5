"""JSON file storage with transactional units of work.

Each collection lives in its own JSON file under the data directory, keyed by
record id. All reads and writes happen inside ``Storage.transaction()``, which
serializes units of work across threads and processes, works on a private
copy of the collections it touches and writes them back only when the block
exits cleanly. Unique indexes are checked inside the same unit of work as the
insert.
"""

import copy
import json
import os
import sys
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Iterator

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

from dispute_engine.config import settings
from dispute_engine.models import (
    ArbitrationDecision,
    Dispute,
    DisputeRole,
    DisputeStatus,
    EvidenceItem,
    NegotiationEntry,
    OrderInfo,
)
from dispute_engine.utils.logging import get_logger


logger = get_logger("storage", settings.log_level)

COLLECTION_FILES = {
    "orders": "orders.json",
    "disputes": "disputes.json",
    "negotiations": "dispute_negotiations.json",
    "evidence": "dispute_evidence.json",
    "arbitrations": "dispute_arbitrations.json",
    "meta": "meta.json",
}

LOCK_FILE = ".storage.lock"
JOURNAL_FILE = "commit.journal"


class IntegrityError(Exception):
    """Raised when an insert would break a unique index."""

    def __init__(self, index: str, value: Any):
        super().__init__(f"Unique index {index} violated by {value!r}")
        self.index = index
        self.value = value


@dataclass
class DisputeFilter:
    """Filter criteria for dispute queries."""

    user_id: str | None = None
    arbitrator_id: str | None = None
    status: DisputeStatus | None = None
    negotiation_deadline_before: datetime | None = None
    arbitration_deadline_before: datetime | None = None

    def matches(self, dispute: Dispute) -> bool:
        if self.user_id is not None and self.user_id not in (
            dispute.initiator_id, dispute.respondent_id
        ):
            return False
        if self.arbitrator_id is not None and dispute.arbitrator_id != self.arbitrator_id:
            return False
        if self.status is not None and dispute.status is not self.status:
            return False
        if self.negotiation_deadline_before is not None and not (
            dispute.negotiation_deadline is not None
            and dispute.negotiation_deadline < self.negotiation_deadline_before
        ):
            return False
        if self.arbitration_deadline_before is not None and not (
            dispute.arbitration_deadline is not None
            and dispute.arbitration_deadline < self.arbitration_deadline_before
        ):
            return False
        return True


class Transaction:
    """A unit of work over the store's collections."""

    def __init__(self, storage: "Storage"):
        self._storage = storage
        self._data: dict[str, dict[str, Any]] = {}
        self._dirty: set[str] = set()
        self._after_commit: list[Callable[[], None]] = []

    def _collection(self, name: str) -> dict[str, Any]:
        if name not in self._data:
            self._data[name] = copy.deepcopy(self._storage._read(name))
        return self._data[name]

    def _put(self, name: str, key: str, record: dict):
        self._collection(name)[key] = record
        self._dirty.add(name)

    def after_commit(self, callback: Callable[[], None]):
        """Run ``callback`` once this unit of work has been committed."""
        self._after_commit.append(callback)

    # Orders

    def get_order(self, order_id: str) -> OrderInfo | None:
        record = self._collection("orders").get(order_id)
        return OrderInfo.model_validate(record) if record else None

    def save_order(self, order: OrderInfo):
        self._put("orders", order.order_id, order.model_dump(mode="json"))

    # Disputes

    def get_dispute(self, dispute_id: str) -> Dispute | None:
        record = self._collection("disputes").get(dispute_id)
        return Dispute.model_validate(record) if record else None

    def get_dispute_by_order(self, order_id: str) -> Dispute | None:
        for record in self._collection("disputes").values():
            if record["order_id"] == order_id:
                return Dispute.model_validate(record)
        return None

    def get_dispute_by_code(self, dispute_code: str) -> Dispute | None:
        for record in self._collection("disputes").values():
            if record["dispute_code"] == dispute_code:
                return Dispute.model_validate(record)
        return None

    def add_dispute(self, dispute: Dispute):
        for record in self._collection("disputes").values():
            if record["order_id"] == dispute.order_id:
                raise IntegrityError("disputes.order_id", dispute.order_id)
            if record["dispute_code"] == dispute.dispute_code:
                raise IntegrityError("disputes.dispute_code", dispute.dispute_code)
        self._put("disputes", dispute.id, dispute.model_dump(mode="json"))

    def save_dispute(self, dispute: Dispute):
        self._put("disputes", dispute.id, dispute.model_dump(mode="json"))

    def list_disputes(self, filters: DisputeFilter | None = None) -> list[Dispute]:
        """Disputes matching ``filters``, most recent first."""
        disputes = [
            Dispute.model_validate(record)
            for record in self._collection("disputes").values()
        ]
        if filters is not None:
            disputes = [d for d in disputes if filters.matches(d)]
        disputes.sort(key=lambda d: d.created_at, reverse=True)
        return disputes

    # Negotiation ledger

    def add_negotiation(self, entry: NegotiationEntry):
        if entry.is_pending_proposal:
            for record in self._collection("negotiations").values():
                if (
                    record["dispute_id"] == entry.dispute_id
                    and record.get("proposal_status") == "PENDING"
                ):
                    raise IntegrityError("dispute_negotiations.pending_proposal", entry.dispute_id)
        self._put("negotiations", entry.id, entry.model_dump(mode="json"))

    def get_negotiation(self, entry_id: str) -> NegotiationEntry | None:
        record = self._collection("negotiations").get(entry_id)
        return NegotiationEntry.model_validate(record) if record else None

    def save_negotiation(self, entry: NegotiationEntry):
        self._put("negotiations", entry.id, entry.model_dump(mode="json"))

    def list_negotiations(self, dispute_id: str) -> list[NegotiationEntry]:
        """Ledger of a dispute in creation order."""
        entries = [
            NegotiationEntry.model_validate(record)
            for record in self._collection("negotiations").values()
            if record["dispute_id"] == dispute_id
        ]
        entries.sort(key=lambda e: e.created_at)
        return entries

    # Evidence

    def add_evidence(self, item: EvidenceItem):
        self._put("evidence", item.id, item.model_dump(mode="json"))

    def get_evidence(self, evidence_id: str) -> EvidenceItem | None:
        record = self._collection("evidence").get(evidence_id)
        return EvidenceItem.model_validate(record) if record else None

    def save_evidence(self, item: EvidenceItem):
        self._put("evidence", item.id, item.model_dump(mode="json"))

    def delete_evidence(self, evidence_id: str):
        self._collection("evidence").pop(evidence_id, None)
        self._dirty.add("evidence")

    def list_evidence(
        self, dispute_id: str, role: DisputeRole | None = None
    ) -> list[EvidenceItem]:
        items = [
            EvidenceItem.model_validate(record)
            for record in self._collection("evidence").values()
            if record["dispute_id"] == dispute_id
        ]
        if role is not None:
            items = [item for item in items if item.uploader_role is role]
        items.sort(key=lambda item: item.created_at)
        return items

    # Arbitrations

    def add_arbitration(self, decision: ArbitrationDecision):
        for record in self._collection("arbitrations").values():
            if record["dispute_id"] == decision.dispute_id:
                raise IntegrityError("dispute_arbitrations.dispute_id", decision.dispute_id)
        self._put("arbitrations", decision.id, decision.model_dump(mode="json"))

    def get_arbitration(self, arbitration_id: str) -> ArbitrationDecision | None:
        record = self._collection("arbitrations").get(arbitration_id)
        return ArbitrationDecision.model_validate(record) if record else None

    def get_arbitration_by_dispute(self, dispute_id: str) -> ArbitrationDecision | None:
        for record in self._collection("arbitrations").values():
            if record["dispute_id"] == dispute_id:
                return ArbitrationDecision.model_validate(record)
        return None

    def save_arbitration(self, decision: ArbitrationDecision):
        self._put("arbitrations", decision.id, decision.model_dump(mode="json"))

    def list_arbitrations(
        self,
        arbitrator_id: str | None = None,
        executed: bool | None = None,
    ) -> list[ArbitrationDecision]:
        """Decisions matching the criteria, most recent first."""
        decisions = [
            ArbitrationDecision.model_validate(record)
            for record in self._collection("arbitrations").values()
        ]
        if arbitrator_id is not None:
            decisions = [d for d in decisions if d.arbitrator_id == arbitrator_id]
        if executed is not None:
            decisions = [d for d in decisions if d.executed is executed]
        decisions.sort(key=lambda d: d.arbitrated_at, reverse=True)
        return decisions

    # Sequences and leases

    def next_sequence(self, name: str) -> int:
        sequences = self._collection("meta").setdefault("sequences", {})
        value = sequences.get(name, 0) + 1
        sequences[name] = value
        self._dirty.add("meta")
        return value

    def acquire_lease(self, key: str, owner: str, ttl_seconds: int, now: datetime) -> bool:
        """Take ``key`` for ``owner`` unless someone else holds an unexpired lease."""
        leases = self._collection("meta").setdefault("leases", {})
        current = leases.get(key)
        if current and current["owner"] != owner:
            if datetime.fromisoformat(current["expires_at"]) > now:
                return False
        leases[key] = {
            "owner": owner,
            "expires_at": (now + timedelta(seconds=ttl_seconds)).isoformat(),
        }
        self._dirty.add("meta")
        return True

    def release_lease(self, key: str, owner: str):
        leases = self._collection("meta").setdefault("leases", {})
        current = leases.get(key)
        if current and current["owner"] == owner:
            del leases[key]
            self._dirty.add("meta")

    def _commit(self):
        self._storage._commit({name: self._data[name] for name in self._dirty})


class _FileLock:
    """Exclusive advisory lock held through a lock file.

    Uses ``flock`` on POSIX and ``msvcrt.locking`` on Windows. Two handles on
    the same file exclude each other even inside one process.
    """

    def __init__(self, path: Path):
        self.path = path
        self._file = None

    def __enter__(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, "a+b")
        if sys.platform == "win32":
            self._file.seek(0)
            msvcrt.locking(self._file.fileno(), msvcrt.LK_LOCK, 1)
        else:
            fcntl.flock(self._file.fileno(), fcntl.LOCK_EX)
        return self

    def __exit__(self, _exc_type, _exc_val, _exc_tb):
        try:
            if sys.platform == "win32":
                self._file.seek(0)
                msvcrt.locking(self._file.fileno(), msvcrt.LK_UNLCK, 1)
            else:
                fcntl.flock(self._file.fileno(), fcntl.LOCK_UN)
        finally:
            self._file.close()
            self._file = None


def _discard(path: str | Path):
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


class Storage:
    """File-backed store for orders, disputes and their children.

    Units of work are serialized twice: a thread lock inside this instance
    and a lock file in the data directory, shared with every other process
    (or ``Storage`` instance) pointed at the same directory.
    """

    def __init__(self, data_dir: Path | None = None):
        self.data_dir = Path(data_dir) if data_dir is not None else settings.data_dir
        self._lock = threading.RLock()
        self._local = threading.local()

    def _path(self, name: str) -> Path:
        return self.data_dir / COLLECTION_FILES[name]

    @property
    def _journal_path(self) -> Path:
        return self.data_dir / JOURNAL_FILE

    def _read(self, name: str) -> dict[str, Any]:
        path = self._path(name)
        if not path.exists():
            return {}
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def _dump(self, data: Any, prefix: str) -> Path:
        """Write ``data`` to a fresh temp file in the data directory."""
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=prefix, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, default=str)
                f.flush()
                os.fsync(f.fileno())
        except BaseException:
            _discard(tmp_path)
            raise
        return Path(tmp_path)

    def _stage(self, name: str, data: dict[str, Any]) -> Path:
        return self._dump(data, f".{COLLECTION_FILES[name]}.")

    def _write_journal(self, staged: dict[str, Path]):
        tmp_path = self._dump({name: path.name for name, path in staged.items()}, ".journal.")
        try:
            os.replace(tmp_path, self._journal_path)
        except BaseException:
            _discard(tmp_path)
            raise

    def _commit(self, changes: dict[str, dict[str, Any]]):
        """Persist ``changes`` all-or-nothing.

        Every collection is staged to a temp file first. The journal naming
        the staged files is the commit point: once it is on disk the renames
        are completed by ``_recover``, now or by the next unit of work if this
        process dies half way.
        """
        if not changes:
            return
        self.data_dir.mkdir(parents=True, exist_ok=True)

        staged: dict[str, Path] = {}
        try:
            for name, data in changes.items():
                staged[name] = self._stage(name, data)
            self._write_journal(staged)
        except BaseException:
            for path in staged.values():
                _discard(path)
            raise

        self._recover()

    def _recover(self):
        """Apply the renames of a journaled commit, if one is on disk."""
        journal = self._journal_path
        if not journal.exists():
            return
        with open(journal, encoding="utf-8") as f:
            staged = json.load(f)

        for name, file_name in staged.items():
            tmp_path = self.data_dir / file_name
            if tmp_path.exists():
                os.replace(tmp_path, self._path(name))
        journal.unlink()
        logger.debug(f"Applied journaled commit of {sorted(staged)}")

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        with self._lock, _FileLock(self.data_dir / LOCK_FILE):
            yield

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Open a unit of work.

        Collections are read lazily, so every read happens under the locks.
        A transaction opened while another is active on the same thread joins
        the outer one. Callbacks registered with ``after_commit`` run once the
        outermost transaction has been written, outside the locks.
        """
        active = getattr(self._local, "active", None)
        if active is not None:
            yield active
            return

        with self._exclusive():
            self._recover()
            tx = Transaction(self)
            self._local.active = tx
            try:
                yield tx
                tx._commit()
            except BaseException:
                logger.debug("Rolling back unit of work")
                raise
            finally:
                self._local.active = None

        for callback in tx._after_commit:
            callback()

    def clear(self, names: list[str] | None = None):
        """Delete collection files (all of them by default)."""
        with self._exclusive():
            self._recover()
            for name in names or list(COLLECTION_FILES):
                path = self._path(name)
                if path.exists():
                    path.unlink()
