"""Shared fixtures for the dispute engine tests."""

import shutil
import tempfile
import threading
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from dispute_engine.config import Settings
from dispute_engine.core import DisputeEngine
from dispute_engine.data.seed import seed_data
from dispute_engine.data.storage import Storage
from dispute_engine.models import DisputeType


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingNotifications:
    """Notification gateway that keeps what it was asked to send."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    def notify(self, user_id, kind, title, body, related_entity_id, related_entity_type, deep_link):
        if self.fail:
            raise ConnectionError("notification transport down")
        self.sent.append({
            "user_id": user_id,
            "kind": kind,
            "title": title,
            "body": body,
            "related_entity_id": related_entity_id,
            "related_entity_type": related_entity_type,
            "deep_link": deep_link,
        })

    def recipients(self, kind=None) -> list[str]:
        return [n["user_id"] for n in self.sent if kind is None or n["kind"] == kind]


class RecordingAudit:
    """Audit gateway that keeps its records in memory."""

    def __init__(self):
        self.records: list[dict] = []
        self.fail = False

    def record_change(self, actor_id, actor_name, action_type, entity_type, entity_id, before=None, after=None):
        if self.fail:
            raise OSError("audit store unavailable")
        self.records.append({
            "actor_id": actor_id,
            "actor_name": actor_name,
            "action": action_type,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "before": before,
            "after": after,
        })

    def actions(self) -> list[str]:
        return [r["action"] for r in self.records]


@pytest.fixture
def temp_data_dir():
    """Create a temporary data directory for tests."""
    temp_dir = Path(tempfile.mkdtemp())
    yield temp_dir
    shutil.rmtree(temp_dir)


@pytest.fixture
def test_settings(temp_data_dir):
    return Settings(
        data_dir=temp_data_dir,
        audit_log_dir=temp_data_dir / "logs",
        audit_use_presidio=False,
    )


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 3, 14, 9, 30))


@pytest.fixture
def notifications():
    return RecordingNotifications()


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def seeded_storage(temp_data_dir):
    """Create a storage instance with the sample orders."""
    return seed_data(temp_data_dir)


@pytest.fixture
def engine(seeded_storage, notifications, audit, test_settings, clock):
    return DisputeEngine(
        storage=seeded_storage,
        notifications=notifications,
        audit_log=audit,
        settings=test_settings,
        clock=clock,
    )


@pytest.fixture
def open_dispute(engine):
    """A dispute raised by user_001 (buyer) against user_002 (seller) on order_001."""
    return engine.disputes.submit_dispute(
        "order_001", "user_001", DisputeType.GOODS_MISMATCH, "Received a blue mug, ordered red"
    )


@pytest.fixture
def escalated_dispute(engine, open_dispute):
    engine.disputes.escalate_to_arbitration(open_dispute, actor_id="user_001")
    return open_dispute


@pytest.fixture
def arbitrating_dispute(engine, escalated_dispute):
    engine.arbitration.assign_arbitrator(escalated_dispute, "arb_001")
    return escalated_dispute


@pytest.fixture
def reload(seeded_storage):
    """Read a dispute back from disk through a fresh store."""
    def _reload(dispute_id: str):
        with Storage(seeded_storage.data_dir).transaction() as tx:
            return tx.get_dispute(dispute_id)
    return _reload


@pytest.fixture
def race():
    """Run callables on separate threads released together by a barrier.

    Returns each call's result, or the exception it raised, in call order.
    """
    def _race(*calls):
        barrier = threading.Barrier(len(calls))
        outcomes = [None] * len(calls)

        def run(index, call):
            barrier.wait()
            try:
                outcomes[index] = call()
            except Exception as e:
                outcomes[index] = e

        threads = [threading.Thread(target=run, args=(i, call)) for i, call in enumerate(calls)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)
        return outcomes
    return _race
