"""Tests for retry, circuit breaking and the acting-user context."""

import pytest

from dispute_engine.utils.resilience import (
    BreakerState,
    CircuitBreaker,
    CircuitBreakerOpen,
    RetryError,
    with_retry,
)
from dispute_engine.utils.session import (
    acting_as,
    get_current_user_id,
    reset_current_user_id,
    set_current_user_id,
)


class TestWithRetry:
    """Tests for the with_retry decorator."""

    def test_returns_first_success(self):
        waits = []
        calls = []

        @with_retry(max_attempts=3, sleep=waits.append)
        def flaky():
            calls.append(1)
            if len(calls) < 2:
                raise ConnectionError("down")
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 2
        assert waits == [1.0]

    def test_raises_retry_error_when_exhausted(self):
        waits = []

        @with_retry(max_attempts=3, backoff_base=2.0, sleep=waits.append)
        def always_down():
            raise ConnectionError("down")

        with pytest.raises(RetryError) as exc_info:
            always_down()
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert waits == [1.0, 2.0]

    def test_unlisted_exception_is_not_retried(self):
        calls = []

        @with_retry(max_attempts=3, exceptions=(ConnectionError,), sleep=lambda _: None)
        def broken():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            broken()
        assert len(calls) == 1

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            with_retry(max_attempts=0)


class FakeMonotonic:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _fail():
    raise ConnectionError("down")


class TestCircuitBreaker:
    """Tests for CircuitBreaker state changes."""

    @pytest.fixture
    def clock(self):
        return FakeMonotonic()

    @pytest.fixture
    def breaker(self, clock):
        return CircuitBreaker("notify", failure_threshold=2, recovery_timeout=30, clock=clock)

    def test_opens_after_threshold(self, breaker):
        for _ in range(2):
            with pytest.raises(ConnectionError):
                breaker.call(_fail)

        assert breaker.state is BreakerState.OPEN
        with pytest.raises(CircuitBreakerOpen):
            breaker.call(lambda: "ok")

    def test_success_resets_failure_count(self, breaker):
        with pytest.raises(ConnectionError):
            breaker.call(_fail)
        assert breaker.call(lambda: "ok") == "ok"
        with pytest.raises(ConnectionError):
            breaker.call(_fail)

        assert breaker.state is BreakerState.CLOSED

    def test_half_open_probe_closes_breaker(self, breaker, clock):
        for _ in range(2):
            with pytest.raises(ConnectionError):
                breaker.call(_fail)

        clock.now += 30
        assert breaker.state is BreakerState.HALF_OPEN
        assert breaker.call(lambda: "ok") == "ok"
        assert breaker.state is BreakerState.CLOSED

    def test_failed_probe_reopens(self, breaker, clock):
        for _ in range(2):
            with pytest.raises(ConnectionError):
                breaker.call(_fail)

        clock.now += 30
        with pytest.raises(ConnectionError):
            breaker.call(_fail)
        assert breaker.state is BreakerState.OPEN

    def test_reset(self, breaker):
        for _ in range(2):
            with pytest.raises(ConnectionError):
                breaker.call(_fail)

        breaker.reset()
        assert breaker.state is BreakerState.CLOSED


class TestActingUser:
    """Tests for the acting-user context variable."""

    def test_set_and_reset(self):
        token = set_current_user_id("user_001")
        try:
            assert get_current_user_id() == "user_001"
        finally:
            reset_current_user_id(token)

    def test_acting_as_restores_previous_user(self):
        with acting_as("user_001"):
            with acting_as("arb_001") as user_id:
                assert user_id == "arb_001"
                assert get_current_user_id() == "arb_001"
            assert get_current_user_id() == "user_001"
