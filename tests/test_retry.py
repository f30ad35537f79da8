"""Tests for edufam.lib.retry module."""

from __future__ import annotations

import pytest

from edufam.lib.retry import CircuitBreaker, CircuitOpenError, retry


class FakeClock(object):
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestRetry(object):
    """Tests for the retry decorator."""

    def test_succeeds_after_failures(self) -> None:
        waits: list[float] = []
        calls: list[int] = []

        @retry(3, delay=0.5, exceptions=(ConnectionError,), sleep=waits.append)
        def flaky() -> str:
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("reset by peer")
            return "ok"

        assert flaky() == "ok"
        assert waits == [0.5, 1.0]

    def test_reraises_last_failure(self) -> None:
        @retry(2, exceptions=(ConnectionError,), sleep=lambda _: None)
        def down() -> None:
            raise ConnectionError("refused")

        with pytest.raises(ConnectionError, match="refused"):
            down()

    def test_other_exceptions_are_not_retried(self) -> None:
        calls: list[int] = []

        @retry(5, exceptions=(ConnectionError,), sleep=lambda _: None)
        def broken() -> None:
            calls.append(1)
            raise KeyError("bug")

        with pytest.raises(KeyError):
            broken()
        assert len(calls) == 1

    def test_attempts_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            retry(0)


class TestCircuitBreaker(object):
    """Tests for CircuitBreaker."""

    def test_opens_after_threshold(self) -> None:
        clock = FakeClock()
        breaker = CircuitBreaker("db", threshold=2, reset_after=10, clock=clock)

        def fail() -> None:
            raise ConnectionError()

        for _ in range(2):
            with pytest.raises(ConnectionError):
                breaker.call(fail)

        assert breaker.is_open
        with pytest.raises(CircuitOpenError) as exc:
            breaker.call(lambda: "never")
        assert exc.value.retry_after == 10

    def test_trial_call_after_reset_period(self) -> None:
        clock = FakeClock()
        breaker = CircuitBreaker("db", threshold=1, reset_after=10, clock=clock)

        with pytest.raises(ConnectionError):
            breaker.call(_raise_connection_error)
        clock.now = 10.5

        assert not breaker.is_open
        assert breaker.call(lambda: 42) == 42
        assert breaker.failures == 0
        assert breaker.opened_at is None

    def test_failed_trial_reopens(self) -> None:
        clock = FakeClock()
        breaker = CircuitBreaker("db", threshold=1, reset_after=10, clock=clock)

        with pytest.raises(ConnectionError):
            breaker.call(_raise_connection_error)
        clock.now = 11
        with pytest.raises(ConnectionError):
            breaker.call(_raise_connection_error)

        assert breaker.is_open

    def test_other_exceptions_do_not_count(self) -> None:
        breaker = CircuitBreaker("db", threshold=1, exceptions=(ConnectionError,))

        with pytest.raises(ValueError):
            breaker.call(_raise_value_error)

        assert not breaker.is_open
        assert breaker.failures == 0

    def test_record_failure(self) -> None:
        clock = FakeClock()
        breaker = CircuitBreaker("db", threshold=2, reset_after=10, clock=clock)

        breaker.record_failure()
        assert not breaker.is_open
        breaker.record_failure()

        assert breaker.is_open
        assert breaker.opened_at == clock.now

    def test_decorator_and_reset(self) -> None:
        breaker = CircuitBreaker("db", threshold=1)

        @breaker
        def fail() -> None:
            raise ConnectionError()

        with pytest.raises(ConnectionError):
            fail()
        assert breaker.is_open

        breaker.reset()

        assert not breaker.is_open


def _raise_connection_error() -> None:
    raise ConnectionError()


def _raise_value_error() -> None:
    raise ValueError("bad input")
