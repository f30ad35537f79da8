"""Retries with exponential backoff, and a circuit breaker for repeat failures."""

from __future__ import annotations

import functools
import logging
import threading
import time
import typing as t

logger = logging.getLogger(__name__)

P = t.ParamSpec("P")
R = t.TypeVar("R")


class CircuitOpenError(RuntimeError):
    def __init__(self, name: str, retry_after: float):
        super().__init__(f"circuit {name!r} is open; retry in {retry_after:.1f}s")
        self.name = name
        self.retry_after = retry_after


def retry(
    attempts: int = 3,
    *,
    delay: float = 0.1,
    factor: float = 2.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
    sleep: t.Callable[[float], None] = time.sleep,
) -> t.Callable[[t.Callable[P, R]], t.Callable[P, R]]:
    """Call the decorated function up to `attempts` times.

    The wait doubles (by `factor`) after each failure. The last failure is
    re-raised.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    def decorator(f: t.Callable[P, R]) -> t.Callable[P, R]:
        @functools.wraps(f)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            wait = delay
            for attempt in range(1, attempts + 1):
                try:
                    return f(*args, **kwargs)
                except exceptions as e:
                    if attempt == attempts:
                        raise
                    logger.debug(
                        f"{f.__qualname__} failed, retrying",
                        extra={"attempt": attempt, "attempts": attempts, "wait": wait, "error": repr(e)},
                    )
                    sleep(wait)
                    wait *= factor
            raise AssertionError("unreachable")

        return wrapper

    return decorator


class CircuitBreaker(object):
    """Stops calling a failing dependency for a while.

    After `threshold` consecutive failures the circuit opens and calls fail
    fast with `CircuitOpenError`. Once `reset_after` seconds have passed one
    trial call is let through; success closes the circuit, failure re-opens it.

    Only `exceptions` count as failures of the dependency. Anything else is
    the caller's problem and passes through without touching the circuit.
    """

    def __init__(
        self,
        name: str,
        *,
        threshold: int = 5,
        reset_after: float = 30.0,
        exceptions: tuple[type[BaseException], ...] = (Exception,),
        clock: t.Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.threshold = threshold
        self.reset_after = reset_after
        self.exceptions = exceptions
        self.clock = clock
        self.failures = 0
        self.opened_at: float | None = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._remaining() > 0

    def call(self, f: t.Callable[P, R], /, *args: P.args, **kwargs: P.kwargs) -> R:
        with self._lock:
            remaining = self._remaining()
        if remaining > 0:
            raise CircuitOpenError(self.name, remaining)

        try:
            result = f(*args, **kwargs)
        except self.exceptions:
            self.record_failure()
            raise

        with self._lock:
            if self.failures or self.opened_at is not None:
                logger.info(f"circuit {self.name} closed")
            self.failures = 0
            self.opened_at = None
        return result

    def reset(self) -> None:
        with self._lock:
            self.failures = 0
            self.opened_at = None

    def __call__(self, f: t.Callable[P, R]) -> t.Callable[P, R]:
        @functools.wraps(f)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            return self.call(f, *args, **kwargs)

        return wrapper

    def _remaining(self) -> float:
        if self.opened_at is None:
            return 0.0
        return max(0.0, self.opened_at + self.reset_after - self.clock())

    def record_failure(self) -> None:
        """Count a failure observed outside `call`, such as a call that was abandoned."""
        with self._lock:
            self.failures += 1
            if self.failures >= self.threshold:
                self.opened_at = self.clock()
                logger.warning(
                    f"circuit {self.name} opened",
                    extra={"failures": self.failures, "reset_after": self.reset_after},
                )
