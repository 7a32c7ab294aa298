from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from searxstack.core.errors import ReadinessTimeoutError

log = logging.getLogger("searxstack.readiness")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 30
    interval_seconds: float = 10.0
    backoff: str = "fixed"  # fixed|exponential
    backoff_factor: float = 2.0
    max_interval_seconds: float = 60.0
    timeout_seconds: Optional[float] = None

    @classmethod
    def from_config(cls, cfg) -> "RetryPolicy":  # noqa: ANN001
        return cls(
            max_attempts=int(cfg.max_attempts),
            interval_seconds=float(cfg.interval_seconds),
            backoff=str(cfg.backoff),
            backoff_factor=float(cfg.backoff_factor),
            max_interval_seconds=float(cfg.max_interval_seconds),
            timeout_seconds=float(cfg.timeout_seconds) if cfg.timeout_seconds is not None else None,
        )

    def delay_after(self, attempt: int) -> float:
        """Sleep before attempt `attempt + 1` (attempt is 1-based)."""
        if self.backoff == "exponential":
            d = self.interval_seconds * (self.backoff_factor ** max(0, attempt - 1))
            if self.max_interval_seconds > 0:
                d = min(d, self.max_interval_seconds)
            return d
        return self.interval_seconds


def wait_for(
    probe: Callable[[], bool],
    policy: RetryPolicy,
    *,
    what: str = "services",
    cancel: Optional[threading.Event] = None,
    sleep: Optional[Callable[[float], None]] = None,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """
    Poll `probe` until it returns True. Returns the attempt number that succeeded.

    Raises ReadinessTimeoutError once max_attempts are used up, the overall
    timeout elapses, or `cancel` is set. With a cancel event and no explicit
    sleep, waiting happens on the event so cancellation is immediate.
    """
    if sleep is None:
        sleep = cancel.wait if cancel is not None else time.sleep
    started = clock()
    attempt = 0
    while attempt < policy.max_attempts:
        if cancel is not None and cancel.is_set():
            raise ReadinessTimeoutError(f"Waiting for {what} was cancelled", attempts=attempt)
        if policy.timeout_seconds is not None and attempt > 0 and (clock() - started) >= policy.timeout_seconds:
            break
        attempt += 1
        if probe():
            return attempt
        log.info("Attempt %d/%d - waiting for %s...", attempt, policy.max_attempts, what)
        if attempt >= policy.max_attempts:
            break
        delay = policy.delay_after(attempt)
        if policy.timeout_seconds is not None:
            remaining = policy.timeout_seconds - (clock() - started)
            if remaining <= 0:
                break
            delay = min(delay, remaining)
        sleep(delay)
    raise ReadinessTimeoutError(
        f"{what[:1].upper()}{what[1:]} failed to become ready after {attempt} attempt(s)",
        attempts=attempt,
        elapsed_seconds=round(clock() - started, 3),
    )


def stack_is_ready(runtime) -> bool:  # noqa: ANN001
    containers = runtime.compose_ps()
    return bool(containers) and all(c.ready for c in containers)
