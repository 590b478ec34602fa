"""Bounded polling: fixed-interval retries against a wall-clock budget."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from loguru import logger

from .errors import ReadinessTimeoutError

log = logger

T = TypeVar('T')


class Deadline:
    """A wait budget that several polling loops can draw from in turn."""

    def __init__(
        self, budget_s: float, *, clock: Callable[[], float] = time.monotonic
    ):
        self.budget_s = budget_s
        self.clock = clock
        self.start = clock()
        self.expires_at = self.start + budget_s

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self.clock())

    def elapsed(self) -> float:
        return self.clock() - self.start

    @property
    def expired(self) -> bool:
        return self.clock() >= self.expires_at


@dataclass(frozen=True)
class RetryPolicy:
    interval_s: float = 5.0
    max_wait_s: float = 300.0

    def deadline(
        self, *, clock: Callable[[], float] = time.monotonic
    ) -> Deadline:
        return Deadline(self.max_wait_s, clock=clock)


def poll_until(
    predicate: Callable[[], Optional[T]],
    *,
    interval_s: float,
    deadline: Deadline,
    what: str,
    sleep: Callable[[float], None] = time.sleep,
    on_wait: Optional[Callable[[float], None]] = None,
) -> T:
    """Call ``predicate`` until it returns a truthy value or ``deadline`` runs out.

    The truthy value is returned. Between attempts the loop sleeps for
    ``interval_s`` (clipped to what is left of the budget) and reports the
    elapsed time to ``on_wait``. Running out of budget raises
    :class:`ReadinessTimeoutError`.
    """
    attempts = 0
    while True:
        attempts += 1
        value = predicate()
        if value:
            log.debug(
                '{} ready after {} attempt(s), {:.1f}s elapsed',
                what,
                attempts,
                deadline.elapsed(),
            )
            return value
        remaining = deadline.remaining()
        if remaining <= 0:
            break
        sleep(min(interval_s, remaining))
        if on_wait is not None:
            on_wait(deadline.elapsed())
    raise ReadinessTimeoutError(
        f'Timed out waiting for {what} after {deadline.budget_s:g}s '
        f'({attempts} attempts)'
    )
