# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Per-request deadline shared by every external call a command triggers.

The controller opens a deadline for the whole command; adapters ask for
the remaining budget right before each Slack or database call and fail
closed once it is spent.
"""

import contextlib
import time
from contextvars import ContextVar
from typing import Callable, Iterator, Optional

from oncallbot.core.exceptions import ExternalError


class Deadline:
    def __init__(self, timeout: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.timeout = timeout
        self.expires_at = clock() + timeout

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0


_DEADLINE: ContextVar[Optional[Deadline]] = ContextVar("oncallbot.deadline", default=None)


def current_deadline() -> Optional[Deadline]:
    return _DEADLINE.get()


@contextlib.contextmanager
def deadline_context(timeout: float) -> Iterator[Deadline]:
    deadline = Deadline(timeout)
    token = _DEADLINE.set(deadline)
    try:
        yield deadline
    finally:
        _DEADLINE.reset(token)


def remaining_timeout(default: float, operation: str) -> float:
    """
    Timeout to use for the next external call.
    Raises ExternalError if the request deadline has already passed.
    """
    deadline = current_deadline()
    if deadline is None:
        return default
    remaining = deadline.remaining()
    if remaining <= 0.0:
        raise ExternalError(f"deadline of {deadline.timeout}s exceeded before {operation}")
    return min(default, remaining)
