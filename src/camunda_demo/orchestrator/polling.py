"""
Bounded polling for broker-side progress.

The broker advances process instances asynchronously: a user task exists
only some time after the instance was started. Instead of sleeping a fixed
amount, poll the query until it yields a result or the deadline passes.
"""

import logging
import time
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def poll_until(
    query: Callable[[], Optional[T]],
    *,
    timeout: float,
    interval: float = 0.5,
    backoff: float = 2.0,
    max_interval: float = 5.0,
    condition: Optional[Callable[[T], bool]] = None,
    description: str = "condition",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Optional[T]:
    """
    Call `query` until it returns an accepted value or `timeout` elapses.

    A value is accepted when it is not None and, if given, `condition(value)`
    holds. The query runs at least once. Errors raised by the query propagate.

    Args:
        query: Zero-argument callable returning a value or None
        timeout: Deadline in seconds
        interval: First pause between attempts
        backoff: Multiplier applied to the pause after each miss
        max_interval: Upper bound for the pause
        condition: Extra acceptance test for non-None values
        description: Used in log messages

    Returns:
        The accepted value, or the last value seen (possibly None) on timeout
    """
    deadline = clock() + timeout
    pause = interval
    attempt = 0

    while True:
        attempt += 1
        value = query()
        if value is not None and (condition is None or condition(value)):
            logger.debug(f"{description} satisfied after {attempt} attempt(s)")
            return value

        remaining = deadline - clock()
        if remaining <= 0:
            logger.debug(f"Gave up waiting for {description} after {attempt} attempt(s)")
            return value

        sleep(min(pause, remaining))
        pause = min(pause * backoff, max_interval)
