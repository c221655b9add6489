"""
Completion gate: a count-down latch bridging job handlers and the main flow.

The job worker runs handlers on its own thread. The main flow creates a
gate, hands it to the handler, and blocks on wait() with a timeout:

    gate = CompletionGate()
    worker = client.new_worker("processData", handler_that_counts_down(gate)).open()
    if not gate.wait(timeout=30):
        logger.warning("job not completed in time")
    worker.close()

The gate is the only state shared between the two threads.
"""

import threading
from typing import Optional


class CompletionGate:
    """Single-use latch; opens once count_down() has been called `count` times."""

    def __init__(self, count: int = 1):
        if count < 0:
            raise ValueError("count must be >= 0")
        self._count = count
        self._condition = threading.Condition()

    @property
    def count(self) -> int:
        """Remaining count_down() calls before the gate opens."""
        with self._condition:
            return self._count

    @property
    def is_open(self) -> bool:
        return self.count == 0

    def count_down(self) -> None:
        """Decrement by one. No-op once the gate is open."""
        with self._condition:
            if self._count == 0:
                return
            self._count -= 1
            if self._count == 0:
                self._condition.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the gate opens or the timeout elapses.

        Returns:
            True if the gate opened, False on timeout
        """
        with self._condition:
            return self._condition.wait_for(lambda: self._count == 0, timeout=timeout)

    def __repr__(self) -> str:
        return f"CompletionGate(count={self.count})"
