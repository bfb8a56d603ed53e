"""Shared task state — the only mutable data the service owns.

Three independent synchronization domains:

  1. Request accounting  — IdentifierAllocator + StatsAccumulator share one lock
  2. Results             — TaskRegistry has its own lock / condition
  3. Admission           — ShutdownGate is a threading.Event (visibility only)

Public API:
    ShutdownGate        — write-once "shutting down" flag
    IdentifierAllocator — strictly increasing decimal task ids
    StatsAccumulator    — submission count + cumulative latency
    StatsSnapshot       — {total, average} view for /stats
    TaskRegistry        — write-once id → result map with a blocking count wait
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, asdict
from typing import Optional

from errors import AdmissionRejected


# ═══════════════════════════════════════════════════════════════════════════
#  ADMISSION GATE
# ═══════════════════════════════════════════════════════════════════════════

class ShutdownGate:
    """Admission control flag.  Once closed it never reopens."""

    def __init__(self) -> None:
        self._closed = threading.Event()
        self._lock = threading.Lock()

    def is_shutting_down(self) -> bool:
        return self._closed.is_set()

    def initiate_shutdown(self) -> bool:
        """Close the gate.  Returns True only for the call that closed it."""
        if self._closed.is_set():
            return False
        with self._lock:
            if self._closed.is_set():
                return False
            self._closed.set()
            return True

    def check(self) -> None:
        """Raise AdmissionRejected if the gate is closed."""
        if self._closed.is_set():
            raise AdmissionRejected()


# ═══════════════════════════════════════════════════════════════════════════
#  REQUEST ACCOUNTING
# ═══════════════════════════════════════════════════════════════════════════

class IdentifierAllocator:
    """Issues "1", "2", "3", … exactly once per accepted submission."""

    def __init__(self, lock: Optional[threading.Lock] = None) -> None:
        self.lock = lock or threading.Lock()
        self._issued = 0

    def allocate(self, gate: Optional[ShutdownGate] = None) -> str:
        """Increment the issued count and return it as decimal text.

        When *gate* is given, the admission check happens inside the same
        critical section as the increment.  After the gate closes, one
        acquisition of ``lock`` is enough to know the issued count is final.
        """
        with self.lock:
            if gate is not None:
                gate.check()
            self._issued += 1
            return str(self._issued)

    def issued_count(self) -> int:
        with self.lock:
            return self._issued

    def _issued_count_locked(self) -> int:
        return self._issued


@dataclass(frozen=True)
class StatsSnapshot:
    total: int
    average: int  # microseconds, floored

    def to_dict(self) -> dict:
        return asdict(self)


class StatsAccumulator:
    """Cumulative submission latency, guarded by the allocator's lock.

    Only submissions are timed; queries and shutdown are not counted.
    """

    def __init__(self, allocator: IdentifierAllocator) -> None:
        self._allocator = allocator
        self._elapsed_us = 0

    def record_submission(self, latency_us: int) -> None:
        with self._allocator.lock:
            self._elapsed_us += max(int(latency_us), 0)

    def snapshot(self) -> StatsSnapshot:
        with self._allocator.lock:
            total = self._allocator._issued_count_locked()
            elapsed = self._elapsed_us
        average = elapsed // total if total else 0
        return StatsSnapshot(total=total, average=average)


# ═══════════════════════════════════════════════════════════════════════════
#  RESULT REGISTRY
# ═══════════════════════════════════════════════════════════════════════════

class TaskRegistry:
    """Write-once map of task id → result text.

    ``put`` notifies waiters so the shutdown drain wakes as soon as the
    last outstanding task lands.
    """

    def __init__(self) -> None:
        self._results: dict[str, str] = {}
        self._cond = threading.Condition(threading.Lock())

    def put(self, task_id: str, result: str) -> None:
        with self._cond:
            if task_id in self._results:
                raise ValueError(f"Result for task {task_id} already recorded")
            self._results[task_id] = result
            self._cond.notify_all()

    def get(self, task_id: str) -> Optional[str]:
        with self._cond:
            return self._results.get(task_id)

    def count(self) -> int:
        with self._cond:
            return len(self._results)

    def wait_for_count(self, target: int, timeout: Optional[float] = None) -> bool:
        """Block until at least *target* results exist or *timeout* expires.

        Returns True if the target was reached.
        """
        with self._cond:
            return self._cond.wait_for(lambda: len(self._results) >= target, timeout)
