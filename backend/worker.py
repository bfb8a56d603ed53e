"""Deferred task runner.

Each accepted submission becomes one task on a bounded ThreadPoolExecutor:
sleep until the delay has elapsed, hash, store.  The submitting request
never waits for it.

Tasks are never cancelled, not even during shutdown: the drain counts
registry entries and needs every issued id to land exactly once.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from task_state import TaskRegistry
from transform import Transform, sha512_base64

logger = logging.getLogger(__name__)


class TaskPhase(str, enum.Enum):
    PENDING = "pending"
    DELAYED = "delayed"
    COMPLETED = "completed"


class TaskExecutor:
    """Fire-and-forget execution of deferred hash tasks."""

    def __init__(
        self,
        registry: TaskRegistry,
        transform: Transform = sha512_base64,
        delay: float = 5.0,
        max_workers: int = 64,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._registry = registry
        self._transform = transform
        self._delay = delay
        self._clock = clock
        self._sleep = sleep
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="hash-task")
        # In-flight tasks only; completed ids live in the registry.
        self._phases: dict[str, TaskPhase] = {}
        self._lock = threading.Lock()

    @property
    def delay(self) -> float:
        return self._delay

    def launch(self, task_id: str, password: str) -> Future:
        """Schedule the task for *task_id*.  Returns immediately.

        The delay is counted from this call, so a task that waits in the
        pool queue does not sleep the full interval again.
        """
        deadline = self._clock() + self._delay
        self._set_phase(task_id, TaskPhase.PENDING)
        return self._pool.submit(self._run, task_id, password, deadline)

    def phase(self, task_id: str) -> Optional[TaskPhase]:
        """Current phase; ids no longer tracked are completed once stored."""
        with self._lock:
            phase = self._phases.get(task_id)
        if phase is None and self._registry.get(task_id) is not None:
            return TaskPhase.COMPLETED
        return phase

    def in_flight(self) -> int:
        """Tasks launched but not yet completed."""
        with self._lock:
            return len(self._phases)

    def _set_phase(self, task_id: str, phase: TaskPhase) -> None:
        with self._lock:
            self._phases[task_id] = phase

    def _run(self, task_id: str, password: str, deadline: float) -> None:
        try:
            self._execute(task_id, password, deadline)
        except Exception as e:
            logger.error(f"Background task error for request Id {task_id}: {e}")
        finally:
            with self._lock:
                self._phases.pop(task_id, None)

    def _execute(self, task_id: str, password: str, deadline: float) -> None:
        self._set_phase(task_id, TaskPhase.DELAYED)
        remaining = deadline - self._clock()
        if remaining > 0:
            self._sleep(remaining)

        try:
            result = self._transform(password)
        except Exception as e:
            # Still record the id so the shutdown drain can finish; an empty
            # result reads back as "Invalid task Id".
            logger.error(f"Deferred processing failed for request Id {task_id}: {e}")
            result = ""

        self._registry.put(task_id, result)
        logger.info(f"Deferred processing completed for request Id {task_id}")

    def shutdown(self, wait: bool = True) -> None:
        """Shut down the pool.  Queued tasks always run to completion."""
        self._pool.shutdown(wait=wait, cancel_futures=False)
        logger.info("Deferred task pool shut down")
