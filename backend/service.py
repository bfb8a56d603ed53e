"""HashService — the service-state aggregate behind every HTTP handler.

One instance owns the gate, the counters, the registry, the deferred task
pool and the shutdown coordinator.  The FastAPI app stores it on
``app.state.service``; nothing here is a module-level global.

Boundary operations:
    submit(password)  → task id          (gate, non-empty input)
    query(task_id)    → hash             (gate, completed task)
    stats()           → StatsSnapshot    (gate)
    shutdown()        → farewell text    (never gated)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from errors import InvalidInput, TaskNotFound
from settings import settings
from shutdown import ListenerHandle, ShutdownCoordinator
from task_state import (
    IdentifierAllocator, ShutdownGate, StatsAccumulator, StatsSnapshot, TaskRegistry,
)
from transform import Transform, sha512_base64
from worker import TaskExecutor

logger = logging.getLogger(__name__)


@dataclass
class HashService:
    gate: ShutdownGate
    allocator: IdentifierAllocator
    accumulator: StatsAccumulator
    registry: TaskRegistry
    executor: TaskExecutor
    listener: ListenerHandle
    coordinator: ShutdownCoordinator

    @classmethod
    def create(
        cls,
        transform: Transform = sha512_base64,
        delay: Optional[float] = None,
        workers: Optional[int] = None,
        poll_interval: Optional[float] = None,
        grace_period: Optional[float] = None,
        listener: Optional[ListenerHandle] = None,
    ) -> HashService:
        """Build a fresh, empty service.  Unset knobs come from settings."""
        gate = ShutdownGate()
        allocator = IdentifierAllocator()
        registry = TaskRegistry()
        listener = listener or ListenerHandle()
        executor = TaskExecutor(
            registry,
            transform=transform,
            delay=settings.TASK_DELAY_SECONDS if delay is None else delay,
            max_workers=settings.TASK_WORKERS if workers is None else workers,
        )
        coordinator = ShutdownCoordinator(
            gate, allocator, registry, listener,
            poll_interval=settings.DRAIN_POLL_INTERVAL if poll_interval is None else poll_interval,
            grace_period=settings.SHUTDOWN_GRACE_SECONDS if grace_period is None else grace_period,
        )
        return cls(
            gate=gate,
            allocator=allocator,
            accumulator=StatsAccumulator(allocator),
            registry=registry,
            executor=executor,
            listener=listener,
            coordinator=coordinator,
        )

    # ── Boundary operations ───────────────────────────────────────

    def submit(self, password: Optional[str], started_at: Optional[float] = None) -> str:
        """Accept a password for deferred hashing and return its task id.

        *started_at* is a ``time.perf_counter()`` reading taken when the
        request arrived; the elapsed time up to launch is added to stats.
        """
        start = time.perf_counter() if started_at is None else started_at
        self.gate.check()
        if not password:
            raise InvalidInput()

        task_id = self.allocator.allocate(self.gate)
        self.executor.launch(task_id, password)

        elapsed_us = int((time.perf_counter() - start) * 1_000_000)
        self.accumulator.record_submission(elapsed_us)
        logger.info(f"Request {task_id} posted for deferred processing")
        return task_id

    def query(self, task_id: str) -> str:
        self.gate.check()
        result = self.registry.get(task_id)
        if not result:
            raise TaskNotFound()
        return result

    def stats(self) -> StatsSnapshot:
        self.gate.check()
        return self.accumulator.snapshot()

    def shutdown(self) -> str:
        return self.coordinator.shutdown()

    # ── Introspection / lifecycle ─────────────────────────────────

    def health(self) -> dict:
        issued = self.allocator.issued_count()
        completed = self.registry.count()
        return {
            "status": "shutting_down" if self.gate.is_shutting_down() else "ok",
            "issued": issued,
            "completed": completed,
            "pending": issued - completed,
            "task_delay_seconds": self.executor.delay,
        }

    def close(self) -> None:
        """Release the task pool, letting already-launched tasks finish."""
        self.executor.shutdown(wait=True)
