"""Graceful shutdown: close the gate, drain deferred tasks, stop the listener.

Sequence (ShutdownCoordinator.shutdown):
  1. Close the ShutdownGate — submissions and queries now get 503.
  2. Wait until every issued id has a registry entry.
  3. Return the farewell text to the caller.
  4. After a grace period, stop the listener on a detached timer.

The /shutdown endpoint is exempt from the gate, so a repeated call simply
re-runs the (already satisfied) drain and gets the farewell again.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from errors import ListenerAlreadyClosed
from task_state import IdentifierAllocator, ShutdownGate, TaskRegistry

logger = logging.getLogger(__name__)

MSG_SHUTDOWN = "Initiating service shutdown"
MSG_FAREWELL = "All requests have been processed, terminating service."


class ListenerHandle:
    """Late-bound reference to the running uvicorn server.

    The service is built before the server exists, so the CLI attaches the
    server once it has been created.
    """

    def __init__(self) -> None:
        self._server: Optional[Any] = None
        self._lock = threading.Lock()

    def attach(self, server: Any) -> None:
        with self._lock:
            self._server = server

    def stop(self) -> None:
        """Ask the server to exit.  Raises ListenerAlreadyClosed if it already is."""
        with self._lock:
            if self._server is None:
                raise ListenerAlreadyClosed("No listener attached")
            if self._server.should_exit:
                raise ListenerAlreadyClosed("Listener already closed")
            self._server.should_exit = True


class ShutdownCoordinator:
    """Runs the drain/terminate protocol over the shared task state."""

    def __init__(
        self,
        gate: ShutdownGate,
        allocator: IdentifierAllocator,
        registry: TaskRegistry,
        listener: ListenerHandle,
        poll_interval: float = 0.1,
        grace_period: float = 1.0,
    ) -> None:
        self._gate = gate
        self._allocator = allocator
        self._registry = registry
        self._listener = listener
        self._poll_interval = poll_interval
        self._grace_period = grace_period
        self._timer: Optional[threading.Timer] = None
        self._timer_lock = threading.Lock()
        self._stopped = threading.Event()

    def shutdown(self) -> str:
        """Block until all accepted tasks are stored, then schedule the stop."""
        if self._gate.initiate_shutdown():
            logger.info(MSG_SHUTDOWN)

        self.drain()
        logger.info("Shutdown: All tasks completed")

        self._schedule_stop()
        return MSG_FAREWELL

    def drain(self) -> None:
        """Wait until the registry holds one entry per issued id.

        ``issued_count`` takes the allocator lock, so once the gate is closed
        no admitted-but-unallocated submission can slip past this read.
        """
        while True:
            issued = self._allocator.issued_count()
            if self._registry.wait_for_count(issued, timeout=self._poll_interval):
                return
            logger.debug(f"Drain: {self._registry.count()}/{issued} tasks completed")

    def _schedule_stop(self) -> None:
        with self._timer_lock:
            if self._timer is not None:
                return
            self._timer = threading.Timer(self._grace_period, self._stop_listener)
            self._timer.daemon = True
            self._timer.start()

    def _stop_listener(self) -> None:
        try:
            self._listener.stop()
        except ListenerAlreadyClosed as e:
            logger.info(f"Listener stop skipped: {e}")
        except Exception as e:
            logger.error(f"Server encountered an error while shutting down: {e}")
        finally:
            self._stopped.set()

    def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """Block until the delayed listener stop has run."""
        return self._stopped.wait(timeout)
