"""Error vocabulary shared by the core and the HTTP layer.

Every request-level failure carries the HTTP status and the terse message
the client sees.  The FastAPI app turns them into plain-text responses.
"""

from __future__ import annotations

# Messages returned to clients
MSG_INVALID_ID = "Error: Invalid task Id"
MSG_INVALID_PASSWORD = "Error: Missing or invalid password"
MSG_SHUTTING_DOWN = "Service is shutting down, request rejected"


class HashServiceError(Exception):
    """Base class for failures reported back to the caller."""

    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AdmissionRejected(HashServiceError):
    """The shutdown gate is closed; nothing was allocated or recorded."""

    status_code = 503
    default_message = MSG_SHUTTING_DOWN


class InvalidInput(HashServiceError):
    """Empty or missing submission payload."""

    status_code = 400
    default_message = MSG_INVALID_PASSWORD


class TaskNotFound(HashServiceError):
    """Unknown id, or a task that has not completed yet."""

    status_code = 400
    default_message = MSG_INVALID_ID


class ListenerAlreadyClosed(RuntimeError):
    """Stopping a listener that is already stopped (or was never attached)."""
