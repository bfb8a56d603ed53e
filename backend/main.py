"""FastAPI application — deferred password hashing with graceful shutdown.

Architecture layers:
  1. Settings        (settings.py)   — centralized configuration
  2. Shared state    (task_state.py) — gate, id allocator, stats, result registry
  3. Task runner     (worker.py)     — delayed hash on a bounded thread pool
  4. Shutdown        (shutdown.py)   — gate → drain → farewell → listener stop
  5. Service         (service.py)    — aggregate + boundary operations
  6. HTTP            (this file)     — routes, error mapping, uvicorn server

Routes:
  POST /hash            form ``password`` → task id (text)
  GET  /hash/{task_id}  → base64 SHA-512 (text) once the delay has elapsed
  GET  /stats           → {"total": n, "average": µs}
  GET  /shutdown        → blocks until every task is stored, then farewell
  GET  /health          → status and pending-task count (never gated)
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Form, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from errors import HashServiceError
from service import HashService
from settings import settings
from shutdown import ListenerHandle

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
#  Response models
# ---------------------------------------------------------------------------

class StatsResponse(BaseModel):
    total: int
    average: int


class HealthResponse(BaseModel):
    status: str
    issued: int
    completed: int
    pending: int
    task_delay_seconds: float


def get_service(request: Request) -> HashService:
    return request.app.state.service


# ═══════════════════════════════════════════════════════════════════════════
#  HASH ENDPOINTS
# ═══════════════════════════════════════════════════════════════════════════

router = APIRouter()


@router.post("/hash", response_class=PlainTextResponse)
def submit_hash(password: str = Form(""), service: HashService = Depends(get_service)):
    """Queue *password* for hashing; respond with the task id right away."""
    started = time.perf_counter()
    return service.submit(password, started_at=started)


@router.get("/hash", response_class=PlainTextResponse)
def get_hash_without_id(service: HashService = Depends(get_service)):
    return service.query("")


@router.get("/hash/{task_id}", response_class=PlainTextResponse)
def get_hash(task_id: str, service: HashService = Depends(get_service)):
    return service.query(task_id)


@router.get("/stats", response_model=StatsResponse)
def get_stats(service: HashService = Depends(get_service)):
    return service.stats().to_dict()


# ═══════════════════════════════════════════════════════════════════════════
#  LIFECYCLE ENDPOINTS
# ═══════════════════════════════════════════════════════════════════════════

@router.get("/shutdown", response_class=PlainTextResponse)
def shutdown(service: HashService = Depends(get_service)):
    """Stop accepting work, wait for every queued hash, then say goodbye.

    Runs on a worker thread, so blocking here does not stall the event loop
    or the other in-flight requests.
    """
    return service.shutdown()


@router.get("/health", response_model=HealthResponse)
def health_check(service: HashService = Depends(get_service)):
    return service.health()


async def _service_error_handler(request: Request, exc: HashServiceError):
    return PlainTextResponse(exc.message, status_code=exc.status_code)


# ═══════════════════════════════════════════════════════════════════════════
#  APP + SERVER
# ═══════════════════════════════════════════════════════════════════════════

def create_app(service: Optional[HashService] = None) -> FastAPI:
    """Build the app around *service* (a fresh one if omitted)."""
    service = service or HashService.create()

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # noqa: D401
        """Serve requests; on exit let launched tasks finish."""
        logger.info(f"Task delay {service.executor.delay}s, {settings.TASK_WORKERS} workers")
        yield
        service.close()

    app = FastAPI(title="Hash Pass", version="1.0.0", lifespan=lifespan)
    app.state.service = service
    app.include_router(router)
    app.add_exception_handler(HashServiceError, _service_error_handler)
    return app


def serve(host: str, port: int) -> None:
    """Run the service in-process until /shutdown (or a signal) stops it.

    A port that cannot be bound is fatal: uvicorn logs it and exits.
    """
    listener = ListenerHandle()
    app = create_app(HashService.create(listener=listener))
    config = uvicorn.Config(app, host=host, port=port, log_level=settings.LOG_LEVEL.lower())
    server = uvicorn.Server(config)
    listener.attach(server)

    logger.info(f"Starting server on port {port}")
    server.run()
    logger.info("Service has shutdown")
