"""Pytest conftest — ensure backend/ is importable for flat module imports."""

import sys
from pathlib import Path

import pytest

# Add backend/ to sys.path so `import service`, `from task_state import ...` etc. work
_backend_dir = str(Path(__file__).resolve().parent.parent)
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)


@pytest.fixture
def make_service():
    """Factory for HashService instances with test-sized timings.

    Every service built here has its task pool drained at teardown.
    """
    from service import HashService

    created = []

    def _make(**kwargs):
        kwargs.setdefault("delay", 0.05)
        kwargs.setdefault("workers", 8)
        kwargs.setdefault("poll_interval", 0.01)
        kwargs.setdefault("grace_period", 0.0)
        svc = HashService.create(**kwargs)
        created.append(svc)
        return svc

    yield _make
    for svc in created:
        svc.close()
