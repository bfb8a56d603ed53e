"""Thin HTTP client for the hash service (used by the CLI)."""

from __future__ import annotations

from typing import Optional

import httpx


class HashClientError(RuntimeError):
    """Raised when the service answers with a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class HashClient:
    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8080",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._http = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "HashClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _checked(self, response: httpx.Response) -> httpx.Response:
        if not response.is_success:
            raise HashClientError(response.status_code, response.text.strip())
        return response

    def submit(self, password: str) -> str:
        response = self._http.post("/hash", data={"password": password})
        return self._checked(response).text.strip()

    def result(self, task_id: str) -> str:
        if not task_id:
            raise HashClientError(400, "Error: Invalid task Id")
        response = self._http.get(f"/hash/{task_id}")
        return self._checked(response).text.strip()

    def stats(self) -> dict:
        return self._checked(self._http.get("/stats")).json()

    def shutdown(self, timeout: Optional[float] = None) -> str:
        """Blocks until the server has drained.  *timeout* None waits forever."""
        response = self._http.get("/shutdown", timeout=timeout)
        return self._checked(response).text.strip()
