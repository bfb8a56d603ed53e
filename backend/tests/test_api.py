"""HTTP-level tests for the FastAPI routes (TestClient, no real socket)."""

import pytest
from fastapi.testclient import TestClient

from errors import MSG_INVALID_ID, MSG_INVALID_PASSWORD, MSG_SHUTTING_DOWN
from main import create_app
from shutdown import MSG_FAREWELL
from transform import sha512_base64


@pytest.fixture
def svc(make_service):
    return make_service(delay=0.1)


@pytest.fixture
def client(svc):
    return TestClient(create_app(svc))


class TestHashRoutes:
    def test_post_returns_id_as_text(self, client):
        resp = client.post("/hash", data={"password": "angryMonkey"})
        assert resp.status_code == 200
        assert resp.text == "1"
        assert resp.headers["content-type"].startswith("text/plain")

    def test_ids_increase(self, client):
        ids = [client.post("/hash", data={"password": f"pw{i}"}).text for i in range(3)]
        assert ids == ["1", "2", "3"]

    def test_result_lifecycle(self, client, svc):
        client.post("/hash", data={"password": "abc123"})

        early = client.get("/hash/1")
        assert early.status_code == 400
        assert early.text == MSG_INVALID_ID

        assert svc.registry.wait_for_count(1, timeout=5)
        for _ in range(2):
            resp = client.get("/hash/1")
            assert resp.status_code == 200
            assert resp.text == sha512_base64("abc123")

    def test_missing_password(self, client, svc):
        resp = client.post("/hash")
        assert resp.status_code == 400
        assert resp.text == MSG_INVALID_PASSWORD
        assert svc.allocator.issued_count() == 0

    def test_empty_password(self, client):
        resp = client.post("/hash", data={"password": ""})
        assert resp.status_code == 400
        assert resp.text == MSG_INVALID_PASSWORD

    def test_unknown_id(self, client):
        assert client.get("/hash/12345").status_code == 400
        assert client.get("/hash").text == MSG_INVALID_ID

    def test_wrong_method(self, client):
        assert client.put("/hash").status_code == 405
        assert client.delete("/hash/1").status_code == 405


class TestStatsRoute:
    def test_empty(self, client):
        resp = client.get("/stats")
        assert resp.status_code == 200
        assert resp.json() == {"total": 0, "average": 0}

    def test_counts_submissions_only(self, client):
        client.post("/hash", data={"password": "a"})
        client.post("/hash", data={"password": "b"})
        client.get("/hash/1")
        body = client.get("/stats").json()
        assert body["total"] == 2
        assert isinstance(body["average"], int)
        assert body["average"] >= 0

    def test_post_not_allowed(self, client):
        assert client.post("/stats").status_code == 405


class TestShutdownRoute:
    def test_farewell_after_drain(self, client, svc):
        client.post("/hash", data={"password": "abc123"})
        resp = client.get("/shutdown")
        assert resp.status_code == 200
        assert resp.text == MSG_FAREWELL
        # The pending task finished before the farewell was sent
        assert svc.registry.get("1") == sha512_base64("abc123")

    def test_everything_rejected_after_shutdown(self, client, svc):
        client.get("/shutdown")
        for resp in (
            client.post("/hash", data={"password": "late"}),
            client.get("/hash/1"),
            client.get("/stats"),
        ):
            assert resp.status_code == 503
            assert resp.text == MSG_SHUTTING_DOWN
        assert svc.allocator.issued_count() == 0

    def test_shutdown_exempt_from_gate(self, client):
        assert client.get("/shutdown").text == MSG_FAREWELL
        assert client.get("/shutdown").text == MSG_FAREWELL

    def test_post_not_allowed(self, client, svc):
        assert client.post("/shutdown").status_code == 405
        assert not svc.gate.is_shutting_down()


class TestHealthRoute:
    def test_reports_status(self, client):
        client.post("/hash", data={"password": "a"})
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["issued"] == 1
        assert body["task_delay_seconds"] == pytest.approx(0.1)

    def test_not_gated(self, client):
        client.get("/shutdown")
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "shutting_down"
