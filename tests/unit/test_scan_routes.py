"""
API tests for the scan endpoints.

The orchestrator and repository dependencies are overridden with
in-process fakes.
"""

import pytest
from fastapi.testclient import TestClient

from agents.scan_orchestrator import ScanOrchestrator
from src.app import app
from src.controllers.scan_controller import get_orchestrator, get_repository
from storage.repository import InMemoryScanRepository, StorageError
from tests.fakes import BUYER_QUESTIONS, FakeProvider, responder_for

SCAN_REQUEST = {
    "input": {
        "brand_name": "Cal.com",
        "website_url": "https://cal.com",
        "core_problem": "Scheduling meetings without back-and-forth emails",
        "target_buyer": "Freelancers and small teams",
        "competitors": ["Calendly"],
        "buyer_questions": BUYER_QUESTIONS,
    }
}


class BrokenRepository(InMemoryScanRepository):
    def get_scan(self, scan_id):
        raise StorageError("redis down")


class UnsaveableRepository(InMemoryScanRepository):
    def save_scan(self, result):
        raise StorageError("redis down")


@pytest.fixture
def client_for():
    def _client(providers, repository=None):
        repository = repository or InMemoryScanRepository()
        orchestrator = ScanOrchestrator(providers, repository=repository)
        app.dependency_overrides[get_repository] = lambda: repository
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        return TestClient(app)

    yield _client
    app.dependency_overrides.clear()


def healthy_providers():
    return {
        "openai": FakeProvider("openai", responder_for(BUYER_QUESTIONS[:5])),
        "anthropic": FakeProvider("anthropic", responder_for(BUYER_QUESTIONS[:3])),
    }


def test_health(client_for):
    response = client_for(healthy_providers()).get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_run_scan_and_read_it_back(client_for):
    client = client_for(healthy_providers())

    response = client.post("/scans", json=SCAN_REQUEST)
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "complete"
    assert body["query_count"] == 8
    assert 0 <= body["score"]["final_score"] <= 100
    assert body["score"]["by_model"]["openai"]["mention_rate"] == pytest.approx(5 / 8)

    scan_id = body["scan_id"]
    assert client.get(f"/scans/{scan_id}").json()["scan_id"] == scan_id

    progress = client.get(f"/scans/{scan_id}/progress").json()
    assert progress == {**progress, "stage": "complete", "percent": 100}

    competitors = client.get("/brands/cal.com/competitors").json()
    assert competitors[0]["competitor_name"] == "Calendly"
    assert competitors[0]["rank"] == 1


def test_invalid_input_is_rejected(client_for):
    request = {"input": {**SCAN_REQUEST["input"], "website_url": "https://github.com/calcom"}}
    response = client_for(healthy_providers()).post("/scans", json=request)
    assert response.status_code == 422


def test_all_providers_failing_maps_to_502(client_for):
    providers = {
        "openai": FakeProvider("openai", error="server_error"),
        "anthropic": FakeProvider("anthropic", error="timeout"),
    }
    response = client_for(providers).post("/scans", json=SCAN_REQUEST)

    assert response.status_code == 502
    assert response.json()["detail"]["code"] == "BOTH_PROVIDERS_FAILED"
    assert "server_error" not in response.json()["detail"]["message"]


def test_unknown_scan_is_404(client_for):
    client = client_for(healthy_providers())
    assert client.get("/scans/missing").status_code == 404
    assert client.get("/scans/missing/progress").status_code == 404


def test_storage_outage_is_503(client_for):
    response = client_for(healthy_providers(), BrokenRepository()).get("/scans/scan-1")
    assert response.status_code == 503
    assert response.json()["detail"]["code"] == "STORAGE_UNAVAILABLE"


def test_unsaved_scan_still_returns_its_result(client_for):
    response = client_for(healthy_providers(), UnsaveableRepository()).post("/scans", json=SCAN_REQUEST)

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["code"] == "PERSISTENCE_ERROR"
    assert detail["result"]["query_count"] == 8
    assert detail["result"]["score"]["by_model"]["openai"]["mention_rate"] == pytest.approx(5 / 8)


def test_failed_scan_body_has_no_result(client_for):
    providers = {"openai": FakeProvider("openai", error="server_error")}
    detail = client_for(providers).post("/scans", json=SCAN_REQUEST).json()["detail"]

    assert detail["code"] == "NO_RESULTS"
    assert "result" not in detail
