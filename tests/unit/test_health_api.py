from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.app.api.routers import health
from backend.app.config import Settings, load_settings


def test_healthz_reports_environment_and_cache_policy() -> None:
    app = FastAPI()
    app.include_router(health.router)
    app.dependency_overrides[load_settings] = lambda: Settings(environment="test")
    client = TestClient(app)

    response = client.get("/api/healthz")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["environment"] == "test"
    assert body["cache"] == {"slidingSeconds": 120, "absoluteSeconds": 600}
    assert isinstance(body["counters"], dict)
