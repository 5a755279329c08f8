"""FastAPI-level tests for the logbook endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.app.api.dependencies import get_logbook_service
from backend.app.api.routers import logbook
from backend.app.domain.logbook import (
    InMemoryLogbookEntryRepository,
    LogbookEntry,
    LogbookEntryService,
)
from backend.app.infra.cache import MemoryResponseCache
from backend.app.infra.metrics import InMemoryMetricsClient

pytestmark = [pytest.mark.api]

NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)
TODAY = NOW.date()
TOMORROW = TODAY + timedelta(days=1)

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}
ADMIN = {"X-User-Id": "root", "X-User-Roles": "Administrator, User"}


def _build_service() -> tuple[LogbookEntryService, InMemoryLogbookEntryRepository]:
    repository = InMemoryLogbookEntryRepository()
    service = LogbookEntryService(
        repository=repository,
        cache=MemoryResponseCache(),
        metrics=InMemoryMetricsClient(),
        clock=lambda: NOW,
    )
    return service, repository


def _build_client(service: LogbookEntryService) -> TestClient:
    app = FastAPI()
    app.include_router(logbook.router)
    app.dependency_overrides[get_logbook_service] = lambda: service
    return TestClient(app)


def _seed(repository: InMemoryLogbookEntryRepository, entry_id: str, user_id: str):
    repository.insert(
        LogbookEntry(
            entry_id=entry_id,
            user_id=user_id,
            activity="Seeded",
            description="seed",
            entry_date=TOMORROW,
            created_at=NOW,
            updated_at=NOW,
        )
    )


def test_create_and_fetch_entry_envelope() -> None:
    service, _repo = _build_service()
    client = _build_client(service)

    created = client.post(
        "/api/logbook",
        json={"activity": "  Standup  ", "description": "daily"},
        headers=ALICE,
    )

    assert created.status_code == 201
    body = created.json()
    assert body["status_code"] == 201
    assert body["succeeded"] is True
    assert body["errors"] == []
    assert body["data"]["activity"] == "Standup"
    assert body["data"]["entry_date"] == TODAY.isoformat()

    entry_id = body["data"]["entry_id"]
    fetched = client.get(f"/api/logbook/{entry_id}", headers=ALICE)
    assert fetched.status_code == 200
    assert fetched.json()["data"]["entry_id"] == entry_id

    listed = client.get("/api/logbook", headers=ALICE)
    assert [item["entry_id"] for item in listed.json()["data"]] == [entry_id]


def test_missing_user_header_is_unauthorized() -> None:
    service, _repo = _build_service()
    client = _build_client(service)

    response = client.get("/api/logbook")

    assert response.status_code == 401


def test_invalid_role_header_is_rejected() -> None:
    service, _repo = _build_service()
    client = _build_client(service)

    response = client.get(
        "/api/logbook", headers={"X-User-Id": "alice", "X-User-Roles": "Wizard"}
    )

    assert response.status_code == 400


def test_validation_errors_are_422() -> None:
    service, repo = _build_service()
    client = _build_client(service)

    blank = client.post("/api/logbook", json={"activity": "   "}, headers=ALICE)
    too_long = client.post("/api/logbook", json={"activity": "x" * 51}, headers=ALICE)
    long_description = client.post(
        "/api/logbook",
        json={"activity": "ok", "description": "d" * 251},
        headers=ALICE,
    )

    assert blank.status_code == 422
    assert too_long.status_code == 422
    assert long_description.status_code == 422
    assert repo.get_all() == []


def test_past_date_returns_failure_envelope() -> None:
    service, _repo = _build_service()
    client = _build_client(service)

    response = client.post(
        "/api/logbook",
        json={"activity": "Late", "entry_date": (TODAY - timedelta(days=1)).isoformat()},
        headers=ALICE,
    )

    assert response.status_code == 400
    body = response.json()
    assert body["succeeded"] is False
    assert body["data"] is None
    assert body["message"] == "You cannot add a new entry for past dates."


def test_update_and_delete_single_entry() -> None:
    service, repo = _build_service()
    _seed(repo, "e-1", "alice")
    client = _build_client(service)

    forbidden = client.put(
        "/api/logbook/e-1", json={"activity": "Nope"}, headers=BOB
    )
    updated = client.put(
        "/api/logbook/e-1",
        json={"activity": "Renamed", "description": None},
        headers=ALICE,
    )
    deleted = client.delete("/api/logbook/e-1", headers=ALICE)
    missing = client.delete("/api/logbook/e-1", headers=ALICE)

    assert forbidden.status_code == 403
    assert updated.status_code == 200
    assert updated.json()["data"]["activity"] == "Renamed"
    assert updated.json()["data"]["description"] is None
    assert deleted.status_code == 204
    assert deleted.content == b""
    assert missing.status_code == 404


def test_create_multiple_entries_partial_success() -> None:
    service, _repo = _build_service()
    client = _build_client(service)

    response = client.post(
        "/api/logbook/create-multiple-entries",
        json=[
            {"activity": "A", "entry_date": TODAY.isoformat()},
            {"activity": "B", "entry_date": TOMORROW.isoformat()},
            {"activity": "C", "entry_date": TODAY.isoformat()},
        ],
        headers=ALICE,
    )

    assert response.status_code == 207
    body = response.json()
    assert body["succeeded"] is True
    assert [item["activity"] for item in body["data"]] == ["A", "B"]
    assert body["errors"] == [
        f"Entry for {TODAY.isoformat()}: Duplicate date within the submitted batch"
    ]


def test_update_multiple_entries_partial_success() -> None:
    service, repo = _build_service()
    _seed(repo, "mine", "alice")
    _seed(repo, "theirs", "bob")
    client = _build_client(service)

    response = client.put(
        "/api/logbook/update-multiple-entries",
        json=[
            {"entry_id": "mine", "activity": "Updated"},
            {"entry_id": "theirs", "activity": "Stolen"},
        ],
        headers=ALICE,
    )

    assert response.status_code == 207
    body = response.json()
    assert [item["entry_id"] for item in body["data"]] == ["mine"]
    assert body["errors"] == [
        "Entry with ID theirs: You do not have permission to update this entry"
    ]
    assert repo.get_by_id("theirs").activity == "Seeded"


def test_delete_multiple_entries_all_or_nothing() -> None:
    service, repo = _build_service()
    _seed(repo, "mine", "alice")
    _seed(repo, "theirs", "bob")
    client = _build_client(service)

    forbidden = client.request(
        "DELETE",
        "/api/logbook/delete-multiple-entries",
        json=["mine", "theirs"],
        headers=ALICE,
    )
    allowed = client.request(
        "DELETE",
        "/api/logbook/delete-multiple-entries",
        json=["mine"],
        headers=ALICE,
    )

    assert forbidden.status_code == 403
    assert allowed.status_code == 204
    assert repo.get_by_id("mine") is None
    assert repo.get_by_id("theirs") is not None


def test_admin_listing_requires_role() -> None:
    service, repo = _build_service()
    _seed(repo, "a-1", "alice")
    _seed(repo, "b-1", "bob")
    client = _build_client(service)

    denied = client.get("/api/logbook/entries", headers=ALICE)
    allowed = client.get("/api/logbook/entries", headers=ADMIN)

    assert denied.status_code == 403
    assert allowed.status_code == 200
    assert {item["entry_id"] for item in allowed.json()["data"]} == {"a-1", "b-1"}


def test_download_csv_returns_attachment() -> None:
    service, repo = _build_service()
    _seed(repo, "e-1", "alice")
    client = _build_client(service)

    response = client.get(
        "/api/logbook/download-csv",
        params={"start_date": TODAY.isoformat(), "end_date": TOMORROW.isoformat()},
        headers=ALICE,
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert (
        response.headers["content-disposition"]
        == 'attachment; filename="LogbookEntries.csv"'
    )
    lines = response.text.splitlines()
    assert lines[0] == "entry_id,activity,description,entry_date,last_updated"
    assert lines[1].startswith(f"e-1,Seeded,seed,{TOMORROW.isoformat()},")


def test_download_csv_rejects_inverted_range() -> None:
    service, _repo = _build_service()
    client = _build_client(service)

    response = client.get(
        "/api/logbook/download-csv",
        params={"start_date": TOMORROW.isoformat(), "end_date": TODAY.isoformat()},
        headers=ALICE,
    )

    assert response.status_code == 400
