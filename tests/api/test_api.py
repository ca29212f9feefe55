"""Tests for the HTTP API."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from shiftmigrate.api.main import app
from shiftmigrate.models.migration import MigrationRun, MigrationStatus, TransformationResult

CREDENTIALS = {"base_url": "https://legacy.example.org", "email": "op@example.org", "password": "pw"}


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def orchestrator_cls():
    with patch("shiftmigrate.api.routes.migration.MigrationOrchestrator") as cls:
        yield cls


def test_health(client: TestClient) -> None:
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_test_connection(client: TestClient, orchestrator_cls) -> None:
    orchestrator_cls.return_value.test_connection.return_value = True

    response = client.post("/api/migration/test-connection", json=CREDENTIALS)

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["base_url"] == "https://legacy.example.org"


def test_missing_credentials_rejected(client: TestClient, orchestrator_cls, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("LEGACY_BASE_URL", "LEGACY_EMAIL", "LEGACY_PASSWORD"):
        monkeypatch.delenv(name, raising=False)

    response = client.post("/api/migration/run", json={"dry_run": True})

    assert response.status_code == 400
    orchestrator_cls.assert_not_called()


def test_run_returns_report(client: TestClient, orchestrator_cls) -> None:
    run = MigrationRun(status=MigrationStatus.DONE, dry_run=True, shift_time_policy_version=1)
    run.result = TransformationResult()
    run.result.stats["signup"].processed = 10
    run.result.stats["signup"].created = 9
    run.result.add_error("signup", "5", "User 999 not found in migrated users")
    orchestrator_cls.return_value.run.return_value = run

    response = client.post("/api/migration/run", json={**CREDENTIALS, "dry_run": True, "download_photos": False})

    assert response.status_code == 200
    body = response.json()
    assert body["succeeded"] is True
    assert body["report"]["stats"]["signup"] == {"processed": 10, "created": 9, "skipped": 0}
    assert body["report"]["errors"] == [
        {"kind": "signup", "id": "5", "message": "User 999 not found in migrated users"}
    ]

    config = orchestrator_cls.call_args.args[0]
    assert config.options.dry_run is True
    assert config.options.download_photos is False


def test_run_failed_is_still_a_report(client: TestClient, orchestrator_cls) -> None:
    run = MigrationRun(status=MigrationStatus.FAILED, fatal_error="Login failed (HTTP 401)")
    orchestrator_cls.return_value.run.return_value = run

    body = client.post("/api/migration/run", json=CREDENTIALS).json()

    assert body["succeeded"] is False
    assert body["report"] is None
    assert body["fatal_error"] == "Login failed (HTTP 401)"
