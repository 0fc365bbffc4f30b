"""
Tests for the AI queue HTTP endpoints.
"""

import time
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from vibequeue.config.settings import Settings
from vibequeue.infra.database import Database
from vibequeue.infra.openrouter import OpenRouterClient
from vibequeue.main import create_app
from vibequeue.v1.core.exceptions import StoreError
from vibequeue.v1.infra.jobs.routes import parse_ids


def enqueue(client: TestClient, job_type: str = "echo", model: str = "m9") -> int:
    response = client.post(
        "/v1/ai-queue", json={"type": job_type, "model": model, "prompt": "say hi"}
    )
    assert response.status_code == 201
    return response.json()["data"]["id"]


def wait_for_status(client: TestClient, job_id: int, status: str) -> dict:
    """Poll the status endpoint the way the UI does."""
    deadline = time.monotonic() + 5
    while time.monotonic() < deadline:
        items = client.get(f"/v1/ai-queue/status?ids={job_id}").json()["data"]
        if items and items[0]["status"] == status:
            return items[0]
        time.sleep(0.02)
    raise AssertionError(f"Job {job_id} never reached {status}")


def test_enqueue_job(client: TestClient):
    response = client.post(
        "/v1/ai-queue", json={"type": "echo", "model": "m9", "prompt": "say hi"}
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["type"] == "echo"
    assert data["model"] == "m9"
    assert data["status"] == "pending"
    assert data["attempts"] == 0
    assert data["response"] is None


def test_enqueue_job_validation(client: TestClient):
    response = client.post("/v1/ai-queue", json={"type": "", "model": "m9"})

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["message"] == "Request validation failed"
    locs = [item["loc"] for item in error["details"]["errors"]]
    assert ["body", "type"] in locs
    assert ["body", "prompt"] in locs


def test_enqueue_job_blank_prompt(client: TestClient):
    response = client.post(
        "/v1/ai-queue", json={"type": "echo", "model": "m9", "prompt": "   "}
    )

    assert response.status_code == 422
    assert response.json()["error"]["message"] == "Empty job fields: prompt"


def test_get_job(client: TestClient):
    job_id = enqueue(client)

    response = client.get(f"/v1/ai-queue/{job_id}")

    assert response.status_code == 200
    assert response.json()["data"]["id"] == job_id


def test_get_job_not_found(client: TestClient):
    response = client.get("/v1/ai-queue/9999")

    assert response.status_code == 404
    data = response.json()
    assert data["ok"] is False
    assert data["error"]["message"] == "Job not found"


def test_status_batch(client: TestClient):
    first = enqueue(client)
    second = enqueue(client)

    response = client.get(f"/v1/ai-queue/status?ids={second},abc,9999,{first}")

    assert response.status_code == 200
    items = response.json()["data"]
    assert [item["id"] for item in items] == [first, second]
    assert all(item["status"] == "pending" for item in items)
    assert all(item["error"] is None for item in items)


def test_status_without_valid_ids(client: TestClient):
    response = client.get(
        "/v1/ai-queue/status", params={"ids": "abc,-1,0,²,2147483648"}
    )

    assert response.status_code == 200
    assert response.json()["data"] == []


def test_parse_ids_drops_invalid_parts():
    assert parse_ids(" 3,²,abc,,0,-2,2147483648,1") == [3, 1]
    assert parse_ids("2147483647") == [2147483647]


def test_out_of_range_job_id_is_rejected(client: TestClient):
    assert client.get("/v1/ai-queue/2147483648").status_code == 422
    assert client.post("/v1/ai-queue/process/2147483648").status_code == 422


def test_process_job(client: TestClient):
    """Manual trigger runs a job outside the allow-list."""
    job_id = enqueue(client, model="m9")

    response = client.post(f"/v1/ai-queue/process/{job_id}")

    assert response.status_code == 202
    data = response.json()["data"]
    assert data == {
        "id": job_id,
        "accepted": True,
        "reason": None,
        "status": "processing",
    }

    wait_for_status(client, job_id, "completed")
    job = client.get(f"/v1/ai-queue/{job_id}").json()["data"]
    assert job["response"] == "hi"
    assert job["attempts"] == 1


def test_process_failed_job_again(client: TestClient):
    job_id = enqueue(client, job_type="fail")

    client.post(f"/v1/ai-queue/process/{job_id}")
    failed = wait_for_status(client, job_id, "failed")
    assert failed["error"] == "boom"

    response = client.post(f"/v1/ai-queue/process/{job_id}")
    assert response.status_code == 202

    # The retry resets the job to pending before answering
    wait_for_status(client, job_id, "failed")
    job = client.get(f"/v1/ai-queue/{job_id}").json()["data"]
    assert job["attempts"] == 2
    assert job["error"] == "boom"


def test_process_job_not_found(client: TestClient):
    response = client.post("/v1/ai-queue/process/9999")

    assert response.status_code == 404
    data = response.json()
    assert data["ok"] is False
    assert data["error"]["message"] == "Job not found"


def test_process_completed_job_conflict(client: TestClient):
    job_id = enqueue(client)
    client.post(f"/v1/ai-queue/process/{job_id}")
    wait_for_status(client, job_id, "completed")

    response = client.post(f"/v1/ai-queue/process/{job_id}")

    assert response.status_code == 409
    assert response.json()["error"]["message"] == "Job is completed, cannot process"


def test_processor_autostart_drains_allow_listed_jobs(settings: Settings, registry):
    """With autostart on, allow-listed jobs complete without a manual trigger."""
    settings = settings.model_copy(update={"ai_queue_autostart": True})

    with TestClient(create_app(settings, registry)) as client:
        health = client.get("/v1/healthz").json()["data"]
        assert health["queue"]["processor_running"] is True

        allowed = enqueue(client, model="m1")
        other = enqueue(client, model="m9")

        wait_for_status(client, allowed, "completed")
        status = client.get(f"/v1/ai-queue/status?ids={other}").json()["data"]
        assert status[0]["status"] == "pending"


@pytest.mark.asyncio
async def test_startup_recovers_processing_jobs(settings: Settings, registry, make_job):
    """Jobs left in processing are back to pending once the app has started."""
    orphan = await make_job(status="processing", attempts=1)

    with TestClient(create_app(settings, registry)) as client:
        job = client.get(f"/v1/ai-queue/{orphan.id}").json()["data"]

    assert job["status"] == "pending"
    assert job["attempts"] == 1


def test_failed_startup_closes_resources(settings: Settings, registry, monkeypatch):
    """Resources opened before a startup failure are still released."""
    database_close = AsyncMock()
    openrouter_close = AsyncMock()
    monkeypatch.setattr(Database, "close", database_close)
    monkeypatch.setattr(OpenRouterClient, "close", openrouter_close)
    monkeypatch.setattr(
        "vibequeue.main.reset_stale_jobs",
        AsyncMock(side_effect=StoreError("Job store reset_processing failed")),
    )

    with pytest.raises(StoreError):
        with TestClient(create_app(settings, registry)):
            pass

    openrouter_close.assert_awaited_once()
    database_close.assert_awaited_once()
