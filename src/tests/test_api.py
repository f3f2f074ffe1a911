import logging

import pytest
from fastapi.testclient import TestClient

from config import build_settings
from main import create_app


@pytest.fixture
def client(store, job_queue):
    app = create_app(build_settings({}), store=store, job_queue=job_queue)
    return TestClient(app)


def test_health_check(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Trace-Id"]


def test_submit_scan_creates_pending_record_and_job(client, store, job_queue):
    resp = client.post("/scans", json={"repo_url": "https://github.com/org/repo"})
    assert resp.status_code == 202
    data = resp.json()
    assert data["status"] == "PENDING"

    assert store.find_by_id(data["scan_id"]).repository_url == "https://github.com/org/repo"
    message = job_queue.dequeue(timeout=0)
    assert message.scan_id == data["scan_id"]
    assert message.repository_url == "https://github.com/org/repo"


@pytest.mark.parametrize("url", [
    "https://gitlab.com/org/repo",
    "https://github.com/org",
    "github.com/org/repo; rm -rf /",
    "not a url",
])
def test_submit_scan_rejects_invalid_urls(client, job_queue, url):
    resp = client.post("/scans", json={"repo_url": url})
    assert resp.status_code == 422
    assert job_queue.pending_count() == 0


def test_submit_scan_accepts_git_suffix(client):
    resp = client.post("/scans", json={"repo_url": "https://github.com/org/repo.git"})
    assert resp.status_code == 202


def test_scan_history(client, store):
    first = store.create("https://github.com/org/a")
    store.create("https://github.com/org/b")
    store.mark_processing(first.id)

    resp = client.get("/scans")
    assert resp.status_code == 200
    assert len(resp.json()) == 2

    resp = client.get("/scans?status=PROCESSING")
    assert [s["id"] for s in resp.json()] == [first.id]


def test_scan_history_rejects_unknown_status(client):
    assert client.get("/scans?status=DONE").status_code == 422


def test_get_scan_not_found(client):
    resp = client.get("/scans/doesnotexist")
    assert resp.status_code == 404


def test_get_completed_scan_includes_report_and_grade(client, store):
    scan = store.create("https://github.com/org/repo")
    store.mark_processing(scan.id)
    report = {
        "metrics": {"security_rating": "2.0"},
        "findings": [{
            "key": "AYx-1",
            "title": "Remove this hard-coded password.",
            "description": "Severity: BLOCKER - File: scan_x:settings.py",
            "severity": "BLOCKER",
            "category": "VULNERABILITY",
        }],
        "severity_counts": {"BLOCKER": 1},
        "completed_at": "2026-10-19T12:00:00+00:00",
    }
    store.mark_completed(scan.id, 80, report, "http://localhost:9000/dashboard?id=scan_x")

    resp = client.get(f"/scans/{scan.id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "COMPLETED"
    assert data["score"] == 80
    assert data["grade"] == "B"
    assert data["report"]["findings"][0]["severity"] == "BLOCKER"
    assert data["result_url"] == "http://localhost:9000/dashboard?id=scan_x"


def test_get_failed_scan_has_no_score(client, store):
    scan = store.create("https://github.com/org/repo")
    store.mark_processing(scan.id)
    store.mark_failed(scan.id, "IngestionTimeout: gave up")

    data = client.get(f"/scans/{scan.id}").json()
    assert data["status"] == "FAILED"
    assert data["score"] is None
    assert data["grade"] is None
    assert data["report"] is None
    assert data["error"] == "IngestionTimeout: gave up"


def test_request_logs_go_through_module_loggers(client, caplog):
    caplog.set_level(logging.INFO)

    resp = client.post("/scans", json={"repo_url": "https://github.com/org/repo"})

    scan_id = resp.json()["scan_id"]
    by_logger = {(r.name, r.getMessage().split("]")[0]) for r in caplog.records}
    assert ("api.routes", f"[scan_id={scan_id}") in by_logger
    assert any(r.name == "main" and "Incoming request: POST" in r.getMessage() for r in caplog.records)
    assert not any(r.name == "root" for r in caplog.records)
