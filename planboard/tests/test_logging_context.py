"""Tests for structured logging and request_id propagation."""

import json
import logging

from fastapi.testclient import TestClient

from planboard.core.logging import JsonFormatter, PrettyFormatter, latency_bucket_ms, log_event
from planboard.main import app


def test_request_id_in_response_and_logs(caplog):
    client = TestClient(app)
    with caplog.at_level(logging.INFO, logger="planboard"):
        response = client.get("/healthz")
    rid = response.headers.get("x-request-id")
    assert rid
    records = [r for r in caplog.records if getattr(r, "request_id", None) == rid]
    assert records, "Expected logs to contain request_id from response"
    assert len({r.request_id for r in records}) == 1


def test_plan_events_carry_plan_id(caplog):
    client = TestClient(app)
    with caplog.at_level(logging.INFO, logger="planboard"):
        response = client.post("/v1/plans", headers={"X-User-Id": "u1"}, json={"stageName": "1-7"})
    plan_id = response.json()["data"]
    uploaded = [r for r in caplog.records if r.getMessage() == "plan.uploaded"]
    assert uploaded
    assert uploaded[0].plan_id == plan_id
    assert uploaded[0].user_id == "u1"
    assert uploaded[0].request_id == response.headers["x-request-id"]


def test_log_event_truncates_extra(caplog):
    with caplog.at_level(logging.INFO, logger="planboard"):
        log_event("info", "plan.test", extra={"blob": "x" * 2000})
    record = [r for r in caplog.records if r.getMessage() == "plan.test"][0]
    assert record.blob.endswith("...<truncated>")
    assert len(record.blob) < 600


def test_json_formatter_includes_plan_fields():
    record = logging.LogRecord("planboard", logging.INFO, __file__, 1, "plan.deleted", None, None)
    record.request_id = "rid"
    record.plan_id = "p1"
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "plan.deleted"
    assert payload["request_id"] == "rid"
    assert payload["plan_id"] == "p1"


def test_pretty_formatter():
    record = logging.LogRecord("planboard", logging.WARNING, __file__, 1, "hello", None, None)
    record.request_id = None
    line = PrettyFormatter().format(record)
    assert "WARNING [planboard] hello" in line


def test_latency_buckets():
    assert latency_bucket_ms(None) == "unknown"
    assert latency_bucket_ms(5) == "<10ms"
    assert latency_bucket_ms(250) == "100-500ms"
    assert latency_bucket_ms(5000) == ">=1000ms"


def test_request_summary_names_caller_and_route(caplog):
    client = TestClient(app)
    with caplog.at_level(logging.INFO, logger="planboard"):
        client.get("/v1/plans/missing", headers={"X-User-Id": "u7", "x-request-id": "rid-7"})
    summary = [r for r in caplog.records if r.getMessage() == "request.complete"][-1]
    assert summary.request_id == "rid-7"
    assert summary.user_id == "u7"
    assert summary.method == "GET"
    assert summary.path == "/v1/plans/missing"
    assert summary.status == 404
