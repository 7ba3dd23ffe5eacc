"""Tests for structured logging and request_id propagation."""

import json
import logging

from looped.core.logging import JsonFormatter, PrettyFormatter, log_event, request_id_ctx_var


def test_request_id_in_response_and_logs(client, caplog):
    with caplog.at_level(logging.INFO, logger="looped"):
        response = client.get("/healthz")
    rid = response.headers.get("x-request-id")
    assert rid
    records = [r for r in caplog.records if getattr(r, "request_id", None) == rid]
    assert records, "Expected logs to contain request_id from response"
    assert len({r.request_id for r in records}) == 1


def test_incoming_request_id_is_echoed(client):
    response = client.get("/healthz", headers={"x-request-id": "rid-123"})
    assert response.headers["x-request-id"] == "rid-123"


def test_request_id_in_error_response(client, user_headers):
    response = client.get("/v1/challenges/non-existent", headers=user_headers)
    rid = response.headers.get("x-request-id")
    assert response.status_code == 404
    assert rid
    payload = response.json()
    assert payload["error"]["request_id"] == rid
    assert payload["error"]["code"] == "not_found"


def test_unauthenticated_error_shape(client):
    response = client.get("/v1/streaks/current")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "unauthorized"


def test_log_event_carries_context_and_truncates(caplog):
    token = request_id_ctx_var.set("ctx-rid")
    try:
        with caplog.at_level(logging.INFO, logger="looped"):
            log_event("info", "unit.event", user_id="u1", event_type="unit.test", extra={"blob": "x" * 900})
    finally:
        request_id_ctx_var.reset(token)
    record = next(r for r in caplog.records if r.getMessage() == "unit.event")
    assert record.request_id == "ctx-rid"
    assert record.user_id == "u1"
    assert record.event_type == "unit.test"
    assert record.fields["blob"].endswith("...<truncated>")


def _streak_record(caplog):
    with caplog.at_level(logging.INFO, logger="looped"):
        log_event(
            "info",
            "streak.updated",
            user_id="u1",
            event_type="streak.continued",
            extra={"current_streak": 3, "day": "2024-01-10"},
        )
    return next(r for r in caplog.records if r.getMessage() == "streak.updated")


def test_json_formatter_keeps_event_fields(caplog):
    line = json.loads(JsonFormatter().format(_streak_record(caplog)))
    assert line["message"] == "streak.updated"
    assert line["user_id"] == "u1"
    assert line["event_type"] == "streak.continued"
    assert line["fields"] == {"current_streak": 3, "day": "2024-01-10"}


def test_pretty_formatter_appends_event_fields(caplog):
    text = PrettyFormatter().format(_streak_record(caplog))
    assert "streak.updated" in text
    assert "user_id=u1" in text
    assert "current_streak=3" in text
    assert "day=2024-01-10" in text


def test_request_log_carries_status_and_path(client, caplog):
    with caplog.at_level(logging.INFO, logger="looped"):
        client.get("/healthz")
    record = next(r for r in caplog.records if r.getMessage() == "request.complete")
    assert record.fields["path"] == "/healthz"
    assert record.fields["status"] == 200
    assert record.fields["method"] == "GET"
