"""Tests for rate limiting and audit logging middleware."""

import json
import logging
import time

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from bracket_api.public.middleware.audit_logging import AuditLogger, error_code_for_status
from bracket_api.public.settings import settings
from bracket_api.public.middleware.rate_limiting import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimitingMiddleware,
)


def _limited_app(limit=2, max_mb=0.001):
    app = FastAPI()

    @app.post("/echo")
    def echo(body: dict):
        return body

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.add_middleware(
        RateLimitingMiddleware,
        config=RateLimitConfig(rate_limit_per_minute=limit, max_request_payload_mb=max_mb),
    )
    return TestClient(app)


class TestRateLimiting:

    def test_limit_exceeded_returns_429(self):
        client = _limited_app(limit=2)
        assert client.post("/echo", json={"s": "()"}).status_code == 200
        second = client.post("/echo", json={"s": "()"})
        assert second.status_code == 200
        assert second.headers["X-RateLimit-Remaining"] == "0"

        third = client.post("/echo", json={"s": "()"})
        assert third.status_code == 429
        assert third.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        assert third.headers["X-RateLimit-Limit"] == "2"
        assert int(third.headers["Retry-After"]) >= 1

    def test_keys_are_limited_separately(self):
        client = _limited_app(limit=1)
        assert client.post("/echo", json={}, headers={"Authorization": "Bearer aaa"}).status_code == 200
        assert client.post("/echo", json={}, headers={"Authorization": "Bearer bbb"}).status_code == 200
        assert client.post("/echo", json={}, headers={"Authorization": "Bearer aaa"}).status_code == 429

    def test_health_is_never_limited(self):
        client = _limited_app(limit=1)
        for _ in range(5):
            assert client.get("/health").status_code == 200

    def test_payload_too_large(self):
        client = _limited_app(limit=100, max_mb=0.001)
        resp = client.post("/echo", json={"s": "(" * 5000})
        assert resp.status_code == 413
        assert resp.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"

    def test_in_memory_limiter_window(self):
        limiter = InMemoryRateLimiter()
        assert limiter.is_allowed("c", limit=1, window_seconds=60)
        assert not limiter.is_allowed("c", limit=1, window_seconds=60)
        assert limiter.get_remaining("c", limit=1) == 0
        assert limiter.get_remaining("other", limit=3) == 3

    def test_config_defaults_come_from_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_per_minute", 42)
        monkeypatch.setattr(settings, "max_request_payload_mb", 0.5)
        config = RateLimitConfig()
        assert config.rate_limit_per_minute == 42
        assert config.max_request_payload_mb == 0.5

    def test_explicit_zero_is_kept(self, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_per_minute", 600)
        config = RateLimitConfig(rate_limit_per_minute=0, max_request_payload_mb=0)
        assert config.rate_limit_per_minute == 0
        assert config.max_request_payload_bytes == 0

    def test_zero_limit_rejects_everything(self):
        client = _limited_app(limit=0, max_mb=1)
        resp = client.post("/echo", json={})
        assert resp.status_code == 429
        assert resp.headers["X-RateLimit-Remaining"] == "0"
        assert client.get("/health").status_code == 200

    def test_idle_clients_are_evicted(self):
        limiter = InMemoryRateLimiter()
        limiter.requests["gone"] = [1000.0]
        limiter.requests["fresh"] = [1000.0, 1050.0]
        assert limiter.evict_stale(window_seconds=60, now=1100.0) == 1
        assert set(limiter.requests) == {"fresh"}

    def test_sweep_runs_from_is_allowed(self, monkeypatch):
        limiter = InMemoryRateLimiter()
        clock = [1000.0]
        monkeypatch.setattr(time, "time", lambda: clock[0])
        limiter._last_sweep = 1000.0
        for n in range(50):
            assert limiter.is_allowed(f"client-{n}", limit=5, window_seconds=60)
        assert len(limiter.requests) == 50

        clock[0] = 1061.0
        assert limiter.is_allowed("late", limit=5, window_seconds=60)
        assert set(limiter.requests) == {"late"}

    def test_denied_client_without_history_leaves_no_key(self):
        limiter = InMemoryRateLimiter()
        assert not limiter.is_allowed("c", limit=0)
        assert "c" not in limiter.requests


class TestAuditLogging:

    def test_request_is_audited_without_raw_input(self, client, caplog):
        caplog.set_level(logging.INFO, logger="audit")
        client.post("/validate", json={"s": "((({{{[[["}, headers={"X-Request-ID": "audit-1"})

        entries = [json.loads(r.getMessage()) for r in caplog.records if r.name == "audit"]
        assert entries, "expected audit entries"
        assert all("((({{{[[[" not in json.dumps(e) for e in entries)

        http_entry = next(e for e in entries if "http_status" in e)
        assert http_entry["request_id"] == "audit-1"
        assert http_entry["endpoint"] == "/validate"
        assert http_entry["http_status"] == 200
        assert http_entry["payload_hash"].startswith("sha256:")

        op_entry = next(e for e in entries if e.get("operation") == "validate")
        assert op_entry["outcome"] == "not_balanced"
        assert op_entry["input_length"] == 9

    def test_generated_request_id_is_shared(self, client, caplog):
        caplog.set_level(logging.INFO, logger="audit")
        resp = client.post("/validate", json={"s": "()"})
        request_id = resp.headers["X-Request-ID"]

        entries = [json.loads(r.getMessage()) for r in caplog.records if r.name == "audit"]
        http_entry = next(e for e in entries if "http_status" in e)
        op_entry = next(e for e in entries if e.get("operation") == "validate")
        assert http_entry["request_id"] == request_id
        assert op_entry["request_id"] == request_id
        assert op_entry["trace_id"] == request_id

    def test_error_envelope_matches_audit_request_id(self, client, caplog):
        caplog.set_level(logging.INFO, logger="audit")
        resp = client.post("/validate", json={})
        assert resp.status_code == 422

        entries = [json.loads(r.getMessage()) for r in caplog.records if r.name == "audit"]
        http_entry = next(e for e in entries if "http_status" in e)
        assert http_entry["http_status"] == 422
        assert http_entry["request_id"] == resp.headers["X-Request-ID"] == resp.json()["trace_id"]

    def test_rejected_input_logs_error_code(self, client, caplog):
        caplog.set_level(logging.INFO, logger="audit")
        client.post("/fix", json={"s": "(x)"})
        entries = [json.loads(r.getMessage()) for r in caplog.records if r.name == "audit"]
        op_entry = next(e for e in entries if e.get("operation") == "fix")
        assert op_entry["outcome"] == "rejected"
        assert op_entry["error_code"] == "INVALID_CHARACTER"

    def test_redaction(self):
        audit = AuditLogger(enable_redaction=True)
        assert "abc.def" not in audit.redact("Bearer abc.def")
        assert "[REDACTED_EMAIL]" in audit.redact("mail me@example.com")

    def test_redaction_disabled(self):
        audit = AuditLogger(enable_redaction=False)
        assert audit.redact("me@example.com") == "me@example.com"

    def test_hash_payload(self):
        assert AuditLogger.hash_payload(b"") == "sha256:empty"
        assert AuditLogger.hash_payload(b"{}").startswith("sha256:")

    @pytest.mark.parametrize("code,expected", [
        (200, None),
        (404, "NOT_FOUND"),
        (413, "PAYLOAD_TOO_LARGE"),
        (422, "VALIDATION_ERROR"),
        (429, "RATE_LIMIT_EXCEEDED"),
        (503, "SERVER_ERROR"),
        (400, "CLIENT_ERROR"),
    ])
    def test_error_code_for_status(self, code, expected):
        assert error_code_for_status(code) == expected
