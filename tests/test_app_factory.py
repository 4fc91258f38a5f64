"""
Tests for api/app.py: create_app() factory

Verifies store wiring for both backends, demo seeding on startup, routers,
middleware (CORS, rate limiting, proxy-aware client IPs), structured JSON
logging and the error handlers.
"""
import json
import logging
import sys
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import api.app as app_module  # noqa: E402
from api.app import _JsonFormatter, _get_client_ip, _rate_bucket, create_app  # noqa: E402
from store.base import StoreError  # noqa: E402
from store.sqlite_store import SqliteRecordStore  # noqa: E402


class _FailingStore(SqliteRecordStore):
    """Raises the configured exception from every read."""

    def __init__(self, db_path, exc):
        super().__init__(db_path)
        self.exc = exc

    def list(self, kind, query=None):
        raise self.exc

    def count(self, kind):
        raise self.exc

    def describe(self):
        raise self.exc


def _failing_client(tmp_path, exc):
    app = create_app(store=_FailingStore(tmp_path / "failing.sqlite", exc))
    return TestClient(app, raise_server_exceptions=False)


def _request(client_ip, forwarded=None):
    headers = [(b"x-forwarded-for", forwarded.encode())] if forwarded else []
    return Request({"type": "http", "client": (client_ip, 1234), "headers": headers})


class TestCreateApp:
    def test_metadata(self, sqlite_store):
        app = create_app(store=sqlite_store)
        assert app.title == "CropKeeper API"
        assert app.version == "1.0.0"

    def test_registers_routes(self, sqlite_store):
        paths = {getattr(r, "path", "") for r in create_app(store=sqlite_store).routes}
        for expected in ("/health", "/health/detailed", "/api/v1/farms", "/api/v1/crops",
                         "/api/v1/tasks/{task_id}/toggle", "/api/v1/expenses/export",
                         "/api/v1/weather/{farm_id}", "/api/v1/dashboard/summary",
                         "/", "/farms", "/weather"):
            assert expected in paths

    def test_openapi_lists_api_not_pages(self, client):
        schema = client.get("/openapi.json").json()
        assert "/api/v1/farms/{farm_id}" in schema["paths"]
        assert "/farms" not in schema["paths"]

    def test_docs(self, client):
        assert client.get("/docs").status_code == 200

    @pytest.mark.parametrize("backend,filename", [("sqlite", "farm.sqlite"),
                                                  ("json", "farm.json")])
    def test_db_path_with_seeding(self, tmp_path, reset_rate_counters, backend, filename):
        app = create_app(db_path=tmp_path / filename, backend=backend, seed_demo=True)
        with TestClient(app) as client:
            body = client.get("/health").json()
            assert body["backend"] == backend
            assert body["counts"] == {"farms": 2, "crops": 4, "tasks": 3, "expenses": 3}

    def test_no_seeding_by_default(self, tmp_path, reset_rate_counters):
        app = create_app(db_path=tmp_path / "farm.sqlite", backend="sqlite", seed_demo=False)
        with TestClient(app) as client:
            assert client.get("/api/v1/farms").json()["total"] == 0

    def test_unknown_backend(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown store backend"):
            create_app(db_path=tmp_path / "farm.db", backend="mongo")


class TestMiddleware:
    def test_cors_preflight(self, client):
        resp = client.options("/api/v1/farms", headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": "POST",
        })
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"

    def test_write_rate_limit(self, client, monkeypatch):
        monkeypatch.setattr(app_module._cfg, "rate_limit_write", 2)
        draft = {"name": "A", "location": "B", "size": "1"}
        assert client.post("/api/v1/farms", json=draft).status_code == 201
        assert client.post("/api/v1/farms", json=draft).status_code == 201
        resp = client.post("/api/v1/farms", json=draft)
        assert resp.status_code == 429
        assert resp.headers["Retry-After"] == "60"
        assert resp.json() == {"error": "Too many requests", "status_code": 429}
        # reads have their own budget
        assert client.get("/api/v1/farms").status_code == 200

    def test_read_limit_is_per_kind(self, client, monkeypatch):
        monkeypatch.setattr(app_module._cfg, "rate_limit_default", 1)
        assert client.get("/api/v1/crops").status_code == 200
        assert client.get("/api/v1/crops").status_code == 429
        assert client.get("/api/v1/tasks").status_code == 200

    def test_pages_and_api_share_write_budget(self, client, monkeypatch):
        monkeypatch.setattr(app_module._cfg, "rate_limit_write", 1)
        assert client.post("/tasks/3/toggle", follow_redirects=False).status_code == 303
        assert client.post("/api/v1/tasks/3/toggle").status_code == 429
        assert client.post("/api/v1/crops", json={"name": "Oats"}).status_code != 429

    @pytest.mark.parametrize("method,path,expected", [
        ("GET", "/api/v1/farms", "read:farms"),
        ("PUT", "/api/v1/farms/3", "write:farms"),
        ("POST", "/farms/3/delete", "write:farms"),
        ("GET", "/weather", "read:weather"),
        ("GET", "/", "read:dashboard"),
    ])
    def test_bucket(self, method, path, expected):
        assert _rate_bucket(method, path) == expected

    def test_health_not_rate_limited(self, client, monkeypatch):
        monkeypatch.setattr(app_module._cfg, "rate_limit_default", 1)
        for _ in range(3):
            assert client.get("/health").status_code == 200

    def test_cleanup_drops_stale_counters(self, reset_rate_counters, monkeypatch):
        monkeypatch.setattr(app_module, "_last_cleanup", 0.0)
        app_module._rate_counters["10.0.0.1"]["read:farms"] = [time.time() - 120]
        app_module._rate_counters["10.0.0.2"]["read:farms"] = [time.time()]
        app_module._cleanup_rate_counters()
        assert "10.0.0.1" not in app_module._rate_counters
        assert "10.0.0.2" in app_module._rate_counters


class TestClientIp:
    def test_direct_ip_without_trusted_proxies(self, monkeypatch):
        monkeypatch.setattr(app_module._cfg, "trusted_proxies", set())
        assert _get_client_ip(_request("10.0.0.5", "1.2.3.4")) == "10.0.0.5"

    def test_forwarded_from_trusted_proxy(self, monkeypatch):
        monkeypatch.setattr(app_module._cfg, "trusted_proxies", {"10.0.0.5"})
        assert _get_client_ip(_request("10.0.0.5", "1.2.3.4, 10.0.0.5")) == "1.2.3.4"

    def test_forwarded_from_untrusted_peer_ignored(self, monkeypatch):
        monkeypatch.setattr(app_module._cfg, "trusted_proxies", {"10.0.0.5"})
        assert _get_client_ip(_request("10.0.0.9", "1.2.3.4")) == "10.0.0.9"

    def test_trusted_proxy_without_header(self, monkeypatch):
        monkeypatch.setattr(app_module._cfg, "trusted_proxies", {"10.0.0.5"})
        assert _get_client_ip(_request("10.0.0.5")) == "10.0.0.5"


class TestJsonFormatter:
    def test_format_with_extras(self):
        record = logging.LogRecord("cropkeeper_api", logging.INFO, __file__, 1,
                                   "request", None, None)
        record.path = "/api/v1/farms"
        record.status = 200
        data = json.loads(_JsonFormatter().format(record))
        assert data["level"] == "INFO"
        assert data["message"] == "request"
        assert data["path"] == "/api/v1/farms"
        assert data["status"] == 200
        assert "method" not in data


class TestErrorHandlers:
    def test_store_error_is_503(self, tmp_path, reset_rate_counters):
        client = _failing_client(tmp_path, StoreError("database is locked"))
        resp = client.get("/api/v1/crops")
        assert resp.status_code == 503
        assert resp.json() == {"error": "Record store unavailable",
                               "detail": "database is locked", "status_code": 503}

    def test_health_degraded(self, tmp_path, reset_rate_counters):
        client = _failing_client(tmp_path, StoreError("database is locked"))
        resp = client.get("/health")
        assert resp.status_code == 503
        assert resp.json() == {"status": "degraded", "error": "database is locked"}

    def test_value_error_is_400(self, tmp_path, reset_rate_counters):
        resp = _failing_client(tmp_path, ValueError("bad input")).get("/api/v1/tasks")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Bad request"

    def test_unexpected_error_is_500(self, tmp_path, reset_rate_counters):
        resp = _failing_client(tmp_path, RuntimeError("boom")).get("/api/v1/expenses")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error", "detail": "boom",
                               "status_code": 500}
