"""Integration tests for the assembled application."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from wpcloudsql.config.settings import GatewaySettings
from wpcloudsql.main import create_app
from wpcloudsql.middleware.error_handler import ConfigurationError, DatabaseUnavailableError

_SECURITY_HEADERS = {
    "x-content-type-options": "nosniff",
    "x-frame-options": "SAMEORIGIN",
    "x-xss-protection": "1; mode=block",
}


def _upstream(handler) -> httpx.AsyncClient:  # noqa: ANN001
    return httpx.AsyncClient(base_url="http://wordpress", transport=httpx.MockTransport(handler))


class TestCreateApp:
    def test_private_placeholder_aborts_startup(self, fake_database: MagicMock):
        settings = GatewaySettings(db_connection_type="private")

        with pytest.raises(ConfigurationError):
            create_app(settings, database=fake_database)

    def test_resolves_connection_eagerly(self, private_settings: GatewaySettings, fake_database: MagicMock):
        app = create_app(private_settings, database=fake_database)

        assert app.state.connection.host == "10.20.0.3:3306"
        assert app.state.settings is private_settings

    def test_builds_database_from_connection(self, settings: GatewaySettings):
        app = create_app(settings)

        assert app.state.database.engine.url.host == "127.0.0.1"
        app.state.database.dispose()

    def test_loads_settings_from_env(self, monkeypatch: pytest.MonkeyPatch, fake_database: MagicMock):
        monkeypatch.setenv("WP_DB_NAME", "blog")

        app = create_app(database=fake_database)

        assert app.state.connection.database_name == "blog"


class TestHealthCheck:
    def test_healthy_database(self, settings: GatewaySettings, fake_database: MagicMock):
        app = create_app(settings, database=fake_database, probe=lambda: "1")

        with TestClient(app) as client:
            resp = client.get("/health-check")

        assert resp.status_code == 200
        assert resp.text == "OK"
        assert resp.headers["content-type"].startswith("text/plain")

    def test_unreachable_database(self, settings: GatewaySettings, fake_database: MagicMock):
        def _refused() -> object:
            raise ConnectionRefusedError("connection refused")

        app = create_app(settings, database=fake_database, probe=_refused)

        with TestClient(app) as client:
            resp = client.get("/health-check")

        assert resp.status_code == 503
        assert resp.text == "Database connection failed"

    def test_default_probe_is_database_probe(self, settings: GatewaySettings, fake_database: MagicMock):
        app = create_app(settings, database=fake_database)

        with TestClient(app) as client:
            resp = client.get("/health-check")

        assert resp.status_code == 200
        fake_database.probe.assert_called_once_with()

    def test_health_check_is_not_forwarded(self, settings: GatewaySettings, fake_database: MagicMock):
        upstream_calls: list[httpx.Request] = []

        def _handler(request: httpx.Request) -> httpx.Response:
            upstream_calls.append(request)
            return httpx.Response(200, text="wordpress")

        app = create_app(
            settings,
            database=fake_database,
            probe=lambda: 1,
            upstream_client=_upstream(_handler),
        )

        with TestClient(app) as client:
            assert client.get("/health-check").text == "OK"
            assert client.get("/about/").text == "wordpress"

        assert [r.url.path for r in upstream_calls] == ["/about/"]

    def test_health_check_has_security_headers(self, settings: GatewaySettings, fake_database: MagicMock):
        app = create_app(settings, database=fake_database, probe=lambda: 1)

        with TestClient(app) as client:
            resp = client.get("/health-check")

        for name, value in _SECURITY_HEADERS.items():
            assert resp.headers.get_list(name) == [value]
        assert resp.headers["x-request-id"]


class TestMiddlewareStack:
    def test_unknown_path_without_upstream_is_404(self, settings: GatewaySettings, fake_database: MagicMock):
        app = create_app(settings, database=fake_database, probe=lambda: 1)

        with TestClient(app) as client:
            resp = client.get("/")

        assert resp.status_code == 404
        for name, value in _SECURITY_HEADERS.items():
            assert resp.headers.get_list(name) == [value]

    def test_upstream_header_not_overridden(self, settings: GatewaySettings, fake_database: MagicMock):
        app = create_app(
            settings,
            database=fake_database,
            probe=lambda: 1,
            upstream_client=_upstream(
                lambda r: httpx.Response(200, headers={"X-Frame-Options": "DENY"})
            ),
        )

        with TestClient(app) as client:
            resp = client.get("/embed/")

        assert resp.headers.get_list("x-frame-options") == ["DENY"]
        assert resp.headers["x-content-type-options"] == "nosniff"

    def test_oversized_upload_rejected(self, fake_database: MagicMock):
        settings = GatewaySettings(max_upload_bytes=10)
        app = create_app(
            settings,
            database=fake_database,
            probe=lambda: 1,
            upstream_client=_upstream(lambda r: httpx.Response(200)),
        )

        with TestClient(app) as client:
            resp = client.post("/wp-admin/async-upload.php", content=b"x" * 11)

        assert resp.status_code == 413
        assert resp.json()["error"] == "Request body too large"
        assert resp.headers["x-frame-options"] == "SAMEORIGIN"

    def test_chunked_upload_over_limit_rejected(self, fake_database: MagicMock):
        settings = GatewaySettings(max_upload_bytes=10)
        upstream_calls: list[httpx.Request] = []

        def _handler(request: httpx.Request) -> httpx.Response:
            upstream_calls.append(request)
            return httpx.Response(200)

        app = create_app(
            settings,
            database=fake_database,
            probe=lambda: 1,
            upstream_client=_upstream(_handler),
        )

        with TestClient(app) as client:
            resp = client.post("/wp-admin/async-upload.php", content=iter([b"x" * 6, b"x" * 6]))

        assert resp.status_code == 413
        assert resp.headers["x-frame-options"] == "SAMEORIGIN"
        assert upstream_calls == []

    def test_upload_within_limit_forwarded(self, fake_database: MagicMock):
        settings = GatewaySettings(max_upload_bytes=10)
        app = create_app(
            settings,
            database=fake_database,
            probe=lambda: 1,
            upstream_client=_upstream(lambda r: httpx.Response(201, content=r.content)),
        )

        with TestClient(app) as client:
            resp = client.post("/wp-json/wp/v2/media", content=b"x" * 10)

        assert resp.status_code == 201
        assert resp.content == b"x" * 10


class TestErrorResponses:
    def test_undecodable_upstream_body_keeps_headers(self, settings: GatewaySettings, fake_database: MagicMock):
        app = create_app(
            settings,
            database=fake_database,
            probe=lambda: 1,
            upstream_client=_upstream(
                lambda r: httpx.Response(200, headers={"content-encoding": "gzip"}, content=b"not-gzip")
            ),
        )

        with TestClient(app, raise_server_exceptions=False) as client:
            resp = client.get("/feed/")

        assert resp.status_code == 502
        assert resp.json()["error"] == "Upstream site unavailable"
        for name, value in _SECURITY_HEADERS.items():
            assert resp.headers.get_list(name) == [value]
        assert resp.headers["x-request-id"]

    def test_unexpected_error_keeps_headers(self, settings: GatewaySettings, fake_database: MagicMock):
        app = create_app(settings, database=fake_database, probe=lambda: 1)

        @app.get("/broken")
        async def _broken() -> None:
            raise RuntimeError("something unexpected")

        with TestClient(app, raise_server_exceptions=False) as client:
            resp = client.get("/broken", headers={"X-Request-ID": "req-500"})

        assert resp.status_code == 500
        assert resp.json() == {
            "success": False,
            "data": None,
            "error": "Internal server error",
            "meta": None,
        }
        for name, value in _SECURITY_HEADERS.items():
            assert resp.headers.get_list(name) == [value]
        assert resp.headers["x-request-id"] == "req-500"


class TestLifespan:
    def test_waits_for_database_on_startup(self, settings: GatewaySettings, fake_database: MagicMock):
        app = create_app(settings, database=fake_database, probe=lambda: 1)

        with TestClient(app):
            fake_database.wait_until_available.assert_called_once_with()

        fake_database.dispose.assert_called_once_with()

    def test_starts_without_database_by_default(self, settings: GatewaySettings, fake_database: MagicMock):
        fake_database.wait_until_available.side_effect = DatabaseUnavailableError(reason="refused")
        app = create_app(settings, database=fake_database, probe=lambda: 0)

        with TestClient(app) as client:
            resp = client.get("/health-check")

        assert resp.status_code == 503

    def test_logs_query_stats_in_debug(self, fake_database: MagicMock):
        settings = GatewaySettings(debug=True, save_queries=True)
        app = create_app(settings, database=fake_database, probe=lambda: 1)

        with patch("wpcloudsql.main.log_query_stats") as log_stats:
            with TestClient(app):
                pass

        log_stats.assert_called_once_with(fake_database.query_stats)

    def test_query_stats_not_logged_outside_debug(self, fake_database: MagicMock):
        settings = GatewaySettings(debug=False, save_queries=True)
        app = create_app(settings, database=fake_database, probe=lambda: 1)

        with patch("wpcloudsql.main.log_query_stats") as log_stats:
            with TestClient(app):
                pass

        log_stats.assert_not_called()
