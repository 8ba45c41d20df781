"""Tests for the Turborepo remote cache API."""

import secrets
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from fakes import FakeBackendClient, FakeCacheService, make_settings
from turbogha.cache import CacheMediator
from turbogha.errors import OperationError
from turbogha.server.main import app
from turbogha.server.routes.artifacts import set_mediator
from turbogha.storage.client import get_cache_client
from turbogha.storage.models import ReserveResult


@pytest.fixture
def server_settings(tmp_path):
    """Filesystem-mode settings without a server token."""
    settings = make_settings(tmp_path, ACTIONS_CACHE_URL="", ACTIONS_RUNTIME_TOKEN="")
    with patch("turbogha.server.routes.artifacts.settings", settings), patch(
        "turbogha.server.routes.health.settings", settings
    ), patch("turbogha.server.main.settings", settings):
        yield settings


@pytest.fixture
def fs_client(server_settings):
    """Test client backed by the filesystem cache."""
    set_mediator(CacheMediator(server_settings))
    yield TestClient(app)
    set_mediator(None)


class TestStatus:
    """Test service info endpoints."""

    def test_root(self, fs_client):
        """Test the root endpoint."""
        response = fs_client.get("/")
        assert response.status_code == 200
        assert response.json()["mode"] == "filesystem"

    def test_artifacts_status(self, fs_client):
        """Test the artifacts status endpoint."""
        response = fs_client.get("/v8/artifacts/status")
        assert response.status_code == 200
        assert response.json() == {"status": "enabled"}

    def test_health(self, fs_client, tmp_path):
        """Test the health endpoint."""
        response = fs_client.get("/health")
        assert response.status_code == 200
        services = response.json()["services"]
        assert services["cache"] == {"status": "not_configured", "mode": "filesystem"}
        assert services["temp_dir"] == {"status": "healthy", "path": str(tmp_path)}

    def test_events_accepted(self, fs_client):
        """Test usage events are accepted."""
        response = fs_client.post("/v8/artifacts/events", json=[{"source": "LOCAL", "event": "HIT"}])
        assert response.status_code == 200


class TestArtifacts:
    """Test artifact upload and download."""

    def test_download_missing(self, fs_client):
        """Test a missing artifact returns 404."""
        response = fs_client.get("/v8/artifacts/abc123")
        assert response.status_code == 404
        assert "abc123" in response.json()["error"]

    def test_upload_then_download(self, fs_client, tmp_path):
        """Test an uploaded artifact downloads with its bytes."""
        response = fs_client.put(
            "/v8/artifacts/abc123",
            content=b"\x01\x02\x03",
            headers={"Content-Type": "application/octet-stream"},
        )
        assert response.status_code == 200
        assert response.json() == {"urls": ["abc123"]}
        assert (tmp_path / "abc123.tg.bin").read_bytes() == b"\x01\x02\x03"

        response = fs_client.get("/v8/artifacts/abc123")
        assert response.status_code == 200
        assert response.content == b"\x01\x02\x03"
        assert response.headers["content-length"] == "3"
        assert "x-artifact-tag" not in response.headers

    def test_tag_round_trip_remote(self, tmp_path):
        """Test the artifact tag round-trips through the remote service."""
        settings = make_settings(tmp_path)
        service = FakeCacheService()
        set_mediator(
            CacheMediator(
                settings,
                client_factory=lambda s: get_cache_client(s, transport=service.transport),
            )
        )
        try:
            with patch("turbogha.server.routes.artifacts.settings", settings):
                client = TestClient(app)
                response = client.put(
                    "/v8/artifacts/abc123",
                    content=b"artifact",
                    headers={"x-artifact-tag": "linux-x64"},
                )
                assert response.status_code == 200

                response = client.get("/v8/artifacts/abc123")
        finally:
            set_mediator(None)

        assert response.status_code == 200
        assert response.content == b"artifact"
        assert response.headers["x-artifact-tag"] == "linux-x64"

    def test_operation_error_is_bad_gateway(self, tmp_path):
        """Test backend failures map to 502."""
        settings = make_settings(tmp_path)
        backend = FakeBackendClient(reserve_result=ReserveResult.conflict())
        backend.reserve.side_effect = OperationError("Unable to reserve cache", status_code=400)
        set_mediator(CacheMediator(settings, client_factory=backend.factory))
        try:
            with patch("turbogha.server.routes.artifacts.settings", settings):
                response = TestClient(app).put("/v8/artifacts/abc123", content=b"data")
        finally:
            set_mediator(None)

        assert response.status_code == 502
        assert response.json()["status_code"] == 400


class TestAuth:
    """Test the optional server token."""

    @pytest.fixture
    def token_client(self, tmp_path):
        settings = make_settings(
            tmp_path, ACTIONS_CACHE_URL="", ACTIONS_RUNTIME_TOKEN="", TURBOGHA_SERVER_TOKEN="secret"
        )
        set_mediator(CacheMediator(settings))
        with patch("turbogha.server.routes.artifacts.settings", settings):
            yield TestClient(app)
        set_mediator(None)

    def test_missing_token(self, token_client):
        """Test a request without a token is rejected."""
        response = token_client.get("/v8/artifacts/status")
        assert response.status_code == 401

    def test_wrong_token(self, token_client):
        """Test a wrong token is rejected."""
        response = token_client.get(
            "/v8/artifacts/status", headers={"Authorization": "Bearer nope"}
        )
        assert response.status_code == 401

    def test_valid_token(self, token_client):
        """Test a valid token is accepted."""
        response = token_client.get(
            "/v8/artifacts/status", headers={"Authorization": "Bearer secret"}
        )
        assert response.status_code == 200

    def test_token_compared_in_constant_time(self, token_client):
        """Test the token is checked with a constant-time comparison."""
        with patch(
            "turbogha.server.routes.artifacts.secrets.compare_digest",
            wraps=secrets.compare_digest,
        ) as mock_compare:
            response = token_client.get(
                "/v8/artifacts/status", headers={"Authorization": "Bearer secrex"}
            )

        assert response.status_code == 401
        mock_compare.assert_called_once_with(b"secrex", b"secret")
