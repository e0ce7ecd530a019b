"""
Tests for services/liveness.py
"""

import pytest

from afk_rotator.core.errors import ConfigError
from afk_rotator.services.liveness import (
    DEFAULT_PORT,
    LivenessConfig,
    create_app,
    load_liveness_config,
)


class TestLivenessConfig:

    def test_default_port(self, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        assert LivenessConfig().port == DEFAULT_PORT == 3000

    def test_port_from_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        assert LivenessConfig().port == 8080

    @pytest.mark.parametrize("value", ["abc", "", "0", "70000", "30.5"])
    def test_bad_port_in_environment(self, monkeypatch, value):
        """A bad $PORT is a configuration error, raised before anything starts."""
        monkeypatch.setenv("PORT", value)
        with pytest.raises(ConfigError):
            load_liveness_config()

    def test_explicit_port_overrides_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "not-a-port")
        assert load_liveness_config(8081).port == 8081

    def test_bad_explicit_port(self):
        with pytest.raises(ConfigError):
            load_liveness_config(99999)


class TestLivenessApp:
    """Tests for the FastAPI app."""

    @pytest.fixture
    def client(self):
        from fastapi.testclient import TestClient

        with TestClient(create_app(LivenessConfig(port=3000))) as client:
            yield client

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "Bot is running"
        assert response.headers["content-type"].startswith("text/plain")

    def test_unknown_path(self, client):
        assert client.get("/status").status_code == 404

    def test_startup_logged(self, caplog):
        from fastapi.testclient import TestClient

        with caplog.at_level("INFO"):
            with TestClient(create_app(LivenessConfig(port=4321))):
                pass
        assert "Server is running on port 4321" in caplog.text
