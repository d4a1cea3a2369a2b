"""
Tests for configuration loading and startup behaviour.

The gateway must refuse to start without the provider credential, both when
launched through run_server.py and when the ASGI app is started directly.
"""

import pytest
from pathlib import Path
from unittest.mock import Mock, patch
from fastapi.testclient import TestClient

import run_server
from gemini_gateway.api.main import create_app, app_state
from gemini_gateway.api.settings import ServerSettings, config_path, load_server_settings
from gemini_gateway.models.manager import DEFAULT_CONFIG_PATH
from gemini_gateway.models.providers.base import MissingCredentialError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PORT", "HOST", "UPLOAD_DIR", "GATEWAY_CONFIG"):
        monkeypatch.delenv(name, raising=False)


class TestServerSettings:
    def test_defaults(self):
        settings = load_server_settings({})

        assert settings.port == 3000
        assert settings.host == "0.0.0.0"
        assert settings.upload_dir == Path.cwd() / "uploads"
        assert settings.cors_origins == ["*"]

    def test_values_from_config(self, tmp_path):
        settings = load_server_settings({"server": {
            "port": 8080,
            "host": "127.0.0.1",
            "upload_dir": str(tmp_path),
            "log_level": "debug",
            "cors_origins": ["http://localhost:5173"],
        }})

        assert settings.port == 8080
        assert settings.host == "127.0.0.1"
        assert settings.upload_dir == tmp_path
        assert settings.log_level == "debug"
        assert settings.cors_origins == ["http://localhost:5173"]

    def test_environment_overrides_config(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PORT", "5000")
        monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))

        settings = load_server_settings({"server": {"port": 8080, "upload_dir": "elsewhere"}})

        assert settings.port == 5000
        assert settings.upload_dir == tmp_path

    def test_invalid_port(self, monkeypatch):
        monkeypatch.setenv("PORT", "not-a-port")
        with pytest.raises(ValueError, match="Invalid port"):
            load_server_settings({})

    def test_config_path(self, monkeypatch, tmp_path):
        assert config_path() == DEFAULT_CONFIG_PATH
        monkeypatch.setenv("GATEWAY_CONFIG", str(tmp_path / "custom.yaml"))
        assert config_path() == tmp_path / "custom.yaml"


class TestRunServer:
    def test_exits_when_credential_missing(self, monkeypatch, capsys):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)

        with patch("run_server.load_dotenv"), patch("run_server.uvicorn") as mock_uvicorn:
            exit_code = run_server.main()

        assert exit_code == 1
        assert "GEMINI_API_KEY" in capsys.readouterr().err
        mock_uvicorn.run.assert_not_called()

    def test_starts_on_configured_port(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        monkeypatch.setenv("PORT", "4321")

        with patch("run_server.load_dotenv"), patch("run_server.uvicorn") as mock_uvicorn:
            exit_code = run_server.main()

        assert exit_code == 0
        kwargs = mock_uvicorn.run.call_args[1]
        assert mock_uvicorn.run.call_args[0][0] == "gemini_gateway.api.main:app"
        assert kwargs["port"] == 4321

    def test_log_level_from_config(self, monkeypatch, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "providers:\n  gemini:\n    type: gemini\n"
            "tasks:\n  text:\n    provider: gemini\n    model: gemini-2.5-flash\n    prompt_ref: generate/text@v1\n"
            "server:\n  log_level: debug\n"
        )
        monkeypatch.setenv("GATEWAY_CONFIG", str(config_file))
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")

        with patch("run_server.load_dotenv"), patch("run_server.uvicorn") as mock_uvicorn, \
                patch("run_server.logging.basicConfig") as mock_basic_config:
            exit_code = run_server.main()

        assert exit_code == 0
        assert mock_basic_config.call_args[1]["level"] == "DEBUG"
        assert mock_uvicorn.run.call_args[1]["log_level"] == "debug"


class TestLifespan:
    def test_startup_fails_without_credential(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        app = create_app(ServerSettings(upload_dir=tmp_path))

        with patch("gemini_gateway.api.main.load_dotenv"):
            with pytest.raises(MissingCredentialError, match="GEMINI_API_KEY"):
                with TestClient(app):
                    pass

    def test_startup_populates_state(self, monkeypatch, tmp_path):
        upload_dir = tmp_path / "uploads"
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        monkeypatch.setenv("UPLOAD_DIR", str(upload_dir))
        app = create_app(ServerSettings(upload_dir=upload_dir))

        with patch("gemini_gateway.api.main.load_dotenv"):
            with TestClient(app) as client:
                assert app_state["settings"].upload_dir == upload_dir
                assert upload_dir.is_dir()
                assert client.get("/").text == "OK"

        assert app_state == {}

    def test_shutdown_releases_providers(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))
        app = create_app(ServerSettings(upload_dir=tmp_path))
        provider = Mock()

        with patch("gemini_gateway.api.main.load_dotenv"):
            with TestClient(app):
                app_state["model_manager"]._providers["gemini"] = provider
                provider.cleanup.assert_not_called()

        provider.cleanup.assert_called_once()
