"""
Tests for client configuration loading.
"""

import pytest

from firebase_auth_session.config import IDENTITY_TOOLKIT_URL, SECURE_TOKEN_URL, AuthConfig
from firebase_auth_session.exceptions import ConfigurationError

ENV_VARS = [
    "FIREBASE_API_KEY",
    "FIREBASE_IDENTITY_TOOLKIT_URL",
    "FIREBASE_SECURE_TOKEN_URL",
    "FIREBASE_REQUEST_URI",
    "FIREBASE_TIMEOUT_SECONDS",
    "FIREBASE_EXPIRY_SKEW_SECONDS",
    "FIREBASE_JSON_LOGGING",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestAuthConfig:
    def test_defaults(self):
        config = AuthConfig(api_key="key")

        assert config.identity_toolkit_url == IDENTITY_TOOLKIT_URL
        assert config.secure_token_url == SECURE_TOKEN_URL
        assert config.timeout_seconds == 30.0
        assert config.expiry_skew_seconds == 10.0
        assert config.json_logging is False

    @pytest.mark.parametrize(
        "overrides,setting",
        [
            ({"api_key": ""}, "api_key"),
            ({"timeout_seconds": 0}, "timeout_seconds"),
            ({"expiry_skew_seconds": -1}, "expiry_skew_seconds"),
        ],
    )
    def test_invalid_values(self, overrides, setting):
        values = {"api_key": "key", **overrides}

        with pytest.raises(ConfigurationError) as exc_info:
            AuthConfig(**values)

        assert exc_info.value.setting == setting


class TestFromEnv:
    def test_requires_api_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            AuthConfig.from_env()

        assert "FIREBASE_API_KEY" in exc_info.value.message

    def test_reads_all_settings(self, monkeypatch):
        monkeypatch.setenv("FIREBASE_API_KEY", "env-key")
        monkeypatch.setenv("FIREBASE_IDENTITY_TOOLKIT_URL", "http://localhost:9099/v1")
        monkeypatch.setenv("FIREBASE_SECURE_TOKEN_URL", "http://localhost:9099/st")
        monkeypatch.setenv("FIREBASE_REQUEST_URI", "https://app.example.com")
        monkeypatch.setenv("FIREBASE_TIMEOUT_SECONDS", "7.5")
        monkeypatch.setenv("FIREBASE_EXPIRY_SKEW_SECONDS", "60")

        config = AuthConfig.from_env()

        assert config.api_key == "env-key"
        assert config.identity_toolkit_url == "http://localhost:9099/v1"
        assert config.secure_token_url == "http://localhost:9099/st"
        assert config.request_uri == "https://app.example.com"
        assert config.timeout_seconds == 7.5
        assert config.expiry_skew_seconds == 60.0

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("off", False)])
    def test_json_logging_flag(self, monkeypatch, raw, expected):
        monkeypatch.setenv("FIREBASE_API_KEY", "env-key")
        monkeypatch.setenv("FIREBASE_JSON_LOGGING", raw)

        assert AuthConfig.from_env().json_logging is expected

    def test_invalid_json_logging_flag(self, monkeypatch):
        monkeypatch.setenv("FIREBASE_API_KEY", "env-key")
        monkeypatch.setenv("FIREBASE_JSON_LOGGING", "sometimes")

        with pytest.raises(ConfigurationError) as exc_info:
            AuthConfig.from_env()

        assert exc_info.value.setting == "FIREBASE_JSON_LOGGING"

    def test_non_numeric_timeout(self, monkeypatch):
        monkeypatch.setenv("FIREBASE_API_KEY", "env-key")
        monkeypatch.setenv("FIREBASE_TIMEOUT_SECONDS", "soon")

        with pytest.raises(ConfigurationError) as exc_info:
            AuthConfig.from_env()

        assert exc_info.value.setting == "FIREBASE_TIMEOUT_SECONDS"


class TestFromYaml:
    def test_reads_auth_section(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            "auth:\n"
            "  api_key: yaml-key\n"
            "  timeout_seconds: 15\n"
            "  expiry_skew_seconds: 30\n"
            "  json_logging: true\n"
            "  unrelated: ignored\n"
            "storage:\n"
            "  mode: local\n"
        )

        config = AuthConfig.from_yaml(path)

        assert config.api_key == "yaml-key"
        assert config.timeout_seconds == 15
        assert config.expiry_skew_seconds == 30
        assert config.json_logging is True

    def test_missing_api_key(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("auth:\n  timeout_seconds: 15\n")

        with pytest.raises(ConfigurationError) as exc_info:
            AuthConfig.from_yaml(path)

        assert exc_info.value.setting == "api_key"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            AuthConfig.from_yaml(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("auth: [unclosed\n")

        with pytest.raises(ConfigurationError):
            AuthConfig.from_yaml(path)

    @pytest.mark.parametrize("content", ["- a\n- b\n", "auth: just-a-string\n"])
    def test_wrong_shape(self, tmp_path, content):
        path = tmp_path / "settings.yaml"
        path.write_text(content)

        with pytest.raises(ConfigurationError):
            AuthConfig.from_yaml(path)
