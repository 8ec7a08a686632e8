"""
Client configuration.

Settings can come from the environment or from the ``auth`` section of a
YAML settings file:

```yaml
auth:
  api_key: "AIza..."
  timeout_seconds: 15
  expiry_skew_seconds: 30
  json_logging: true
```
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1"


@dataclass
class AuthConfig:
    """Configuration for talking to the identity backend."""

    api_key: str
    identity_toolkit_url: str = IDENTITY_TOOLKIT_URL
    secure_token_url: str = SECURE_TOKEN_URL
    request_uri: str = "http://localhost"  # Redirect URI sent with OAuth exchanges
    timeout_seconds: float = 30.0
    expiry_skew_seconds: float = 10.0
    json_logging: bool = False  # Emit package logs as JSON via logging_utils

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ConfigurationError("api_key", "must not be empty")
        if self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds", "must be positive")
        if self.expiry_skew_seconds < 0:
            raise ConfigurationError("expiry_skew_seconds", "must not be negative")

    @classmethod
    def from_env(cls) -> AuthConfig:
        """Create config from environment variables.

        Required env vars:
            FIREBASE_API_KEY: Web API key of the project

        Optional env vars:
            FIREBASE_IDENTITY_TOOLKIT_URL: Identity Toolkit base URL
            FIREBASE_SECURE_TOKEN_URL: Secure Token base URL
            FIREBASE_REQUEST_URI: Redirect URI for OAuth exchanges
            FIREBASE_TIMEOUT_SECONDS: Per-request timeout (default: 30)
            FIREBASE_EXPIRY_SKEW_SECONDS: Expiry margin (default: 10)
            FIREBASE_JSON_LOGGING: "true" to log as JSON (default: false)
        """
        api_key = os.environ.get("FIREBASE_API_KEY")
        if not api_key:
            raise ConfigurationError("api_key", "FIREBASE_API_KEY not set")

        return cls(
            api_key=api_key,
            identity_toolkit_url=os.environ.get(
                "FIREBASE_IDENTITY_TOOLKIT_URL", IDENTITY_TOOLKIT_URL
            ),
            secure_token_url=os.environ.get("FIREBASE_SECURE_TOKEN_URL", SECURE_TOKEN_URL),
            request_uri=os.environ.get("FIREBASE_REQUEST_URI", "http://localhost"),
            timeout_seconds=_float_env("FIREBASE_TIMEOUT_SECONDS", 30.0),
            expiry_skew_seconds=_float_env("FIREBASE_EXPIRY_SKEW_SECONDS", 10.0),
            json_logging=_bool_env("FIREBASE_JSON_LOGGING"),
        )

    @classmethod
    def from_yaml(cls, config_path: Path) -> AuthConfig:
        """Create config from the ``auth`` section of a YAML file.

        Unknown keys in the section are ignored.
        """
        section = _load_config(config_path).get("auth") or {}
        if not isinstance(section, dict):
            raise ConfigurationError("auth", f"expected a mapping in {config_path}")

        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in section.items() if key in known}
        if "api_key" not in values:
            raise ConfigurationError("api_key", f"auth.api_key missing in {config_path}")
        return cls(**values)


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(name, f"not a number: {raw!r}") from None


def _bool_env(name: str) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if raw in ("", "0", "false", "no", "off"):
        return False
    if raw in ("1", "true", "yes", "on"):
        return True
    raise ConfigurationError(name, f"not a boolean: {raw!r}")


def _load_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from YAML file."""
    try:
        content = config_path.read_text()
    except OSError as e:
        raise ConfigurationError(str(config_path), f"cannot read settings file: {e}") from e

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(str(config_path), f"invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(str(config_path), "top level must be a mapping")
    return data
