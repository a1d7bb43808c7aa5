"""Config - Process-wide request defaults and the settings file loader.

RestClientConfig holds the default timeout and the global headers. Requests
read a snapshot when they are created, so later changes never affect a
request that already exists. ``default_config`` is the shared instance used
when a client is not given its own.

Settings files are YAML with ${ENV_VAR} substitution:

    base_url: https://api.example.com
    default_timeout_ms: 10000
    headers:
      Authorization: Bearer ${API_TOKEN}
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from threading import Lock
from typing import Any

import yaml

from rest_request.models import ClientSettings

DEFAULT_TIMEOUT_MS = 30000

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


class ConfigError(Exception):
    """Raised when configuration loading fails."""


class RestClientConfig:
    """Default timeout and global headers shared by every client that uses it.

    Writes take an exclusive lock; reads return copies.

    Usage:
        config = RestClientConfig()
        config.set_default_timeout(5000).set_bearer_token("abc")
        client = BaseRestClient(fetcher, "https://api.example.com", config=config)
    """

    def __init__(
        self,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        global_headers: dict[str, str] | None = None,
    ) -> None:
        self._lock = Lock()
        self._default_timeout_ms = default_timeout_ms
        self._global_headers: dict[str, str] = dict(global_headers or {})

    @property
    def default_timeout_ms(self) -> int:
        with self._lock:
            return self._default_timeout_ms

    @property
    def global_headers(self) -> dict[str, str]:
        with self._lock:
            return dict(self._global_headers)

    def set_default_timeout(self, timeout_ms: int) -> RestClientConfig:
        """Set the timeout for requests created from now on. 0 or negative disables it."""
        with self._lock:
            self._default_timeout_ms = timeout_ms
        return self

    def set_header(self, name: str, value: str | None) -> RestClientConfig:
        """Set a global header. An empty or None value removes it."""
        with self._lock:
            if not value:
                self._global_headers.pop(name, None)
            else:
                self._global_headers[name] = value
        return self

    def set_authorization(self, auth: str | None) -> RestClientConfig:
        return self.set_header("Authorization", auth)

    def set_bearer_token(self, token: str | None) -> RestClientConfig:
        return self.set_authorization(f"Bearer {token}" if token else token)

    def reset(self) -> None:
        """Restore the default timeout and drop all global headers."""
        with self._lock:
            self._default_timeout_ms = DEFAULT_TIMEOUT_MS
            self._global_headers.clear()


default_config = RestClientConfig()


def load_client_settings(settings_path: Path) -> ClientSettings:
    """Load client settings from YAML with ${ENV_VAR} substitution."""
    if not settings_path.exists():
        raise ConfigError(f"Settings file not found: {settings_path}")

    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            raw_settings = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in settings file: {e}") from e

    if raw_settings is None:
        raw_settings = {}
    if not isinstance(raw_settings, dict):
        raise ConfigError("Settings file must be a YAML mapping")

    raw_settings = _expand_env(raw_settings, "")

    try:
        return ClientSettings.model_validate(raw_settings)
    except Exception as e:
        raise ConfigError(f"Invalid settings structure: {e}") from e


def _expand_env(node: Any, where: str) -> Any:
    """Replace ${NAME} references in every string of a parsed YAML tree.

    ``where`` is the dotted key path of ``node``, reported when a referenced
    variable is unset.
    """
    if isinstance(node, dict):
        return {key: _expand_env(item, f"{where}.{key}" if where else str(key)) for key, item in node.items()}
    if isinstance(node, list):
        return [_expand_env(item, f"{where}[{index}]") for index, item in enumerate(node)]
    if not isinstance(node, str):
        return node

    def lookup(match: re.Match) -> str:
        name = match.group(1)
        if name not in os.environ:
            raise ConfigError(f"Environment variable '{name}' referenced by '{where}' is not set")
        return os.environ[name]

    return _ENV_VAR_PATTERN.sub(lookup, node)
