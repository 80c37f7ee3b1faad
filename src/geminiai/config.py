"""Client configuration loading and validation."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import keyring

from geminiai.exceptions import ConfigurationError

SERVICE_NAME = "geminiai"
KEY_NAME = "api_key"

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
DEFAULT_API_VERSION = "v1beta"


def get_api_key() -> str:
    """Get the Gemini API key: system keyring first, then ``GEMINI_API_KEY``.

    Returns:
        API key string.

    Raises:
        ConfigurationError: If no key is found anywhere.
    """
    api_key = keyring.get_password(SERVICE_NAME, KEY_NAME)
    if api_key:
        return api_key

    api_key = os.environ.get("GEMINI_API_KEY")
    if api_key:
        return api_key

    raise ConfigurationError(
        "Gemini API key not found.\n"
        f"Set it with: keyring set {SERVICE_NAME} {KEY_NAME}\n"
        "Or: export GEMINI_API_KEY=your-key"
    )


@dataclass(frozen=True)
class ClientConfig:
    """Settings for one :class:`~geminiai.client.GeminiClient`.

    Built once and passed explicitly; nothing in the package reads ambient
    configuration on its own.

    Attributes:
        api_key: Gemini API key, sent as the ``key`` query parameter.
        base_url: Service root; upload and file paths are appended to it.
        api_version: Path segment for the REST API (``v1beta``).
        timeout_seconds: Per-request timeout handed to httpx.
        max_retries: Transport-level retries for transient failures
            (0 disables retrying).
        retry_min_wait: Lower bound of the exponential backoff, seconds.
        retry_max_wait: Upper bound of the exponential backoff, seconds.
        forward_api_key_to_upload_url: Also send the API key on the
            single-use upload URL. Off by default; the URL is
            self-authenticating.
    """

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    api_version: str = DEFAULT_API_VERSION
    timeout_seconds: float = 60.0
    max_retries: int = 3
    retry_min_wait: float = 1.0
    retry_max_wait: float = 30.0
    forward_api_key_to_upload_url: bool = False

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ConfigurationError("api_key must be a non-empty string")
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigurationError(f"base_url must be an http(s) URL, got {self.base_url!r}")
        if self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be positive")
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be >= 0")
        if self.retry_min_wait < 0 or self.retry_max_wait < self.retry_min_wait:
            raise ConfigurationError("retry waits must satisfy 0 <= retry_min_wait <= retry_max_wait")

    @classmethod
    def from_environment(cls, **overrides: Any) -> ClientConfig:
        """Build a config whose API key comes from :func:`get_api_key`."""
        if "api_key" not in overrides:
            overrides["api_key"] = get_api_key()
        return cls(**overrides)


def load_client_config(config_path: Path | None = None) -> ClientConfig:
    """Load client configuration from JSON, falling back to defaults.

    Only recognised ``ClientConfig`` fields are read from the file. When the
    file carries no ``api_key`` the key is resolved with :func:`get_api_key`.

    Args:
        config_path: Path to a JSON file. ``None`` or a missing file means
            defaults only.

    Returns:
        A validated ClientConfig.
    """
    data: dict[str, Any] = {}
    if config_path is not None and config_path.exists():
        with open(config_path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigurationError(f"{config_path}: expected a JSON object")

    field_names = {f.name for f in fields(ClientConfig)}
    kwargs = {k: v for k, v in data.items() if k in field_names}
    return ClientConfig.from_environment(**kwargs)
