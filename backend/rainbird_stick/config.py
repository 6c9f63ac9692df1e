"""Stick connection configuration using Pydantic Settings."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from pydantic import model_validator
from pydantic_settings import BaseSettings

from .protocol.exceptions import ConfigurationError

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"

DEFAULT_PORT = 80
DEFAULT_BASE_PATH = "/stick"
DEFAULT_TIMEOUT_MS = 5000
MIN_TIMEOUT_MS = 1000
MIN_POLL_INTERVAL_SEC = 5

CLOUD_HOST = "rdz-rbcloud.rainbird.com"
CLOUD_BASE_PATH = "/phone-api"


class StickSettings(BaseSettings):
    """Settings for one stick, loaded from RAINBIRD_* environment variables and .env."""

    # Endpoint: bare host, host:port, host/path or an http:// URL
    host: str = ""
    port: int = DEFAULT_PORT
    base_path: str = DEFAULT_BASE_PATH

    # Blank password = plaintext JSON bodies
    password: Optional[str] = None

    timeout_ms: int = DEFAULT_TIMEOUT_MS

    # Only read by external schedulers
    poll_interval_sec: int = 30

    @model_validator(mode="after")
    def _clamp_intervals(self) -> "StickSettings":
        """Non-positive timeout means the default; anything shorter than a second is raised to one."""
        if self.timeout_ms <= 0:
            self.timeout_ms = DEFAULT_TIMEOUT_MS
        self.timeout_ms = max(MIN_TIMEOUT_MS, self.timeout_ms)
        self.poll_interval_sec = max(MIN_POLL_INTERVAL_SEC, self.poll_interval_sec)
        return self

    @property
    def timeout(self) -> float:
        """Request timeout in seconds."""
        return self.timeout_ms / 1000.0

    @property
    def endpoint(self) -> "Endpoint":
        return resolve_endpoint(self.host, self.port, self.base_path)

    model_config = {"env_prefix": "RAINBIRD_", "env_file": str(_ENV_FILE), "extra": "ignore"}


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: int
    path: str

    @property
    def url(self) -> str:
        if self.port == DEFAULT_PORT:
            return f"http://{self.host}{self.path}"
        return f"http://{self.host}:{self.port}{self.path}"


def normalize_path(path: Optional[str]) -> str:
    """Blank or "/" becomes /stick; always starts with a slash."""
    effective = (path or "").strip()
    if not effective or effective == "/":
        effective = DEFAULT_BASE_PATH
    return effective if effective.startswith("/") else "/" + effective


def resolve_endpoint(host: Optional[str], port: int = DEFAULT_PORT, base_path: Optional[str] = None) -> Endpoint:
    """Turn the configured host/port/path into an HTTP endpoint.

    A port or path embedded in host wins over the separate settings.
    Raises ConfigurationError for a missing host or a non-HTTP scheme.
    """
    text = (host or "").strip()
    if not text:
        raise ConfigurationError("Rain Bird host is not configured")

    if "://" in text:
        scheme = text.split("://", 1)[0]
        if scheme.lower() != "http":
            raise ConfigurationError(f"Only HTTP connections are supported, got {scheme!r}")
        url_text = text
        explicit_path = True
    else:
        url_text = "http://" + text
        explicit_path = "/" in text

    try:
        parts = urlsplit(url_text)
        url_port = parts.port
    except ValueError as exc:
        raise ConfigurationError(f"Invalid Rain Bird host: {host}") from exc
    if not parts.hostname:
        raise ConfigurationError(f"Invalid Rain Bird host: {host}")

    effective_port = url_port or (port if port > 0 else DEFAULT_PORT)
    path = parts.path if explicit_path else base_path
    return Endpoint(host=parts.hostname, port=effective_port, path=normalize_path(path))


def cloud_settings(timeout_ms: int = DEFAULT_TIMEOUT_MS) -> StickSettings:
    """Settings for the vendor cloud endpoint that answers requestWeatherAndStatus."""
    return StickSettings(
        host=CLOUD_HOST,
        port=DEFAULT_PORT,
        base_path=CLOUD_BASE_PATH,
        password=None,
        timeout_ms=timeout_ms,
        _env_file=None,
    )
