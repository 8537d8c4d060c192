# Lookback API Client
# File: config.py
# Version: v1

"""Configuration for the Lookback API client.

Configuration is assembled with :class:`LookbackConfigBuilder` (chainable
setters) or read from the environment, and frozen into an immutable
:class:`LookbackConfig` snapshot that every request reads from. Build the
configuration before the first request; the snapshot can then be shared
freely between threads.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional
import os

import httpx

from .auth import Credentials
from .errors import ConfigurationError

DEFAULT_SERVER_URL = "https://rally1.rallydev.com"
DEFAULT_VERSION_MAJOR = "2"
DEFAULT_VERSION_MINOR = "0"


def _parse_bool_env(name: str, default: bool = False) -> bool:
    """Parse a boolean-like environment variable.

    Accepts 1/0, true/false, yes/no, on/off (case-insensitive).
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _parse_int_env(
    name: str,
    default: int,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    """Parse an int environment variable with clamping and safe fallback."""
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        value = int(default)
    else:
        try:
            value = int(str(raw).strip())
        except ValueError:
            value = int(default)

    if min_value is not None and value < min_value:
        value = min_value
    if max_value is not None and value > max_value:
        value = max_value

    return value


def _parse_version(raw: str | None) -> tuple[str, str]:
    """Split ``"major.minor"`` into its parts; a bare major gets minor "0"."""
    if raw is None or not raw.strip():
        return DEFAULT_VERSION_MAJOR, DEFAULT_VERSION_MINOR
    major, _, minor = raw.strip().lstrip("vV").partition(".")
    return major, minor or "0"


def _validate_url(value: str, what: str) -> str:
    """Require an absolute URL with scheme and host."""
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError) as exc:
        raise ConfigurationError(f"Invalid {what} URL '{value}': {exc}") from exc

    if not url.scheme or not url.host:
        raise ConfigurationError(
            f"Invalid {what} URL '{value}': it must include the protocol "
            "and host (e.g. https://rally1.rallydev.com)."
        )
    return value


@dataclass(frozen=True)
class LookbackConfig:
    """Immutable settings snapshot consumed by the request executor."""

    server_url: Optional[str] = DEFAULT_SERVER_URL
    version_major: str = DEFAULT_VERSION_MAJOR
    version_minor: str = DEFAULT_VERSION_MINOR
    workspace: Optional[str] = None

    username: Optional[str] = None
    password: Optional[str] = None

    proxy_url: Optional[str] = None
    proxy_username: Optional[str] = None
    proxy_password: Optional[str] = None

    # Transport tuning; 0 disables the timeout altogether.
    verify_tls: bool = True
    timeout_seconds: int = 0

    # ------------------------------------------------------------------
    # Credential presence
    # ------------------------------------------------------------------

    def has_credentials(self) -> bool:
        return self.username is not None and self.password is not None

    def has_proxy_credentials(self) -> bool:
        return self.proxy_username is not None and self.proxy_password is not None

    def has_proxy_server(self) -> bool:
        return self.proxy_url is not None

    def has_server(self) -> bool:
        return self.server_url is not None

    @property
    def credentials(self) -> Credentials:
        return Credentials(username=self.username, password=self.password)

    @property
    def proxy_credentials(self) -> Credentials:
        return Credentials(username=self.proxy_username, password=self.proxy_password)

    @property
    def timeout(self) -> Optional[float]:
        return float(self.timeout_seconds) if self.timeout_seconds > 0 else None

    def redacted(self) -> Dict[str, Any]:
        """Secrets-free view of the configuration for diagnostics."""
        return {
            "server_url": self.server_url,
            "api_version": f"{self.version_major}.{self.version_minor}",
            "workspace": self.workspace,
            "credentials_configured": self.has_credentials(),
            "proxy_url": self.proxy_url,
            "proxy_credentials_configured": self.has_proxy_credentials(),
            "verify_tls": self.verify_tls,
            "timeout_seconds": self.timeout_seconds,
        }

    @classmethod
    def from_env(cls) -> "LookbackConfig":
        """Create configuration from environment variables."""
        version_major, version_minor = _parse_version(os.getenv("LOOKBACK_API_VERSION"))

        builder = (
            LookbackConfigBuilder()
            .set_server(os.getenv("LOOKBACK_SERVER_URL") or DEFAULT_SERVER_URL)
            .set_version(version_major, version_minor)
            .set_workspace(os.getenv("LOOKBACK_WORKSPACE"))
            .set_credentials(
                os.getenv("LOOKBACK_USERNAME"),
                os.getenv("LOOKBACK_PASSWORD"),
            )
            .set_proxy_credentials(
                os.getenv("LOOKBACK_PROXY_USERNAME"),
                os.getenv("LOOKBACK_PROXY_PASSWORD"),
            )
            .set_verify_tls(_parse_bool_env("LOOKBACK_VERIFY_TLS", default=True))
            .set_timeout_seconds(
                _parse_int_env(
                    "LOOKBACK_TIMEOUT_SECONDS", default=0, min_value=0, max_value=3600
                )
            )
        )

        proxy_url = os.getenv("LOOKBACK_PROXY_URL")
        if proxy_url:
            builder.set_proxy_server(proxy_url)

        return builder.build()


class LookbackConfigBuilder:
    """Chainable builder producing :class:`LookbackConfig` snapshots.

        config = (
            LookbackConfigBuilder()
            .set_credentials("myRallyUsername", "myRallyPassword")
            .set_workspace("12345")
            .build()
        )

    The builder is not thread-safe; finish configuring before calling build().
    """

    def __init__(self, base: Optional[LookbackConfig] = None) -> None:
        self._config = base or LookbackConfig()

    def _update(self, **changes: Any) -> "LookbackConfigBuilder":
        self._config = replace(self._config, **changes)
        return self

    def set_credentials(
        self, username: Optional[str], password: Optional[str]
    ) -> "LookbackConfigBuilder":
        """Set the Rally username/password (basic auth only)."""
        return self._update(username=username, password=password)

    def set_proxy_credentials(
        self, username: Optional[str], password: Optional[str]
    ) -> "LookbackConfigBuilder":
        """Set proxy basic-auth credentials; ignored unless a proxy server is set."""
        return self._update(proxy_username=username, proxy_password=password)

    def set_server(self, server: str) -> "LookbackConfigBuilder":
        """Set the Rally server, including the protocol."""
        return self._update(server_url=_validate_url(server, "server"))

    def set_proxy_server(self, server: str) -> "LookbackConfigBuilder":
        """Set the proxy server, including the protocol (e.g. http://myproxy:8080)."""
        return self._update(proxy_url=_validate_url(server, "proxy server"))

    def set_workspace(self, workspace: Optional[str]) -> "LookbackConfigBuilder":
        return self._update(workspace=workspace)

    def set_version(self, major: str, minor: str) -> "LookbackConfigBuilder":
        """Set the Lookback API version; defaults to 2.0."""
        return self._update(version_major=major, version_minor=minor)

    def set_verify_tls(self, verify: bool) -> "LookbackConfigBuilder":
        return self._update(verify_tls=bool(verify))

    def set_timeout_seconds(self, seconds: int) -> "LookbackConfigBuilder":
        return self._update(timeout_seconds=max(0, int(seconds)))

    def build(self) -> LookbackConfig:
        return self._config
