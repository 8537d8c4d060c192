# Lookback API Client
# File: tests/test_sanity.py
# Version: v1

"""Basic sanity tests for package wiring."""

import lookback_api
from lookback_api.client import LookbackApi
from lookback_api.config import LookbackConfig
from lookback_api.transport import HttpxTransport


def test_config_from_env_minimal(monkeypatch) -> None:
    for name in ("LOOKBACK_SERVER_URL", "LOOKBACK_WORKSPACE", "LOOKBACK_PROXY_URL"):
        monkeypatch.delenv(name, raising=False)

    config = LookbackConfig.from_env()
    assert config is not None
    assert config.server_url == "https://rally1.rallydev.com"


def test_api_defaults_to_httpx_transport() -> None:
    with LookbackApi() as api:
        assert isinstance(api.transport, HttpxTransport)
        assert api.transport.supports_credentials is True
        assert api.new_snapshot_query().api is api


def test_version_is_a_string() -> None:
    assert isinstance(lookback_api.__version__, str)
