# Lookback API Client
# File: tests/test_tasks.py
# Version: v1

"""Tests for the MCP-facing helpers in tools.tasks.

`_make_api` is patched so that no test ever talks to a real Rally server;
requests are answered by ``httpx.MockTransport`` handlers.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from lookback_api.client import LookbackApi
from lookback_api.config import LookbackConfigBuilder
from lookback_api.errors import AuthorizationError
from lookback_api.tools import tasks
from lookback_api.transport import HttpxTransport


class DummyServer:
    def __init__(self) -> None:
        self.tools: Dict[str, Any] = {}

    def tool(self, *args, **kwargs):
        def decorator(fn):
            self.tools[kwargs["name"]] = fn
            return fn

        return decorator


def _api_factory(
    handler: Callable[[httpx.Request], httpx.Response],
    workspace: str | None = "12345",
) -> Callable[[], LookbackApi]:
    def factory() -> LookbackApi:
        config = (
            LookbackConfigBuilder()
            .set_credentials("user", "pass")
            .set_workspace(workspace)
            .build()
        )
        client = httpx.Client(transport=httpx.MockTransport(handler))
        return LookbackApi(config, transport=HttpxTransport(client, supports_credentials=True))

    return factory


def _ok_handler(requests: List[Dict[str, Any]]):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        requests.append(body)
        return httpx.Response(
            200,
            json={
                "Errors": [],
                "Warnings": ["Sort on _ValidFrom is slow"],
                "TotalResultCount": 250,
                "StartIndex": body["start"],
                "PageSize": body.get("pagesize"),
                "ETLDate": "2026-10-18T00:00:00.000Z",
                "Results": [{"ObjectID": 1}, {"ObjectID": 2}],
            },
        )

    return handler


@pytest.mark.asyncio
async def test_snapshot_query_reports_paging_meta(monkeypatch):
    requests: List[Dict[str, Any]] = []
    monkeypatch.setattr(tasks, "_make_api", _api_factory(_ok_handler(requests)))

    out = await tasks.snapshot_query(
        find={"_TypeHierarchy": "Defect"},
        fields=["ObjectID"],
        sort={"_ValidFrom": 1},
        start=100,
        page_size=100,
    )

    assert out["results"] == [{"ObjectID": 1}, {"ObjectID": 2}]
    assert out["meta"]["has_more"] is True
    assert out["meta"]["next_start"] == 200
    assert out["meta"]["warnings"] == ["Sort on _ValidFrom is slow"]
    assert requests == [
        {
            "find": {"_TypeHierarchy": "Defect"},
            "fields": ["ObjectID"],
            "sort": {"_ValidFrom": 1},
            "start": 100,
            "pagesize": 100,
        }
    ]


@pytest.mark.asyncio
async def test_snapshot_query_propagates_errors(monkeypatch):
    monkeypatch.setattr(tasks, "_make_api", _api_factory(lambda r: httpx.Response(401)))

    with pytest.raises(AuthorizationError):
        await tasks.snapshot_query(find={})


@pytest.mark.asyncio
async def test_ping_without_workspace(monkeypatch):
    monkeypatch.setattr(tasks, "_make_api", _api_factory(_ok_handler([]), workspace=None))

    out = await tasks.ping()

    assert out["ok"] is False
    assert out["error"]["code"] == "CONFIGURATION_ERROR"


@pytest.mark.asyncio
async def test_ping_with_workspace(monkeypatch):
    monkeypatch.setattr(tasks, "_make_api", _api_factory(_ok_handler([])))

    out = await tasks.ping()

    assert out["ok"] is True
    assert out["url"].endswith("/workspace/12345/artifact/snapshot/query.js")


@pytest.mark.asyncio
async def test_diagnostics_healthy(monkeypatch):
    requests: List[Dict[str, Any]] = []
    monkeypatch.setattr(tasks, "_make_api", _api_factory(_ok_handler(requests)))

    result = await tasks.diagnostics()

    assert result["ok"] is True
    assert {c["name"] for c in result["checks"]} == {"config", "probe_query"}
    assert requests[0]["pagesize"] == 1
    assert "pass" not in json.dumps(result["config"])


@pytest.mark.asyncio
async def test_diagnostics_reports_error_kind(monkeypatch):
    monkeypatch.setattr(tasks, "_make_api", _api_factory(lambda r: httpx.Response(401)))

    result = await tasks.diagnostics()

    assert result["ok"] is False
    probe = next(c for c in result["checks"] if c["name"] == "probe_query")
    assert probe["error"]["code"] == "AUTHORIZATION_ERROR"


@pytest.mark.asyncio
async def test_diagnostics_stops_at_config(monkeypatch):
    monkeypatch.setattr(tasks, "_make_api", _api_factory(_ok_handler([]), workspace=None))

    result = await tasks.diagnostics()

    assert result["ok"] is False
    assert [c["name"] for c in result["checks"]] == ["config"]


@pytest.mark.asyncio
async def test_get_config_info_is_redacted(monkeypatch):
    monkeypatch.setenv("LOOKBACK_WORKSPACE", "999")
    monkeypatch.setenv("LOOKBACK_USERNAME", "me")
    monkeypatch.setenv("LOOKBACK_PASSWORD", "very-secret")
    monkeypatch.delenv("LOOKBACK_PROXY_URL", raising=False)

    info = await tasks.get_config_info()

    assert info["workspace"] == "999"
    assert info["credentials_configured"] is True
    assert "very-secret" not in json.dumps(info)


def test_register_tools_exposes_lookback_tools():
    server = DummyServer()
    tasks.register_tools(server)

    assert set(server.tools) == {
        "lookback_ping",
        "lookback_get_config_info",
        "lookback_snapshot_query",
        "lookback_diagnostics",
    }


def test_register_tools_rejects_non_server():
    with pytest.raises(ValueError):
        tasks.register_tools(object())
