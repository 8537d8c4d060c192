# Lookback API Client
# File: tools/tasks.py
# Version: v1
#
# NOTE: This module is the single place where we define the logic exposed as
# MCP tools. The stdio transport simply calls `register_tools(server)`.

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Optional

from ..client import LookbackApi
from ..config import LookbackConfig
from ..errors import LookbackError
from ..results import LookbackResult


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _make_error(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Small, LLM-friendly error shape used by diagnostics."""
    err: Dict[str, Any] = {"code": code, "message": message}
    if details:
        err["details"] = details
    return err


def _make_api() -> LookbackApi:
    """Create a LookbackApi from environment variables.

    Tests replace this with a no-arg lambda returning a fake or a client over
    ``httpx.MockTransport``.
    """
    return LookbackApi.from_env()


def _page_meta(result: LookbackResult) -> Dict[str, Any]:
    return {
        "total_result_count": result.total_result_count,
        "start_index": result.start_index,
        "page_size": result.page_size,
        "has_more": result.has_more_pages(),
        "next_start": result.next_start_index(),
        "etl_date": result.etl_date,
        "warnings": result.warnings or [],
    }


def _run_query(
    api: LookbackApi,
    find: Dict[str, Any],
    fields: Optional[List[str]],
    hydrate: Optional[List[str]],
    sort: Optional[Dict[str, int]],
    start: int,
    page_size: Optional[int],
) -> LookbackResult:
    query = api.new_snapshot_query().set_find(find).set_start(start).set_page_size(page_size)
    if fields:
        query.require_fields(*fields)
    if hydrate:
        query.hydrate_fields(*hydrate)
    for field_name, order in (sort or {}).items():
        query.sort_by(field_name, int(order))
    return api.execute_query(query)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


async def ping() -> Dict[str, Any]:
    api = _make_api()
    cfg = api.config
    try:
        url = api.executor.build_url()
    except LookbackError as exc:
        return {"ok": False, "error": exc.to_dict()}
    return {"ok": cfg.has_server(), "url": url}


async def get_config_info() -> Dict[str, Any]:
    return LookbackConfig.from_env().redacted()


async def snapshot_query(
    find: Dict[str, Any],
    fields: Optional[List[str]] = None,
    hydrate: Optional[List[str]] = None,
    sort: Optional[Dict[str, int]] = None,
    start: int = 0,
    page_size: Optional[int] = 100,
) -> Dict[str, Any]:
    """Run one page of a snapshot query.

    Errors propagate as LookbackError subclasses; FastMCP reports them to the
    caller.
    """
    api = _make_api()
    try:
        result = await asyncio.to_thread(
            _run_query, api, find, fields, hydrate, sort, start, page_size
        )
    finally:
        api.close()

    rows = result.results or []
    return {
        "summary": f"Fetched {len(rows)} snapshots.",
        "results": rows,
        "meta": _page_meta(result),
    }


async def diagnostics() -> Dict[str, Any]:
    started = time.time()
    checks: List[Dict[str, Any]] = []
    overall_ok = True

    # Config / client init
    t0 = time.time()
    try:
        api = _make_api()
        api.executor.build_url()
        checks.append(
            {"name": "config", "ok": True, "error": None, "elapsed_ms": int((time.time() - t0) * 1000)}
        )
    except LookbackError as exc:
        checks.append(
            {
                "name": "config",
                "ok": False,
                "error": _make_error(exc.kind.value, exc.message, exc.details),
                "elapsed_ms": int((time.time() - t0) * 1000),
            }
        )
        return {
            "ok": False,
            "checks": checks,
            "meta": {"elapsed_ms": int((time.time() - started) * 1000)},
        }

    # Probe query: a single record is enough to prove auth and workspace.
    t0 = time.time()
    try:
        result = await asyncio.to_thread(
            _run_query, api, {"ObjectID": {"$exists": True}}, ["ObjectID"], None, None, 0, 1
        )
        checks.append(
            {
                "name": "probe_query",
                "ok": True,
                "total_result_count": result.total_result_count,
                "error": None,
                "elapsed_ms": int((time.time() - t0) * 1000),
            }
        )
    except LookbackError as exc:
        overall_ok = False
        checks.append(
            {
                "name": "probe_query",
                "ok": False,
                "error": _make_error(exc.kind.value, exc.message, exc.details),
                "elapsed_ms": int((time.time() - t0) * 1000),
            }
        )
    finally:
        api.close()

    return {
        "ok": overall_ok,
        "config": api.config.redacted(),
        "checks": checks,
        "meta": {"elapsed_ms": int((time.time() - started) * 1000)},
    }


# ---------------------------------------------------------------------------
# MCP tool registration
# ---------------------------------------------------------------------------


def register_tools(server: Any) -> None:
    """Register MCP tools on an MCP Server-like instance."""
    if server is None or not hasattr(server, "tool"):
        raise ValueError(
            "register_tools(server) expects an MCP Server-like object that exposes a .tool() decorator."
        )

    @server.tool(name="lookback_ping", description="Check that the Lookback API endpoint can be built from config.")
    async def mcp_ping() -> Dict[str, Any]:
        return await ping()

    @server.tool(
        name="lookback_get_config_info",
        description="Return the Lookback API client configuration without secrets.",
    )
    async def mcp_get_config_info() -> Dict[str, Any]:
        return await get_config_info()

    @server.tool(
        name="lookback_snapshot_query",
        description="Run one page of a Lookback API snapshot query (find / fields / hydrate / sort / paging).",
    )
    async def mcp_snapshot_query(
        find: Dict[str, Any],
        fields: Optional[List[str]] = None,
        hydrate: Optional[List[str]] = None,
        sort: Optional[Dict[str, int]] = None,
        start: int = 0,
        page_size: Optional[int] = 100,
    ) -> Dict[str, Any]:
        return await snapshot_query(
            find=find,
            fields=fields,
            hydrate=hydrate,
            sort=sort,
            start=start,
            page_size=page_size,
        )

    @server.tool(
        name="lookback_diagnostics",
        description="Check configuration and run a one-record probe query against the Lookback API.",
    )
    async def mcp_diagnostics() -> Dict[str, Any]:
        return await diagnostics()
