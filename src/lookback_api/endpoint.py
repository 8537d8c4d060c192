# Lookback API Client
# File: endpoint.py
# Version: v1

"""Composition of the snapshot query endpoint URL."""

from __future__ import annotations

from typing import Optional

from .errors import ConfigurationError

# Path template agreed with the Lookback API service; do not alter.
SNAPSHOT_QUERY_PATH = (
    "/analytics/{version}/service/rally/workspace/{workspace}"
    "/artifact/snapshot/query.js"
)


def build_api_version(version_major: str, version_minor: str) -> str:
    """Return the ``v<major>.<minor>`` path segment.

    Values are interpolated verbatim; no numeric validation happens here.
    """
    return f"v{version_major}.{version_minor}"


def build_url(
    server_url: str,
    version_major: str,
    version_minor: str,
    workspace: Optional[str],
) -> str:
    """Build the snapshot query URL for a workspace.

    Raises ConfigurationError when no workspace is configured, so the check
    always happens before any network activity.
    """
    if not workspace:
        raise ConfigurationError("Workspace is required to execute query")

    base_url = str(server_url).rstrip("/")
    path = SNAPSHOT_QUERY_PATH.format(
        version=build_api_version(version_major, version_minor),
        workspace=workspace,
    )
    return f"{base_url}{path}"
