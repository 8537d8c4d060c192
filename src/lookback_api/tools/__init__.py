# Lookback API Client
# File: tools/__init__.py
# Version: v1

"""MCP tools exposing the Lookback API client."""

from __future__ import annotations

from . import tasks

__all__ = ["tasks"]
