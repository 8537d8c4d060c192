# Lookback API Client
# File: __init__.py
# Version: v1

"""Client for Rally's Lookback API snapshot query service."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .client import LookbackApi
from .config import LookbackConfig, LookbackConfigBuilder
from .errors import (
    AuthorizationError,
    ConfigurationError,
    ErrorKind,
    LookbackError,
    NoDataError,
    PaginationError,
    ParseError,
    ResultValidationError,
    TransportError,
)
from .query import LookbackQuery
from .results import LookbackResult

__all__ = [
    "AuthorizationError",
    "ConfigurationError",
    "ErrorKind",
    "LookbackApi",
    "LookbackConfig",
    "LookbackConfigBuilder",
    "LookbackError",
    "LookbackQuery",
    "LookbackResult",
    "NoDataError",
    "PaginationError",
    "ParseError",
    "ResultValidationError",
    "TransportError",
    "__version__",
]


def _resolve_version() -> str:
    """Resolve installed distribution version.

    Falls back to a default when running from a source tree without an
    installed distribution.
    """
    try:
        return version("lookback-api-client")
    except PackageNotFoundError:
        return "0.1.0"


__version__ = _resolve_version()
