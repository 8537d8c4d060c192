# Lookback API Client
# File: errors.py
# Version: v1

"""Error taxonomy for the Lookback API client.

Every failure raised by the client is a :class:`LookbackError` carrying an
:class:`ErrorKind` tag, so callers can branch on ``exc.kind`` (or on the
subclass) instead of catching a generic runtime error.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    CONFIGURATION = "CONFIGURATION_ERROR"
    TRANSPORT = "TRANSPORT_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    NO_DATA = "NO_DATA_ERROR"
    PARSE = "PARSE_ERROR"
    RESULT_VALIDATION = "RESULT_VALIDATION_ERROR"
    PAGINATION = "PAGINATION_ERROR"


class LookbackError(Exception):
    """Base class for all Lookback API client errors."""

    kind: ErrorKind = ErrorKind.CONFIGURATION

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to an LLM/JSON friendly error shape."""
        result: Dict[str, Any] = {"code": self.kind.value, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result


class ConfigurationError(LookbackError):
    """Client configuration is incomplete or malformed (e.g. no workspace)."""

    kind = ErrorKind.CONFIGURATION


class TransportError(LookbackError):
    """Network or IO failure while talking to the Lookback API."""

    kind = ErrorKind.TRANSPORT


class AuthorizationError(LookbackError):
    """The server answered HTTP 401."""

    kind = ErrorKind.AUTHORIZATION


class NoDataError(LookbackError):
    """The server answered without a response body."""

    kind = ErrorKind.NO_DATA


class ParseError(LookbackError):
    """The response body is not well-formed JSON or not a snapshot result."""

    kind = ErrorKind.PARSE


class ResultValidationError(LookbackError):
    """The deserialized result is inconsistent with the query that produced it."""

    kind = ErrorKind.RESULT_VALIDATION


class PaginationError(LookbackError):
    """A continuation query was requested for a result without a further page."""

    kind = ErrorKind.PAGINATION
