# Lookback API Client
# File: executor.py
# Version: v1

"""Request execution and HTTP-boundary validation."""

from __future__ import annotations

import logging
import threading

from .config import LookbackConfig
from .endpoint import build_url
from .errors import AuthorizationError, NoDataError
from .transport import RawResponse, ResponseBody, Transport

logger = logging.getLogger(__name__)


def authorization_failed(response: RawResponse) -> bool:
    return response.status_code == 401


def validate_response(response: RawResponse) -> ResponseBody:
    """Gate a raw response before any JSON parsing.

    401 is the only status with protocol meaning. Any other status that
    carries a body is handed to the deserializer, since the service reports
    its errors as JSON payloads.
    """
    if authorization_failed(response):
        raise AuthorizationError(
            "Authorization failed, check username and password",
            details={"status": response.status_code},
        )
    if response.body is None:
        raise NoDataError(
            "No data received from server",
            details={"status": response.status_code},
        )
    return response.body


class RequestExecutor:
    """Turns a serialized query into one authenticated HTTP POST."""

    def __init__(self, config: LookbackConfig, transport: Transport) -> None:
        self.config = config
        self.transport = transport
        self._credentials_lock = threading.Lock()
        self._credentials_applied = False

    def build_url(self) -> str:
        return build_url(
            self.config.server_url or "",
            self.config.version_major,
            self.config.version_minor,
            self.config.workspace,
        )

    def apply_credentials(self) -> None:
        """Hand the config to the transport once; later calls are no-ops."""
        with self._credentials_lock:
            if self._credentials_applied:
                return

            if self.transport.supports_credentials:
                self.transport.apply_credentials(self.config)
            elif self.config.has_credentials() or self.config.has_proxy_server():
                # Permissive: a transport without the capability skips auth.
                logger.warning(
                    "Transport %s cannot apply credentials or proxy settings; "
                    "sending the request without them.",
                    type(self.transport).__name__,
                )
            self._credentials_applied = True

    def execute(self, request_json: str) -> RawResponse:
        """Send the query JSON and return the raw response.

        ConfigurationError is raised before any network activity when the
        workspace is missing; network failures surface as TransportError.
        """
        url = self.build_url()
        body = request_json.encode("utf-8")

        self.apply_credentials()

        logger.debug("POST %s (%d bytes)", url, len(body))
        response = self.transport.send(url, body)
        logger.debug("Lookback API answered HTTP %s", response.status_code)
        return response
