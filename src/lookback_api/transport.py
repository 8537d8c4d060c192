# Lookback API Client
# File: transport.py
# Version: v1

"""HTTP transport abstraction and the httpx-backed implementation.

A transport sends one POST and hands back a :class:`RawResponse` whose body is
a closable stream. Transports advertise whether they can apply credentials
through the ``supports_credentials`` flag, fixed when they are constructed.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Protocol, Tuple

import httpx
from httpx import RequestError

from .auth import AuthScope, CredentialsProvider, ScopedBasicAuth
from .config import LookbackConfig
from .errors import TransportError

logger = logging.getLogger(__name__)

# Status codes that never carry a message body.
_BODILESS_STATUS = {204, 304}


class ResponseBody(Protocol):
    """A response body stream, consumed once and closed once."""

    def read(self) -> bytes:
        ...

    def close(self) -> None:
        ...


@dataclass
class RawResponse:
    """Transport-level response: status, headers and an optional body stream."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[ResponseBody] = None

    def close(self) -> None:
        if self.body is not None:
            self.body.close()


class Transport(Protocol):
    """Minimal transport used by the request executor.

    ``apply_credentials`` is only invoked when ``supports_credentials`` is
    true; other transports are never asked to authenticate.
    """

    supports_credentials: bool

    def apply_credentials(self, config: LookbackConfig) -> None:
        ...

    def send(self, url: str, body: bytes) -> RawResponse:
        ...

    def close(self) -> None:
        ...


class HttpxResponseBody:
    """Adapts a streamed ``httpx.Response`` to :class:`ResponseBody`."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    def read(self) -> bytes:
        try:
            return self._response.read()
        except RequestError as exc:
            raise TransportError(
                f"Error reading Lookback API response from '{self._response.url}': {exc}"
            ) from exc

    def close(self) -> None:
        self._response.close()


def response_has_body(response: httpx.Response) -> bool:
    """True unless the status forbids a body or Content-Length is zero."""
    if response.status_code < 200 or response.status_code in _BODILESS_STATUS:
        return False
    content_length = response.headers.get("Content-Length")
    if content_length is not None and content_length.strip() == "0":
        return False
    return True


class HttpxTransport:
    """Transport backed by a synchronous ``httpx.Client``.

    When the transport creates its own client it supports credentials: proxy
    routing and proxy auth are baked into the client, and primary credentials
    are attached per request through :class:`ScopedBasicAuth`. A
    caller-supplied client is left untouched (``supports_credentials`` is
    false) unless ``supports_credentials=True`` is passed explicitly, in which
    case only the primary credentials are applied.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        supports_credentials: Optional[bool] = None,
        verify_tls: bool = True,
        timeout: Optional[float] = None,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self.supports_credentials = (
            self._owns_client if supports_credentials is None else bool(supports_credentials)
        )
        self.verify_tls = verify_tls
        self.timeout = timeout

        self._provider = CredentialsProvider()
        self._auth: Optional[httpx.Auth] = None
        self._proxy: Optional[httpx.Proxy] = None
        self._client_signature: Optional[tuple] = None
        # Guards credential swaps and lazy client creation across threads.
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: LookbackConfig) -> "HttpxTransport":
        return cls(verify_tls=config.verify_tls, timeout=config.timeout)

    @property
    def provider(self) -> CredentialsProvider:
        return self._provider

    @property
    def proxy(self) -> Optional[httpx.Proxy]:
        return self._proxy

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def apply_credentials(self, config: LookbackConfig) -> None:
        """Register proxy routing and scoped credentials from the config.

        A fresh provider is built and swapped in under the lock, so requests
        in flight on other threads keep the credentials they started with.
        """
        provider = CredentialsProvider()
        proxy: Optional[httpx.Proxy] = None

        if config.has_proxy_server() and config.has_proxy_credentials():
            provider.set_credentials(
                AuthScope.for_url(config.proxy_url), config.proxy_credentials
            )
        if config.has_credentials() and config.has_server():
            provider.set_credentials(
                AuthScope.for_url(config.server_url), config.credentials
            )

        auth = ScopedBasicAuth(provider) if config.has_credentials() else None

        if config.has_proxy_server() and not self._owns_client:
            logger.warning(
                "Proxy '%s' configured but the transport uses a caller-supplied "
                "httpx.Client; proxy settings are not applied.",
                config.proxy_url,
            )
        elif config.has_proxy_server():
            proxy_credentials = provider.credentials_for_url(config.proxy_url)
            proxy = httpx.Proxy(
                config.proxy_url,
                auth=proxy_credentials.as_tuple() if proxy_credentials else None,
            )

        with self._lock:
            self._provider = provider
            self._auth = auth
            self._proxy = proxy

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _client_and_auth(self) -> Tuple[httpx.Client, Optional[httpx.Auth]]:
        """Consistent (client, auth) pair for one request."""
        with self._lock:
            return self._get_client(), self._auth

    def _get_client(self) -> httpx.Client:
        """Return the client, (re)creating an owned one when the proxy changed.

        Callers hold ``self._lock``.
        """
        if not self._owns_client:
            return self._client

        signature = (
            str(self._proxy.url) if self._proxy else None,
            self._proxy.auth if self._proxy else None,
        )
        if self._client is None or self._client_signature != signature:
            if self._client is not None:
                self._client.close()
            self._client = httpx.Client(
                proxy=self._proxy,
                verify=self.verify_tls,
                timeout=self.timeout,
            )
            self._client_signature = signature
        return self._client

    def send(self, url: str, body: bytes) -> RawResponse:
        """POST ``body`` to ``url`` and return the streamed response."""
        client, auth = self._client_and_auth()
        request = client.build_request("POST", url, content=body)

        try:
            response = client.send(
                request,
                auth=auth if auth is not None else httpx.USE_CLIENT_DEFAULT,
                stream=True,
            )
        except RequestError as exc:
            raise TransportError(
                f"Error calling Lookback API at '{url}': {exc}"
            ) from exc

        headers: Dict[str, str] = dict(response.headers)
        if not response_has_body(response):
            response.close()
            return RawResponse(status_code=response.status_code, headers=headers)

        return RawResponse(
            status_code=response.status_code,
            headers=headers,
            body=HttpxResponseBody(response),
        )

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None
            self._client_signature = None
