# Lookback API Client
# File: auth.py
# Version: v1

"""Basic-auth credentials scoped by host, port and realm.

Only HTTP Basic authentication is supported, both for the Rally server and
for an optional proxy. Credentials are registered in a
:class:`CredentialsProvider` against an :class:`AuthScope`; a scope whose
port or realm is ``None`` matches any port or realm.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Generator, Optional
import base64

import httpx

ANY_PORT: Optional[int] = None
ANY_REALM: Optional[str] = None

_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class Credentials:
    """Plain username/password pair. No normalisation is applied."""

    username: Optional[str]
    password: Optional[str]

    def basic_header(self) -> str:
        # HTTP Basic Authorization header: base64(username:password)
        raw_credentials = f"{self.username or ''}:{self.password or ''}"
        basic_token = base64.b64encode(raw_credentials.encode("utf-8")).decode("ascii")
        return f"Basic {basic_token}"

    def as_tuple(self) -> tuple[str, str]:
        return (self.username or "", self.password or "")


def _effective_port(url: httpx.URL) -> Optional[int]:
    if url.port is not None:
        return url.port
    return _DEFAULT_PORTS.get(url.scheme)


@dataclass(frozen=True)
class AuthScope:
    """Protection space a set of credentials applies to."""

    host: str
    port: Optional[int] = ANY_PORT
    realm: Optional[str] = ANY_REALM

    @classmethod
    def for_url(cls, url: str | httpx.URL, realm: Optional[str] = ANY_REALM) -> "AuthScope":
        """Scope for a configured URL.

        An URL without an explicit port yields a scope matching any port.
        """
        parsed = httpx.URL(url) if isinstance(url, str) else url
        return cls(host=parsed.host.lower(), port=parsed.port, realm=realm)

    def matches(self, host: str, port: Optional[int], realm: Optional[str] = None) -> bool:
        if self.host != host.lower():
            return False
        if self.port is not ANY_PORT and self.port != port:
            return False
        if self.realm is not ANY_REALM and self.realm != realm:
            return False
        return True


class CredentialsProvider:
    """In-memory registry of credentials keyed by :class:`AuthScope`."""

    def __init__(self) -> None:
        self._credentials: Dict[AuthScope, Credentials] = {}

    def set_credentials(self, scope: AuthScope, credentials: Credentials) -> None:
        self._credentials[scope] = credentials

    def get_credentials(
        self,
        host: str,
        port: Optional[int] = None,
        realm: Optional[str] = None,
    ) -> Optional[Credentials]:
        """Return credentials for the first scope matching host/port/realm."""
        for scope, credentials in self._credentials.items():
            if scope.matches(host, port, realm):
                return credentials
        return None

    def credentials_for_url(self, url: str | httpx.URL) -> Optional[Credentials]:
        parsed = httpx.URL(url) if isinstance(url, str) else url
        return self.get_credentials(parsed.host, _effective_port(parsed))

    def clear(self) -> None:
        self._credentials.clear()

    def __len__(self) -> int:
        return len(self._credentials)


class ScopedBasicAuth(httpx.Auth):
    """httpx auth flow that sends Basic credentials only to matching hosts.

    Unlike ``httpx.BasicAuth`` the header is only attached when the request's
    host/port falls inside a registered scope, so credentials never leak to
    other hosts (e.g. after a redirect).
    """

    def __init__(self, provider: CredentialsProvider) -> None:
        self.provider = provider

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        credentials = self.provider.credentials_for_url(request.url)
        if credentials is not None:
            request.headers["Authorization"] = credentials.basic_header()
        yield request
