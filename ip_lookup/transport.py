from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from ip_lookup.errors import TransportError
from ip_lookup.models.request_models import Provider

DEFAULT_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class PreparedRequest:
    """A single GET to one provider, built before any I/O happens."""

    provider: Provider
    url: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    content: bytes


class AsyncTransport(Protocol):
    async def get(self, url: str, headers: Mapping[str, str]) -> TransportResponse: ...


class BlockingTransport(Protocol):
    def get(self, url: str, headers: Mapping[str, str]) -> TransportResponse: ...


class HttpxAsyncTransport:
    """Non-blocking transport: one `httpx.AsyncClient` GET per call.

    The timeout is the only deadline applied to a provider attempt.
    """

    def __init__(self, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self._timeout_seconds = timeout_seconds

    async def get(self, url: str, headers: Mapping[str, str]) -> TransportResponse:
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, follow_redirects=True) as client:
                response = await client.get(url, headers=dict(headers))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"Request to IP provider failed: {repr(exc)}") from exc
        return TransportResponse(status_code=response.status_code, content=response.content)


class HttpxTransport:
    """Blocking transport: one `httpx.Client` GET per call."""

    def __init__(self, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self._timeout_seconds = timeout_seconds

    def get(self, url: str, headers: Mapping[str, str]) -> TransportResponse:
        try:
            with httpx.Client(timeout=self._timeout_seconds, follow_redirects=True) as client:
                response = client.get(url, headers=dict(headers))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"Request to IP provider failed: {repr(exc)}") from exc
        return TransportResponse(status_code=response.status_code, content=response.content)
