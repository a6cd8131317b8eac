import json
from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

import httpx

from ip_lookup.transport import TransportResponse


def json_response(payload: Any, status_code: int = HTTPStatus.OK) -> TransportResponse:
    return TransportResponse(status_code=status_code, content=json.dumps(payload).encode())


class MockResponse:
    def __init__(self, status_code: int, payload: dict[str, Any] | None = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text or json.dumps(self._payload)

    @property
    def content(self) -> bytes:
        return self.text.encode()

    def json(self) -> dict[str, Any]:
        return self._payload


class MockAsyncClient:
    """Minimal async context-manager mock for httpx.AsyncClient; records requested URLs and headers."""

    def __init__(self, response: MockResponse) -> None:
        self._response = response
        self.requests: list[tuple[str, dict[str, str]]] = []

    async def __aenter__(self) -> "MockAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str, headers: dict[str, str] | None = None) -> MockResponse:
        self.requests.append((url, dict(headers or {})))
        return self._response


class MockClient:
    """Blocking counterpart of MockAsyncClient for httpx.Client."""

    def __init__(self, response: MockResponse) -> None:
        self._response = response
        self.requests: list[tuple[str, dict[str, str]]] = []

    def __enter__(self) -> "MockClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    def get(self, url: str, headers: dict[str, str] | None = None) -> MockResponse:
        self.requests.append((url, dict(headers or {})))
        return self._response


class FailingAsyncClient:
    """Async client whose requests raise a RequestError to simulate network failure."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        pass

    async def __aenter__(self) -> "FailingAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def get(self, url: str, headers: dict[str, str] | None = None) -> MockResponse:
        raise httpx.ConnectError("Network failure", request=httpx.Request("GET", url))


class FailingClient:
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        pass

    def __enter__(self) -> "FailingClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    def get(self, url: str, headers: dict[str, str] | None = None) -> MockResponse:
        raise httpx.ReadTimeout("Timed out", request=httpx.Request("GET", url))


class FakeTransport:
    """Blocking transport answering from a script, one item per request.

    Script items are `TransportResponse`s or exceptions to raise. Every call is
    recorded in `calls` so tests can assert how many requests were made.
    """

    def __init__(self, *script: TransportResponse | Exception) -> None:
        self._script = list(script)
        self.calls: list[str] = []
        self.headers: list[dict[str, str]] = []

    def get(self, url: str, headers: Mapping[str, str]) -> TransportResponse:
        self.calls.append(url)
        self.headers.append(dict(headers))
        if not self._script:
            raise AssertionError(f"Unexpected request to {url}")
        item = self._script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeAsyncTransport(FakeTransport):
    async def get(self, url: str, headers: Mapping[str, str]) -> TransportResponse:  # type: ignore[override]
        return FakeTransport.get(self, url, headers)
