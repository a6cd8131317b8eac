import json
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import httpx
from pydantic import ValidationError

from ip_lookup.errors import ParseError
from ip_lookup.models.common import LookupResponse
from ip_lookup.models.request_models import LookupTarget, Provider


class BaseProvider(ABC):
    """Static descriptor for one IP geolocation provider.

    Concrete providers declare their capabilities, build the request URL and map
    their provider-specific payload onto the fields of `LookupResponse`. They do
    no I/O; the orchestrator performs the request and hands the body to `parse`.
    """

    provider: ClassVar[Provider]
    base_url: ClassVar[str]
    supports_target: ClassVar[bool] = False
    supports_key: ClassVar[bool] = False
    requires_key: ClassVar[bool] = False

    @abstractmethod
    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        """Build the request URL for `target` (self when `target.ip` is None)."""
        raise NotImplementedError

    def headers(self, key: str | None) -> dict[str, str]:
        """Extra request headers, e.g. header-based API key authentication."""
        return {}

    def parse(self, raw: bytes) -> LookupResponse:
        """Decode a response body into a `LookupResponse`.

        Raises `ParseError` when the body is not a JSON object, reports an error,
        or lacks a usable IP address. Every other field degrades to None.
        """
        data = self._parse_json(raw)
        self._handle_provider_error(data)
        fields = self._normalize_payload(data)
        try:
            return LookupResponse(provider=self.provider, **fields)
        except ValidationError as exc:
            raise ParseError(f"Malformed {self.provider.value} response: {exc.errors()[0]['msg']}", self.provider) from exc

    def _handle_provider_error(self, data: dict[str, Any]) -> None:
        """Raise `ProviderReportedError` if the payload signals an error. Most providers use HTTP status instead."""

    @abstractmethod
    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        """Map the provider payload onto `LookupResponse` field names."""
        raise NotImplementedError

    def _parse_json(self, raw: bytes) -> dict[str, Any]:
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise ParseError(f"Failed to decode {self.provider.value} response as JSON: {exc}", self.provider) from exc
        if not isinstance(data, dict):
            raise ParseError(f"Expected a JSON object from {self.provider.value}", self.provider)
        return data


def dig(data: Any, *path: str) -> Any:
    """Follow `path` through nested dicts, returning None where a level is missing."""
    for name in path:
        if not isinstance(data, dict):
            return None
        data = data.get(name)
    return data


def any_flag(*flags: Any) -> bool | None:
    """Combine proxy/vpn/tor style flags; None when the provider reported none of them."""
    reported = [flag for flag in flags if isinstance(flag, bool)]
    if not reported:
        return None
    return any(reported)


def target_suffix(target: LookupTarget, template: str) -> str:
    """Render `template` with the target address, or "" for a self lookup."""
    return template.format(ip=target.ip) if target.ip else ""


def key_param(name: str, key: str | None) -> str:
    """`name=<key>` with the key percent-encoded, or "" when there is no key."""
    return str(httpx.QueryParams({name: key})) if key else ""
