from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ip_lookup.models.request_models import Provider


class AppError(Exception):
    """Base application error for the IP lookup library."""


class InvalidTargetError(AppError, ValueError):
    """Raised when a lookup target is not a valid IPv4 or IPv6 address."""


class UnknownProviderError(AppError, ValueError):
    """Raised when a provider identifier does not name a known provider."""


class IpLookupError(AppError):
    """Base error for failed lookups."""


class ProviderFailure(IpLookupError):
    """A single provider could not produce a lookup response.

    The orchestrator records these per attempted provider; `provider` is filled
    in by the orchestrator when the raising code did not know it.
    """

    def __init__(self, message: str, provider: Provider | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider

    @property
    def code(self) -> str:
        return _ERROR_CODES.get(type(self), "provider_error")


class UnsupportedTargetError(ProviderFailure):
    """Raised before any request when a provider cannot look up an explicit target."""


class MissingKeyError(ProviderFailure):
    """Raised before any request when a provider requires an API key and none was given."""


class TransportError(ProviderFailure):
    """Raised when the request to a provider fails (network error, timeout)."""


class HttpStatusError(TransportError):
    """Raised when a provider answers with a non-2xx status code."""

    def __init__(self, message: str, status_code: int, provider: Provider | None = None) -> None:
        super().__init__(message, provider)
        self.status_code = status_code


class RateLimitedError(HttpStatusError):
    """Raised when a provider answers with HTTP 429."""


class ParseError(ProviderFailure):
    """Raised when a provider payload is malformed or lacks the IP address."""


class ProviderReportedError(ParseError):
    """Raised when a provider signals an error inside an otherwise valid payload."""


class AllProvidersFailedError(IpLookupError):
    """Raised when every candidate provider failed; `failures` keeps each cause in order."""

    def __init__(self, failures: list[ProviderFailure]) -> None:
        self.failures = list(failures)
        tried = ", ".join(f"{f.provider.value if f.provider else '?'}: {f.message}" for f in self.failures)
        super().__init__(f"All providers failed ({tried})" if tried else "No providers to try")


class CacheError(AppError):
    """Base error for cache persistence failures."""


class CacheIoError(CacheError):
    """Raised when the cache file cannot be read or written."""


class CacheDecryptError(CacheError):
    """Raised when the encrypted cache file fails integrity checks or decryption."""


_ERROR_CODES: dict[type, str] = {
    UnsupportedTargetError: "unsupported_target",
    MissingKeyError: "missing_key",
    TransportError: "transport_error",
    HttpStatusError: "http_status",
    RateLimitedError: "rate_limited",
    ParseError: "malformed_response",
    ProviderReportedError: "provider_error",
}
