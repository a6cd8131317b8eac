from enum import Enum
from ipaddress import ip_address
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ip_lookup.errors import InvalidTargetError, UnknownProviderError

SELF_CACHE_KEY = "self"


def _squash(value: str) -> str:
    return "".join(ch for ch in value.strip().lower() if ch not in "-_.")


def _canonical_ip(value: Any) -> str | None:
    if value is None:
        return None

    try:
        address = ip_address(str(value).strip())
    except ValueError as exc:
        raise ValueError("ip must be a valid IPv4 or IPv6 address") from exc
    # Zone ids only mean something on the local link and are not URL safe.
    if getattr(address, "scope_id", None) is not None:
        raise ValueError("ip must not carry an IPv6 zone id")
    return address.compressed


class Provider(str, Enum):
    """Supported IP geolocation providers.

    Declaration order is the default fallback order.
    """

    ifconfig = "ifconfig.co"
    ipwhois = "ipwho.is"
    ipapi_co = "ipapi.co"
    ip_api_com = "ip-api.com"
    ipinfo = "ipinfo.io"
    ipquery = "ipquery.io"
    freeipapi = "freeipapi.com"
    iplocate = "iplocate.io"
    ipbase = "ipbase.com"
    myip = "my-ip.io"
    mullvad = "mullvad.net"
    ipleak = "ipleak.net"
    ipify = "ipify.org"
    ipdata = "ipdata.co"
    abstractapi = "abstractapi.com"

    @classmethod
    def parse(cls, value: "str | Provider") -> "Provider":
        """Parse a provider value ("ipapi.co") or member name ("ipapi_co").

        Matching ignores case and the separators `-`, `_` and `.`, so "IpApiCo"
        and "ip-api.com" both resolve. Unknown identifiers are rejected here,
        before any lookup is attempted.
        """
        if isinstance(value, cls):
            return value
        wanted = _squash(str(value))
        for member in cls:
            if wanted in (_squash(member.name), _squash(member.value)):
                return member
        raise UnknownProviderError(f"Unknown provider: {value!r}")


class LookupTarget(BaseModel):
    """What to look up: the caller's own public address ("self") or an explicit IP.

    Explicit addresses are stored in canonical compressed form so equivalent
    spellings of one IPv6 address share a cache entry.
    """

    model_config = ConfigDict(frozen=True)

    ip: str | None = None

    @field_validator("ip", mode="before")
    @classmethod
    def _validate_ip(cls, value: Any) -> str | None:
        return _canonical_ip(value)

    @classmethod
    def parse(cls, value: "str | LookupTarget | None") -> "LookupTarget":
        if isinstance(value, LookupTarget):
            return value
        try:
            return cls(ip=value)
        except ValidationError as exc:
            raise InvalidTargetError(f"Invalid lookup target {value!r}: not an IPv4 or IPv6 address") from exc

    @classmethod
    def self_lookup(cls) -> "LookupTarget":
        return cls()

    @property
    def is_self(self) -> bool:
        return self.ip is None

    @property
    def cache_key(self) -> str:
        # "self" is never a valid address literal, and explicit keys carry a prefix.
        return SELF_CACHE_KEY if self.ip is None else f"ip:{self.ip}"

    def __str__(self) -> str:
        return self.ip or SELF_CACHE_KEY


class LookupOptions(BaseModel):
    """Per-call options for the lookup facade.

    - `provider` pins a single provider; `api_key` is its key.
    - Otherwise `providers` (default: every provider, in declaration order) are
      tried in sequence with keys taken from `api_keys`.
    - `force_refresh` skips the cache read; the fresh result is still cached.
    """

    provider: Provider | None = None
    providers: list[Provider] | None = None
    api_key: str | None = None
    api_keys: dict[Provider, str] = Field(default_factory=dict)
    force_refresh: bool = False

    @field_validator("provider", mode="before")
    @classmethod
    def _parse_provider(cls, value: Any) -> Provider | None:
        if value is None or isinstance(value, Provider):
            return value
        return Provider.parse(value)

    @field_validator("providers", mode="before")
    @classmethod
    def _parse_providers(cls, value: Any) -> list[Provider] | None:
        if value is None:
            return None
        return [Provider.parse(item) for item in value]

    @field_validator("api_keys", mode="before")
    @classmethod
    def _parse_api_keys(cls, value: Any) -> dict[Provider, str]:
        if not value:
            return {}
        return {Provider.parse(name): key for name, key in dict(value).items()}


class IPLookupRequest(BaseModel):
    """Query parameters of the lookup endpoint.

    If `ip` is omitted or blank, the service's own public address is looked up.
    `provider` pins one upstream provider; without it providers are tried in
    fallback order.
    """

    ip: str | None = Field(
        default=None,
        description="IPv4 or IPv6 address to look up. If omitted, the service host's public IP is used.",
        examples=["8.8.8.8", "2001:4860:4860::8888"],
    )
    provider: str | None = Field(
        default=None,
        description="Upstream provider to use for the lookup. If omitted, providers are tried in order.",
        examples=["ipapi.co", "ip-api.com"],
    )
    force_refresh: bool = Field(
        default=False,
        description="Bypass the cache read and query a provider.",
    )

    @field_validator("ip", mode="before")
    @classmethod
    def _validate_ip(cls, value: Any) -> str | None:
        """Validate that ip is either empty/None or a valid IP address (IPv4 or IPv6).

        - None or blank string -> treated as None (self lookup, no error).
        - Non-blank -> must be a valid IP literal, otherwise a validation error
          is raised and the endpoint handler is never invoked.
        """
        if value is None or not str(value).strip():
            return None
        return _canonical_ip(value)

    @field_validator("provider", mode="before")
    @classmethod
    def _validate_provider(cls, value: Any) -> str | None:
        if value is None or not str(value).strip():
            return None
        try:
            return Provider.parse(value).value
        except UnknownProviderError as exc:
            raise ValueError(str(exc)) from exc

    @property
    def target(self) -> LookupTarget:
        return LookupTarget(ip=self.ip)
