from ipaddress import ip_address
from typing import Any

from pydantic import BaseModel, field_validator

from ip_lookup.models.request_models import Provider

_TEXT_FIELDS = (
    "continent",
    "country",
    "country_code",
    "region",
    "region_code",
    "postal_code",
    "city",
    "time_zone",
    "asn",
    "asn_org",
    "hostname",
)


class LookupResponse(BaseModel):
    """Normalized lookup result shared by every provider.

    Only `ip` is guaranteed. `None` means the provider did not report a field;
    values a provider did report (even empty strings) are kept as given.
    """

    ip: str
    continent: str | None = None
    country: str | None = None
    country_code: str | None = None
    region: str | None = None
    region_code: str | None = None
    postal_code: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    time_zone: str | None = None
    # Autonomous system number and organization.
    asn: str | None = None
    asn_org: str | None = None
    hostname: str | None = None
    is_proxy: bool | None = None
    provider: Provider

    @field_validator("ip", mode="before")
    @classmethod
    def _validate_ip(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("ip must be a string")
        return ip_address(value.strip()).compressed

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        """Numbers become strings (ASNs are often integers); other non-strings are unknown."""
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str):
            return value
        return None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_lat_lon(cls, value: Any) -> float | None:
        """Allow latitude/longitude to be provided as strings, numbers, or null.

        Some providers return coordinates as strings. Out-of-range values are
        kept as reported; unparseable ones degrade to None.
        """
        if value is None or isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @field_validator("is_proxy", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool | None:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            # flags sent as "TRUE"/"false" strings
            return value.lower() == "true"
        return None
