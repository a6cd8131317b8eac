from typing import Any

from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider, target_suffix


class FreeIpApi(BaseProvider):
    """https://freeipapi.com (docs: https://docs.freeipapi.com/response.html)."""

    provider = Provider.freeipapi
    base_url = "https://freeipapi.com"
    supports_target = True

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        return f"{self.base_url}/api/json{target_suffix(target, '/{ip}')}"

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "ip": data.get("ipAddress"),
            "continent": data.get("continent"),
            "country": data.get("countryName"),
            "country_code": data.get("countryCode"),
            "region": data.get("regionName"),
            "postal_code": data.get("zipCode"),
            "city": data.get("cityName"),
            "latitude": data.get("latitude"),
            "longitude": data.get("longitude"),
            "time_zone": data.get("timeZone"),
            "is_proxy": data.get("isProxy"),
        }
