from typing import Any

from ip_lookup.errors import ProviderReportedError
from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider, dig, target_suffix


class IpWhoIs(BaseProvider):
    """https://ipwho.is (docs: https://ipwhois.io/documentation)."""

    provider = Provider.ipwhois
    base_url = "https://ipwho.is"
    supports_target = True

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        return f"{self.base_url}/{target_suffix(target, '{ip}')}"

    def _handle_provider_error(self, data: dict[str, Any]) -> None:
        # { "success": false, "message": "Invalid IP address" }
        if data.get("success") is False:
            raise ProviderReportedError(str(data.get("message") or "Unknown error from ipwho.is"), self.provider)

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "ip": data.get("ip"),
            "continent": data.get("continent"),
            "country": data.get("country"),
            "country_code": data.get("country_code"),
            "region": data.get("region"),
            "region_code": data.get("region_code"),
            "postal_code": data.get("postal"),
            "city": data.get("city"),
            "latitude": data.get("latitude"),
            "longitude": data.get("longitude"),
            "time_zone": dig(data, "timezone", "id"),
            "asn": dig(data, "connection", "asn"),
            "asn_org": dig(data, "connection", "org"),
        }
