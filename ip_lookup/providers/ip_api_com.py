from typing import Any

from ip_lookup.errors import ProviderReportedError
from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider, target_suffix

# Bit mask selecting every field ip-api.com offers on the free endpoint.
_FIELDS = 66846719


class IpApiCom(BaseProvider):
    """http://ip-api.com JSON API (docs: https://ip-api.com/docs/api:json).

    The free endpoint is HTTP only.
    """

    provider = Provider.ip_api_com
    base_url = "http://ip-api.com"
    supports_target = True

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        return f"{self.base_url}/json/{target_suffix(target, '{ip}')}?fields={_FIELDS}"

    def _handle_provider_error(self, data: dict[str, Any]) -> None:
        """ip-api.com reports errors with `status: "fail"` and a `message`."""
        status_value = str(data.get("status") or "success").lower()

        if status_value == "success":
            return

        message = str(data.get("message") or "Unknown error from ip-api.com")
        raise ProviderReportedError(message, self.provider)

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "ip": data.get("query"),
            "continent": data.get("continent"),
            "country": data.get("country"),
            "country_code": data.get("countryCode"),
            "region": data.get("regionName"),
            "region_code": data.get("region"),
            "postal_code": data.get("zip"),
            "city": data.get("city"),
            "latitude": data.get("lat"),
            "longitude": data.get("lon"),
            "time_zone": data.get("timezone"),
            "asn": data.get("as"),
            "asn_org": data.get("org") or data.get("isp"),
            "hostname": data.get("reverse"),
            "is_proxy": data.get("proxy"),
        }
