from typing import Any

from ip_lookup.errors import ProviderReportedError
from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider, target_suffix


class IpApiCo(BaseProvider):
    """https://ipapi.co/ (docs: https://ipapi.co/api/)."""

    provider = Provider.ipapi_co
    base_url = "https://ipapi.co"
    supports_target = True

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        return f"{self.base_url}/{target_suffix(target, '{ip}/')}json/"

    def headers(self, key: str | None) -> dict[str, str]:
        # ipapi.co rejects some default client user agents with 403.
        return {"User-Agent": "nil"}

    def _handle_provider_error(self, data: dict[str, Any]) -> None:
        """ipapi.co embeds error information in the JSON body, sometimes with HTTP 200.

        Examples:
            { "error": true, "reason": "Invalid IP Address", "ip": "..." }
            { "error": true, "reason": "Reserved IP Address", "ip": "127.0.0.1", "reserved": true }
            { "error": true, "reason": "RateLimited", "message": "..." }
        """
        if not data.get("error"):
            return

        reason = str(data.get("reason") or data.get("message") or "Unknown error from ipapi.co")
        raise ProviderReportedError(reason, self.provider)

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "ip": data.get("ip"),
            "country": data.get("country_name"),
            "country_code": data.get("country_code") or data.get("country"),
            "region": data.get("region"),
            "region_code": data.get("region_code"),
            "postal_code": data.get("postal"),
            "city": data.get("city"),
            "latitude": data.get("latitude"),
            "longitude": data.get("longitude"),
            "time_zone": data.get("timezone"),
            "asn": data.get("asn"),
            # ipapi.co exposes organisation/ISP information via the "org" field.
            "asn_org": data.get("org"),
            "hostname": data.get("hostname"),
        }
