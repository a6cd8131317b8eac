from typing import Any

from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider, any_flag, dig, target_suffix


class IpBase(BaseProvider):
    """https://ipbase.com (docs: https://ipbase.com/docs/info).

    The optional API key goes in the `apikey` header rather than the URL.
    """

    provider = Provider.ipbase
    base_url = "https://api.ipbase.com/v2/info"
    supports_target = True
    supports_key = True

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        return f"{self.base_url}{target_suffix(target, '?ip={ip}')}"

    def headers(self, key: str | None) -> dict[str, str]:
        return {"apikey": key} if key else {}

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        info = data.get("data")
        location = dig(info, "location")
        security = dig(info, "security")
        return {
            "ip": dig(info, "ip"),
            "continent": dig(location, "continent", "name"),
            "country": dig(location, "country", "name"),
            "country_code": dig(location, "country", "alpha2"),
            "region": dig(location, "region", "name"),
            "region_code": dig(location, "region", "alpha2"),
            "postal_code": dig(location, "zip"),
            "city": dig(location, "city", "name"),
            "latitude": dig(location, "latitude"),
            "longitude": dig(location, "longitude"),
            "time_zone": dig(info, "timezone", "id"),
            "asn": dig(info, "connection", "asn"),
            "asn_org": dig(info, "connection", "organization"),
            "hostname": dig(info, "hostname"),
            "is_proxy": any_flag(dig(security, "is_proxy"), dig(security, "is_vpn"), dig(security, "is_tor")),
        }
