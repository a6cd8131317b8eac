from typing import Any

from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider, any_flag, dig, target_suffix


class IpQuery(BaseProvider):
    """https://ipquery.io (docs: https://ipquery.gitbook.io/ipquery-docs)."""

    provider = Provider.ipquery
    base_url = "https://api.ipquery.io"
    supports_target = True

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        return f"{self.base_url}/{target_suffix(target, '{ip}')}?format=json"

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        location = data.get("location")
        risk = data.get("risk")
        return {
            "ip": data.get("ip"),
            "country": dig(location, "country"),
            "country_code": dig(location, "country_code"),
            "region": dig(location, "state"),
            "postal_code": dig(location, "zipcode"),
            "city": dig(location, "city"),
            "latitude": dig(location, "latitude"),
            "longitude": dig(location, "longitude"),
            "time_zone": dig(location, "timezone"),
            "asn": dig(data, "isp", "asn"),
            "asn_org": dig(data, "isp", "org"),
            "is_proxy": any_flag(dig(risk, "is_proxy"), dig(risk, "is_vpn"), dig(risk, "is_tor")),
        }
