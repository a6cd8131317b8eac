from typing import Any

from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider


class IpLeak(BaseProvider):
    """https://ipleak.net JSON endpoint."""

    provider = Provider.ipleak
    base_url = "https://ipleak.net/json/"

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        return self.base_url

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "ip": data.get("ip"),
            "continent": data.get("continent_name"),
            "country": data.get("country_name"),
            "country_code": data.get("country_code"),
            "region": data.get("region_name"),
            "region_code": data.get("region_code"),
            "postal_code": data.get("postal_code"),
            "city": data.get("city_name"),
            "latitude": data.get("latitude"),
            "longitude": data.get("longitude"),
            "time_zone": data.get("time_zone"),
            "asn": data.get("as_number"),
            "asn_org": data.get("isp_name"),
            "hostname": data.get("reverse"),
        }
