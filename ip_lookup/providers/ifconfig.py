from typing import Any

from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider, target_suffix


class IfConfig(BaseProvider):
    """https://ifconfig.co, an echoip instance."""

    provider = Provider.ifconfig
    base_url = "https://ifconfig.co"
    supports_target = True

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        return f"{self.base_url}/json{target_suffix(target, '?ip={ip}')}"

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "ip": data.get("ip"),
            # echoip only says whether the country is in the EU.
            "continent": "Europe" if data.get("country_eu") is True else None,
            "country": data.get("country"),
            "country_code": data.get("country_iso"),
            "region": data.get("region_name"),
            "region_code": data.get("region_code"),
            "postal_code": data.get("zip_code"),
            "city": data.get("city"),
            "latitude": data.get("latitude"),
            "longitude": data.get("longitude"),
            "time_zone": data.get("time_zone"),
            "asn": data.get("asn"),
            "asn_org": data.get("asn_org"),
            "hostname": data.get("hostname"),
        }
