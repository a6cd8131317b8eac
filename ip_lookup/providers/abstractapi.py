from typing import Any

from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider, dig, key_param, target_suffix


class AbstractApi(BaseProvider):
    """https://abstractapi.com IP geolocation (docs: https://docs.abstractapi.com/ip-geolocation).

    Requires an API key.
    """

    provider = Provider.abstractapi
    base_url = "https://ipgeolocation.abstractapi.com/v1/"
    supports_target = True
    supports_key = True
    requires_key = True

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        return f"{self.base_url}?{key_param('api_key', key)}{target_suffix(target, '&ip_address={ip}')}"

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "ip": data.get("ip_address"),
            "continent": data.get("continent"),
            "country": data.get("country"),
            "country_code": data.get("country_code"),
            "region": data.get("region"),
            "region_code": data.get("region_iso_code"),
            "postal_code": data.get("postal_code"),
            "city": data.get("city"),
            "latitude": data.get("latitude"),
            "longitude": data.get("longitude"),
            "time_zone": dig(data, "timezone", "name"),
            "asn": dig(data, "connection", "autonomous_system_number"),
            "asn_org": dig(data, "connection", "autonomous_system_organization")
            or dig(data, "connection", "organization_name"),
            "is_proxy": dig(data, "security", "is_vpn"),
        }
