from typing import Any

from ip_lookup.errors import ProviderReportedError
from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider, any_flag, dig, key_param


class IpData(BaseProvider):
    """https://ipdata.co (docs: https://docs.ipdata.co/docs). Requires an API key."""

    provider = Provider.ipdata
    base_url = "https://api.ipdata.co"
    supports_target = True
    supports_key = True
    requires_key = True

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        return f"{self.base_url}/{target.ip or ''}?{key_param('api-key', key)}"

    def _handle_provider_error(self, data: dict[str, Any]) -> None:
        # Errors come back as { "message": "..." } without an "ip" field.
        if "ip" not in data and data.get("message"):
            raise ProviderReportedError(str(data["message"]), self.provider)

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        threat = data.get("threat")
        return {
            "ip": data.get("ip"),
            "continent": data.get("continent_name"),
            "country": data.get("country_name"),
            "country_code": data.get("country_code"),
            "region": data.get("region"),
            "region_code": data.get("region_code"),
            "postal_code": data.get("postal"),
            "city": data.get("city"),
            "latitude": data.get("latitude"),
            "longitude": data.get("longitude"),
            "time_zone": dig(data, "time_zone", "name"),
            "asn": dig(data, "asn", "asn"),
            "asn_org": dig(data, "asn", "name"),
            "is_proxy": any_flag(dig(threat, "is_proxy"), dig(threat, "is_vpn"), dig(threat, "is_tor")),
        }
