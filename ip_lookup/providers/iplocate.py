from typing import Any

from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider, any_flag, dig, key_param, target_suffix


class IpLocate(BaseProvider):
    """https://iplocate.io; the API key is optional and raises the rate limit."""

    provider = Provider.iplocate
    base_url = "https://www.iplocate.io/api/lookup"
    supports_target = True
    supports_key = True

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        apikey = f"?{key_param('apikey', key)}" if key else ""
        return f"{self.base_url}{target_suffix(target, '/{ip}')}/json{apikey}"

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        # Newer responses nest ASN data under "asn", older ones flatten it.
        asn = data.get("asn")
        asn_org = data.get("org")
        if isinstance(asn, dict):
            asn, asn_org = asn.get("asn"), asn.get("name")

        return {
            "ip": data.get("ip"),
            "continent": data.get("continent"),
            "country": data.get("country"),
            "country_code": data.get("country_code"),
            "region": data.get("subdivision"),
            "postal_code": data.get("postal_code"),
            "city": data.get("city"),
            "latitude": data.get("latitude"),
            "longitude": data.get("longitude"),
            "time_zone": data.get("time_zone"),
            "asn": asn,
            "asn_org": asn_org,
            "is_proxy": any_flag(
                dig(data, "privacy", "is_proxy"),
                dig(data, "privacy", "is_vpn"),
                dig(data, "privacy", "is_tor"),
                dig(data, "threat", "is_proxy"),
            ),
        }
