from typing import Any

from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider, key_param, target_suffix


def _split_loc(loc: Any) -> tuple[str | None, str | None]:
    """ipinfo.io reports coordinates as a single "lat,lon" string."""
    if not isinstance(loc, str):
        return None, None
    parts = loc.split(",")
    if len(parts) != 2:
        return None, None
    return parts[0].strip(), parts[1].strip()


class IpInfo(BaseProvider):
    """https://ipinfo.io; works without a token at a lower rate limit."""

    provider = Provider.ipinfo
    base_url = "https://ipinfo.io"
    supports_target = True
    supports_key = True

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        token = f"?{key_param('token', key)}" if key else ""
        return f"{self.base_url}/{target_suffix(target, '{ip}/')}json{token}"

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        latitude, longitude = _split_loc(data.get("loc"))
        # "org" is e.g. "AS13335 Cloudflare, Inc."
        org = data.get("org")
        asn, asn_org = None, org
        if isinstance(org, str) and org.startswith("AS") and " " in org:
            asn, asn_org = org.split(" ", 1)

        return {
            "ip": data.get("ip"),
            # Only the ISO code is reported.
            "country_code": data.get("country"),
            "region": data.get("region"),
            "postal_code": data.get("postal"),
            "city": data.get("city"),
            "latitude": latitude,
            "longitude": longitude,
            "time_zone": data.get("timezone"),
            "asn": asn,
            "asn_org": asn_org,
            "hostname": data.get("hostname"),
        }
