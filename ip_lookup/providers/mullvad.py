from typing import Any

from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider


class Mullvad(BaseProvider):
    """https://am.i.mullvad.net; reports whether the address is a Mullvad VPN exit."""

    provider = Provider.mullvad
    base_url = "https://am.i.mullvad.net/json"

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        return self.base_url

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "ip": data.get("ip"),
            "country": data.get("country"),
            "city": data.get("city"),
            "latitude": data.get("latitude"),
            "longitude": data.get("longitude"),
            "asn_org": data.get("organization"),
            "is_proxy": data.get("mullvad_exit_ip"),
        }
