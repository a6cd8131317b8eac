from typing import Any

from ip_lookup.errors import ProviderReportedError
from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider, dig


class MyIp(BaseProvider):
    """https://my-ip.io (docs: https://www.my-ip.io/api-usage). Self lookups only."""

    provider = Provider.myip
    base_url = "https://api.my-ip.io/v2/ip.json"

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        return self.base_url

    def _handle_provider_error(self, data: dict[str, Any]) -> None:
        if data.get("success") is False:
            raise ProviderReportedError(str(data.get("error") or "Unknown error from my-ip.io"), self.provider)

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "ip": data.get("ip"),
            "country": dig(data, "country", "name"),
            "country_code": dig(data, "country", "code"),
            "region": data.get("region"),
            "city": data.get("city"),
            "latitude": dig(data, "location", "lat"),
            "longitude": dig(data, "location", "lon"),
            "time_zone": data.get("timeZone"),
            "asn": dig(data, "asn", "number"),
            "asn_org": dig(data, "asn", "name"),
        }
