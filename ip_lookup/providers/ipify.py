from typing import Any

from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider


class Ipify(BaseProvider):
    """https://www.ipify.org; returns the address only."""

    provider = Provider.ipify
    base_url = "https://api64.ipify.org"

    def endpoint(self, target: LookupTarget, key: str | None) -> str:
        return f"{self.base_url}/?format=json"

    def _normalize_payload(self, data: dict[str, Any]) -> dict[str, Any]:
        return {"ip": data.get("ip")}
