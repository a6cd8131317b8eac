from ip_lookup.models.request_models import Provider
from ip_lookup.providers.abstractapi import AbstractApi
from ip_lookup.providers.base import BaseProvider
from ip_lookup.providers.freeipapi import FreeIpApi
from ip_lookup.providers.ifconfig import IfConfig
from ip_lookup.providers.ip_api_com import IpApiCom
from ip_lookup.providers.ipapi_co import IpApiCo
from ip_lookup.providers.ipbase import IpBase
from ip_lookup.providers.ipdata import IpData
from ip_lookup.providers.ipify import Ipify
from ip_lookup.providers.ipinfo import IpInfo
from ip_lookup.providers.ipleak import IpLeak
from ip_lookup.providers.iplocate import IpLocate
from ip_lookup.providers.ipquery import IpQuery
from ip_lookup.providers.ipwhois import IpWhoIs
from ip_lookup.providers.mullvad import Mullvad
from ip_lookup.providers.myip import MyIp

PROVIDERS_MAP: dict[Provider, type[BaseProvider]] = {
    Provider.ifconfig: IfConfig,
    Provider.ipwhois: IpWhoIs,
    Provider.ipapi_co: IpApiCo,
    Provider.ip_api_com: IpApiCom,
    Provider.ipinfo: IpInfo,
    Provider.ipquery: IpQuery,
    Provider.freeipapi: FreeIpApi,
    Provider.iplocate: IpLocate,
    Provider.ipbase: IpBase,
    Provider.myip: MyIp,
    Provider.mullvad: Mullvad,
    Provider.ipleak: IpLeak,
    Provider.ipify: Ipify,
    Provider.ipdata: IpData,
    Provider.abstractapi: AbstractApi,
}

_unregistered = [p.value for p in Provider if p not in PROVIDERS_MAP or PROVIDERS_MAP[p].provider is not p]
if _unregistered:
    raise RuntimeError(f"Providers without a matching descriptor: {', '.join(_unregistered)}")

_DESCRIPTORS: dict[Provider, BaseProvider] = {provider: cls() for provider, cls in PROVIDERS_MAP.items()}

# Fallback order when no provider is pinned.
DEFAULT_ORDER: tuple[Provider, ...] = tuple(Provider)


def resolve(provider: Provider | str) -> BaseProvider:
    """Return the descriptor for `provider`; strings go through `Provider.parse`."""
    return _DESCRIPTORS[Provider.parse(provider)]
