from http import HTTPStatus

import httpx
import pytest

from ip_lookup.errors import (
    AllProvidersFailedError,
    HttpStatusError,
    InvalidTargetError,
    MissingKeyError,
    ParseError,
    RateLimitedError,
    TransportError,
    UnknownProviderError,
    UnsupportedTargetError,
)
from ip_lookup.models.request_models import Provider
from ip_lookup.orchestrator import BlockingLookupService, LookupService
from ip_lookup.transport import HttpxTransport, TransportResponse
from tests.common import FakeAsyncTransport, FakeTransport, MockClient, MockResponse, json_response

IPWHOIS_OK = {"ip": "8.8.8.8", "success": True, "country": "United States"}
IPAPI_CO_OK = {"ip": "8.8.8.8", "country_name": "United States", "city": "Mountain View"}


@pytest.mark.asyncio
async def test_pinned_provider_success() -> None:
    transport = FakeAsyncTransport(json_response(IPAPI_CO_OK))
    service = LookupService(transport)

    result = await service.lookup("8.8.8.8", Provider.ipapi_co)

    assert result.provider is Provider.ipapi_co
    assert result.city == "Mountain View"
    assert transport.calls == ["https://ipapi.co/8.8.8.8/json/"]
    assert transport.headers == [{"User-Agent": "nil"}]


@pytest.mark.asyncio
async def test_fallback_skips_failed_providers_in_order() -> None:
    """Transport failure, then malformed payload, then success: third provider answers."""
    transport = FakeAsyncTransport(
        TransportError("connection refused"),
        TransportResponse(status_code=HTTPStatus.OK, content=b"<html>"),
        json_response(IPAPI_CO_OK),
    )
    service = LookupService(transport)

    result = await service.lookup(
        "8.8.8.8", providers=[Provider.ifconfig, Provider.ipwhois, Provider.ipapi_co]
    )

    assert result.provider is Provider.ipapi_co
    assert len(transport.calls) == 3


@pytest.mark.asyncio
async def test_fallback_uses_declaration_order_by_default() -> None:
    transport = FakeAsyncTransport(
        json_response({}, HTTPStatus.SERVICE_UNAVAILABLE),
        json_response(IPWHOIS_OK),
    )
    service = LookupService(transport)

    result = await service.lookup()

    assert result.provider is Provider.ipwhois
    assert transport.calls == ["https://ifconfig.co/json", "https://ipwho.is/"]


@pytest.mark.asyncio
async def test_pinned_self_only_provider_rejects_target_without_request() -> None:
    transport = FakeAsyncTransport()
    service = LookupService(transport)

    with pytest.raises(UnsupportedTargetError) as exc_info:
        await service.lookup("8.8.8.8", Provider.ipify)

    assert exc_info.value.provider is Provider.ipify
    assert transport.calls == []


@pytest.mark.asyncio
async def test_pinned_provider_without_required_key_fails_without_request() -> None:
    transport = FakeAsyncTransport()
    service = LookupService(transport)

    with pytest.raises(MissingKeyError):
        await service.lookup("8.8.8.8", Provider.ipdata)

    assert transport.calls == []


@pytest.mark.asyncio
async def test_pinned_provider_key_is_sent() -> None:
    transport = FakeAsyncTransport(json_response({"ip": "8.8.8.8"}))
    service = LookupService(transport)

    await service.lookup("8.8.8.8", Provider.ipdata, "secret")

    assert transport.calls == ["https://api.ipdata.co/8.8.8.8?api-key=secret"]


@pytest.mark.asyncio
async def test_pinned_failure_is_not_wrapped() -> None:
    transport = FakeAsyncTransport(json_response({}, HTTPStatus.TOO_MANY_REQUESTS))
    service = LookupService(transport)

    with pytest.raises(RateLimitedError) as exc_info:
        await service.lookup_with_provider("ipapi.co", "8.8.8.8")

    assert exc_info.value.status_code == HTTPStatus.TOO_MANY_REQUESTS
    assert exc_info.value.provider is Provider.ipapi_co


@pytest.mark.asyncio
async def test_transport_failure_gets_provider_attached() -> None:
    transport = FakeAsyncTransport(TransportError("timed out"))
    service = LookupService(transport)

    with pytest.raises(TransportError) as exc_info:
        await service.lookup(None, Provider.ipinfo)

    assert exc_info.value.provider is Provider.ipinfo


@pytest.mark.asyncio
async def test_all_providers_failed_aggregates_every_cause() -> None:
    transport = FakeAsyncTransport(
        TransportError("connection reset"),
        json_response({}, HTTPStatus.INTERNAL_SERVER_ERROR),
    )
    service = LookupService(transport)

    with pytest.raises(AllProvidersFailedError) as exc_info:
        await service.lookup(
            "8.8.8.8",
            providers=[Provider.ifconfig, Provider.mullvad, Provider.abstractapi, Provider.ipwhois],
        )

    failures = exc_info.value.failures
    assert [f.provider for f in failures] == [
        Provider.ifconfig,
        Provider.mullvad,
        Provider.abstractapi,
        Provider.ipwhois,
    ]
    assert [type(f) for f in failures] == [TransportError, UnsupportedTargetError, MissingKeyError, HttpStatusError]
    assert [f.code for f in failures] == ["transport_error", "unsupported_target", "missing_key", "http_status"]
    # Pre-flight failures never reach the transport.
    assert len(transport.calls) == 2
    assert "mullvad.net" in str(exc_info.value)


@pytest.mark.asyncio
async def test_fallback_keys_come_from_keys_mapping() -> None:
    transport = FakeAsyncTransport(json_response({"ip": "8.8.8.8"}))
    service = LookupService(transport)

    result = await service.lookup("8.8.8.8", providers=["ipdata"], keys={Provider.ipdata: "k"})

    assert result.provider is Provider.ipdata
    assert transport.calls == ["https://api.ipdata.co/8.8.8.8?api-key=k"]


@pytest.mark.asyncio
async def test_empty_provider_list_fails() -> None:
    service = LookupService(FakeAsyncTransport())

    with pytest.raises(AllProvidersFailedError) as exc_info:
        await service.lookup(providers=[])

    assert exc_info.value.failures == []


@pytest.mark.asyncio
async def test_invalid_target_fails_before_any_request() -> None:
    transport = FakeAsyncTransport()
    service = LookupService(transport)

    with pytest.raises(InvalidTargetError):
        await service.lookup("999.999.999.999")

    assert transport.calls == []


@pytest.mark.asyncio
async def test_unknown_provider_fails_before_any_request() -> None:
    transport = FakeAsyncTransport()
    service = LookupService(transport)

    with pytest.raises(UnknownProviderError):
        await service.lookup(provider="ipstack")

    assert transport.calls == []


def test_blocking_service_falls_back() -> None:
    transport = FakeTransport(
        TransportError("connection refused"),
        json_response({"query": "8.8.8.8", "status": "success", "countryCode": "US"}),
    )
    service = BlockingLookupService(transport)

    result = service.lookup("8.8.8.8", providers=[Provider.ifconfig, Provider.ip_api_com])

    assert result.provider is Provider.ip_api_com
    assert result.country_code == "US"
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_blocking_and_async_produce_identical_outcomes() -> None:
    def script() -> list:
        return [
            TransportResponse(status_code=HTTPStatus.OK, content=b"{}"),
            json_response({"status": "fail", "message": "private range"}),
            json_response({}, HTTPStatus.FORBIDDEN),
        ]

    providers = [Provider.ipinfo, Provider.myip, Provider.ip_api_com, Provider.ipapi_co]

    with pytest.raises(AllProvidersFailedError) as async_exc:
        await LookupService(FakeAsyncTransport(*script())).lookup("10.0.0.1", providers=providers)
    with pytest.raises(AllProvidersFailedError) as blocking_exc:
        BlockingLookupService(FakeTransport(*script())).lookup("10.0.0.1", providers=providers)

    def summary(exc: AllProvidersFailedError) -> list:
        return [(f.provider, type(f), f.message) for f in exc.failures]

    assert summary(async_exc.value) == summary(blocking_exc.value)
    assert [type(f) for f in async_exc.value.failures][0] is ParseError


def test_blocking_lookup_with_provider() -> None:
    transport = FakeTransport(json_response({"ip": "203.0.113.9", "mullvad_exit_ip": False}))
    service = BlockingLookupService(transport)

    result = service.lookup_with_provider(Provider.mullvad)

    assert result.ip == "203.0.113.9"
    assert result.is_proxy is False


def test_fallback_continues_after_url_rejected_by_httpx(monkeypatch: pytest.MonkeyPatch) -> None:
    class _PickyClient(MockClient):
        def get(self, url: str, headers: dict[str, str] | None = None) -> MockResponse:
            if "ipdata" in url:
                raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")
            return super().get(url, headers)

    client = _PickyClient(MockResponse(status_code=HTTPStatus.OK, payload=IPWHOIS_OK))
    monkeypatch.setattr(httpx, "Client", lambda *args, **kwargs: client)
    service = BlockingLookupService(HttpxTransport())

    result = service.lookup(
        "8.8.8.8", providers=[Provider.ipdata, Provider.ipwhois], keys={Provider.ipdata: "abc"}
    )

    assert result.provider is Provider.ipwhois
    assert [url for url, _ in client.requests] == ["https://ipwho.is/8.8.8.8"]


def test_scoped_ipv6_target_is_rejected_before_any_request() -> None:
    transport = FakeTransport()

    with pytest.raises(InvalidTargetError):
        BlockingLookupService(transport).lookup("fe80::1%\tx")

    assert transport.calls == []
