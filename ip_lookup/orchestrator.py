"""Provider selection and fallback.

The selection algorithm is written once, as a generator that yields the request
it wants performed and receives the transport response back. `LookupService`
drives it with an async transport and `BlockingLookupService` with a blocking
one; nothing else differs between the two modes.
"""

from collections.abc import Generator, Iterable, Mapping
from http import HTTPStatus

from ip_lookup.errors import (
    AllProvidersFailedError,
    HttpStatusError,
    MissingKeyError,
    ProviderFailure,
    RateLimitedError,
    UnsupportedTargetError,
)
from ip_lookup.logger import logger
from ip_lookup.models.common import LookupResponse
from ip_lookup.models.request_models import LookupTarget, Provider
from ip_lookup.providers.base import BaseProvider
from ip_lookup.providers.registry import DEFAULT_ORDER, resolve
from ip_lookup.transport import (
    AsyncTransport,
    BlockingTransport,
    HttpxAsyncTransport,
    HttpxTransport,
    PreparedRequest,
    TransportResponse,
)

LookupPlan = Generator[PreparedRequest, TransportResponse, LookupResponse]
TargetLike = LookupTarget | str | None


def _check_status(provider: Provider, response: TransportResponse) -> None:
    status_code = response.status_code
    if status_code == HTTPStatus.TOO_MANY_REQUESTS:
        raise RateLimitedError(
            f"{provider.value} rate limit or quota exceeded (HTTP 429).", status_code, provider
        )
    if not HTTPStatus.OK <= status_code < HTTPStatus.MULTIPLE_CHOICES:
        raise HttpStatusError(f"{provider.value} returned HTTP {status_code}", status_code, provider)


def _attempt(descriptor: BaseProvider, target: LookupTarget, key: str | None) -> LookupPlan:
    """One provider, at most one request. Pre-flight checks fail before anything is yielded."""
    provider = descriptor.provider
    if not target.is_self and not descriptor.supports_target:
        raise UnsupportedTargetError(f"{provider.value} can only look up the caller's own address", provider)
    if descriptor.requires_key and not key:
        raise MissingKeyError(f"{provider.value} requires an API key", provider)

    request = PreparedRequest(
        provider=provider,
        url=descriptor.endpoint(target, key),
        headers=descriptor.headers(key),
    )
    logger.info(f"Querying IP provider provider={provider.value} target={target}")
    try:
        response = yield request
    except ProviderFailure as exc:
        if exc.provider is None:
            exc.provider = provider
        raise

    _check_status(provider, response)
    return descriptor.parse(response.content)


def lookup_plan(
    target: TargetLike = None,
    provider: Provider | str | None = None,
    key: str | None = None,
    providers: Iterable[Provider | str] | None = None,
    keys: Mapping[Provider, str] | None = None,
) -> LookupPlan:
    """Pinned lookup when `provider` is given, otherwise sequential fallback.

    A pinned provider's failure is raised as is. In fallback mode every failure
    (pre-flight ones included) is recorded and the next candidate is tried; if
    none succeeds `AllProvidersFailedError` carries the causes in order.
    """
    target = LookupTarget.parse(target)
    if provider is not None:
        return (yield from _attempt(resolve(provider), target, key))

    keys = keys or {}
    failures: list[ProviderFailure] = []
    for candidate in DEFAULT_ORDER if providers is None else providers:
        descriptor = resolve(candidate)
        try:
            return (yield from _attempt(descriptor, target, keys.get(descriptor.provider)))
        except ProviderFailure as exc:
            logger.warning(
                f"IP provider failed, trying next provider={descriptor.provider.value} "
                f"target={target} error={type(exc).__name__} message={exc.message}"
            )
            failures.append(exc)

    raise AllProvidersFailedError(failures)


class LookupService:
    """Async orchestrator; each provider attempt awaits one transport call."""

    def __init__(self, transport: AsyncTransport | None = None) -> None:
        self._transport = transport or HttpxAsyncTransport()

    async def lookup(
        self,
        target: TargetLike = None,
        provider: Provider | str | None = None,
        key: str | None = None,
        *,
        providers: Iterable[Provider | str] | None = None,
        keys: Mapping[Provider, str] | None = None,
    ) -> LookupResponse:
        plan = lookup_plan(target, provider, key, providers, keys)
        try:
            request = next(plan)
            while True:
                try:
                    response = await self._transport.get(request.url, request.headers)
                except ProviderFailure as exc:
                    request = plan.throw(exc)
                else:
                    request = plan.send(response)
        except StopIteration as stop:
            return stop.value

    async def lookup_with_provider(
        self, provider: Provider | str, target: TargetLike = None, key: str | None = None
    ) -> LookupResponse:
        return await self.lookup(target, provider, key)


class BlockingLookupService:
    """Blocking orchestrator; same plan as `LookupService`, driven synchronously."""

    def __init__(self, transport: BlockingTransport | None = None) -> None:
        self._transport = transport or HttpxTransport()

    def lookup(
        self,
        target: TargetLike = None,
        provider: Provider | str | None = None,
        key: str | None = None,
        *,
        providers: Iterable[Provider | str] | None = None,
        keys: Mapping[Provider, str] | None = None,
    ) -> LookupResponse:
        plan = lookup_plan(target, provider, key, providers, keys)
        try:
            request = next(plan)
            while True:
                try:
                    response = self._transport.get(request.url, request.headers)
                except ProviderFailure as exc:
                    request = plan.throw(exc)
                else:
                    request = plan.send(response)
        except StopIteration as stop:
            return stop.value

    def lookup_with_provider(
        self, provider: Provider | str, target: TargetLike = None, key: str | None = None
    ) -> LookupResponse:
        return self.lookup(target, provider, key)
