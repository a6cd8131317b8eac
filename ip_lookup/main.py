from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request, status
from pydantic import ValidationError

from ip_lookup.errors import (
    AllProvidersFailedError,
    CacheError,
    MissingKeyError,
    ProviderFailure,
    UnsupportedTargetError,
)
from ip_lookup.exception_handlers import (
    cache_exception_handler,
    pydantic_validation_exception_handler,
    unhandled_exception_handler,
)
from ip_lookup.logger import configure_logging, logger
from ip_lookup.lookup import IpLookup
from ip_lookup.models.request_models import IPLookupRequest, LookupOptions
from ip_lookup.models.response_models import (
    CacheEntryResponse,
    CachePurgeResponse,
    HealthResponse,
    IPLookupResponse,
    ProviderFailureDetail,
)


@lru_cache
def get_ip_lookup() -> IpLookup:
    """Dependency providing the process-wide lookup facade (one cache per service process)."""
    return IpLookup()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    # Load the cache file on startup, flush it on shutdown.
    async with get_ip_lookup():
        logger.info("Started IP Lookup Service")
        yield


app = FastAPI(
    title="IP Lookup Service",
    version="0.1.0",
    description="Public IP and geolocation lookup over multiple providers, with a local cache.",
    lifespan=lifespan,
)

app.add_exception_handler(ValidationError, pydantic_validation_exception_handler)
app.add_exception_handler(CacheError, cache_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


def _failure_detail(failure: ProviderFailure) -> ProviderFailureDetail:
    return ProviderFailureDetail(provider=failure.provider, error=failure.code, message=failure.message)


@app.get(
    "/health",
    tags=["health"],
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
)
async def health() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="ok")


@app.get(
    "/v1/ip/lookup",
    response_model=IPLookupResponse,
    status_code=status.HTTP_200_OK,
    tags=["ip"],
    summary="Look up geolocation information for an IP address.",
)
async def ip_lookup(
    request: Request,
    query: Annotated[IPLookupRequest, Depends()],
    lookup: Annotated[IpLookup, Depends(get_ip_lookup)],
) -> IPLookupResponse:
    """Look up geolocation information for either a specific IP or the service's own public IP.

    - If `query.ip` is omitted, providers report the address the request came from,
      which is the public IP of the host running this service.
    - If `query.provider` is provided only that provider is queried; otherwise
      providers are tried in fallback order until one succeeds.
    - A cached result is returned unless `query.force_refresh` is set.
    """
    ip = query.ip
    provider = query.provider
    options = LookupOptions(provider=provider, force_refresh=query.force_refresh)
    logger.info(
        "Performing IP lookup "
        f"path={request.url.path} method={request.method} ip={ip or 'self'} "
        f"provider={provider} force_refresh={query.force_refresh}"
    )

    try:
        response, cached = await lookup.lookup_with_cache_status(query.target, options)
    except UnsupportedTargetError as exc:
        logger.error(
            "Provider cannot look up an explicit IP "
            f"path={request.url.path} method={request.method} ip={ip} provider={provider} error={exc}"
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "unsupported_target",
                "message": str(exc),
                "provider": provider,
            },
        ) from exc
    except MissingKeyError as exc:
        logger.error(
            "Provider API key is not configured "
            f"path={request.url.path} method={request.method} ip={ip} provider={provider} error={exc}"
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "missing_key",
                "message": str(exc),
                "provider": provider,
            },
        ) from exc
    except AllProvidersFailedError as exc:
        logger.error(
            "All IP providers failed during lookup "
            f"path={request.url.path} method={request.method} ip={ip} tried={len(exc.failures)}"
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "code": "all_providers_failed",
                "message": "No provider returned a usable response.",
                "failures": [_failure_detail(failure).model_dump(mode="json") for failure in exc.failures],
            },
        ) from exc
    except ProviderFailure as exc:
        logger.exception(
            "Upstream IP provider error during lookup "
            f"path={request.url.path} method={request.method} ip={ip} provider={provider} error={exc}"
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "code": "upstream_error",
                "message": str(exc),
                "provider": provider,
                "error": exc.code,
            },
        ) from exc

    return IPLookupResponse(**response.model_dump(), cached=cached)


@app.get(
    "/v1/cache",
    response_model=list[CacheEntryResponse],
    status_code=status.HTTP_200_OK,
    tags=["cache"],
    summary="List cached lookups.",
)
async def list_cache(lookup: Annotated[IpLookup, Depends(get_ip_lookup)]) -> list[CacheEntryResponse]:
    return [
        CacheEntryResponse(
            key=key,
            ip=entry.response.ip,
            provider=entry.provider,
            created_at=entry.created_at,
            expired=lookup.cache.is_expired(entry),
        )
        for key, entry in lookup.cache_entries().items()
    ]


@app.post(
    "/v1/cache/prune",
    response_model=CachePurgeResponse,
    status_code=status.HTTP_200_OK,
    tags=["cache"],
    summary="Remove expired cache entries.",
)
async def prune_cache(lookup: Annotated[IpLookup, Depends(get_ip_lookup)]) -> CachePurgeResponse:
    return CachePurgeResponse(removed=lookup.prune_cache())


@app.delete(
    "/v1/cache",
    response_model=CachePurgeResponse,
    status_code=status.HTTP_200_OK,
    tags=["cache"],
    summary="Remove every cache entry and the cache file.",
)
async def purge_cache(lookup: Annotated[IpLookup, Depends(get_ip_lookup)]) -> CachePurgeResponse:
    return CachePurgeResponse(removed=lookup.purge_cache())
