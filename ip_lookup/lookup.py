"""Public entry points: cache first, network on miss.

`IpLookup` (async) and `BlockingIpLookup` own a `ResponseCache` for one session
and delegate misses to the orchestrator. Use them as context managers so the
cache is loaded on entry and flushed on exit:

    async with IpLookup() as ip_lookup:
        response = await ip_lookup.perform_lookup("8.8.8.8")
"""

import anyio.to_thread

from ip_lookup.cache import CacheEntry, ResponseCache
from ip_lookup.config import Settings, get_settings
from ip_lookup.errors import CacheError
from ip_lookup.logger import logger
from ip_lookup.models.common import LookupResponse
from ip_lookup.models.request_models import LookupOptions, LookupTarget, Provider
from ip_lookup.orchestrator import BlockingLookupService, LookupService, TargetLike
from ip_lookup.transport import HttpxAsyncTransport, HttpxTransport


def cache_from_settings(settings: Settings) -> ResponseCache:
    return ResponseCache(
        path=settings.cache_path,
        ttl=settings.cache_ttl,
        encrypt=settings.cache_encrypt,
        secret=settings.cache_secret,
    )


class _CachedLookup:
    """Cache handling shared by the async and blocking facades."""

    def __init__(self, cache: ResponseCache | None, settings: Settings | None) -> None:
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else cache_from_settings(self.settings)

    def load(self) -> None:
        """Merge the cache file into memory. Raises `CacheIoError` if the file exists but cannot be read."""
        self.cache.load()

    def flush(self) -> None:
        """Write the cache file. Raises `CacheIoError` on failure."""
        self.cache.flush()

    def cache_entries(self) -> dict[str, CacheEntry]:
        return self.cache.entries()

    def prune_cache(self) -> int:
        """Drop expired entries and persist the result; returns how many were removed."""
        removed = self.cache.prune()
        if removed:
            self._flush_quietly()
        return removed

    def purge_cache(self) -> int:
        """Delete every entry and the cache file. Raises `CacheIoError` if the file cannot be removed."""
        removed = self.cache.delete()
        logger.info(f"Purged lookup cache path={self.cache.path} removed={removed}")
        return removed

    def _load_quietly(self) -> None:
        try:
            self.load()
        except CacheError as exc:
            logger.warning(f"Starting with an empty cache path={self.cache.path} error={exc}")

    def _flush_quietly(self) -> None:
        try:
            self.flush()
        except CacheError as exc:
            logger.warning(f"Failed to persist lookup cache path={self.cache.path} error={exc}")

    def _cached(self, target: LookupTarget, options: LookupOptions) -> LookupResponse | None:
        if options.force_refresh:
            return None
        entry = self.cache.get(target)
        if entry is None:
            return None
        logger.info(f"Cache hit target={target} provider={entry.provider.value}")
        return entry.response

    def _store(self, target: LookupTarget, response: LookupResponse) -> None:
        self.cache.put(target, response, response.provider)
        self._flush_quietly()

    def _orchestrator_args(self, options: LookupOptions) -> dict:
        """Per-call options merged over the configured default provider and keys."""
        keys = {**self.settings.api_keys, **options.api_keys}
        provider = options.provider
        if provider is None and options.providers is None:
            provider = self.settings.provider
        key = options.api_key
        if key is None and provider is not None:
            key = keys.get(provider)
        return {"provider": provider, "key": key, "providers": options.providers, "keys": keys}


class IpLookup(_CachedLookup):
    """Async lookup facade."""

    def __init__(
        self,
        cache: ResponseCache | None = None,
        service: LookupService | None = None,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(cache, settings)
        self.service = service or LookupService(HttpxAsyncTransport(self.settings.timeout_seconds))

    async def __aenter__(self) -> "IpLookup":
        await anyio.to_thread.run_sync(self._load_quietly)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await anyio.to_thread.run_sync(self._flush_quietly)

    async def perform_lookup(self, target: TargetLike = None, options: LookupOptions | None = None) -> LookupResponse:
        response, _ = await self.lookup_with_cache_status(target, options)
        return response

    async def lookup_with_cache_status(
        self, target: TargetLike = None, options: LookupOptions | None = None
    ) -> tuple[LookupResponse, bool]:
        """Like `perform_lookup`, also reporting whether the response came from the cache.

        A malformed target string raises `InvalidTargetError` before the cache
        or the network is touched. Orchestrator errors propagate unchanged.
        """
        target = LookupTarget.parse(target)
        options = options or LookupOptions()

        cached = self._cached(target, options)
        if cached is not None:
            return cached, True

        response = await self.service.lookup(target, **self._orchestrator_args(options))
        self.cache.put(target, response, response.provider)
        # File I/O and encryption stay off the event loop.
        await anyio.to_thread.run_sync(self._flush_quietly)
        return response, False


class BlockingIpLookup(_CachedLookup):
    """Blocking lookup facade; same behavior as `IpLookup`."""

    def __init__(
        self,
        cache: ResponseCache | None = None,
        service: BlockingLookupService | None = None,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(cache, settings)
        self.service = service or BlockingLookupService(HttpxTransport(self.settings.timeout_seconds))

    def __enter__(self) -> "BlockingIpLookup":
        self._load_quietly()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._flush_quietly()

    def perform_lookup(self, target: TargetLike = None, options: LookupOptions | None = None) -> LookupResponse:
        response, _ = self.lookup_with_cache_status(target, options)
        return response

    def lookup_with_cache_status(
        self, target: TargetLike = None, options: LookupOptions | None = None
    ) -> tuple[LookupResponse, bool]:
        target = LookupTarget.parse(target)
        options = options or LookupOptions()

        cached = self._cached(target, options)
        if cached is not None:
            return cached, True

        response = self.service.lookup(target, **self._orchestrator_args(options))
        self._store(target, response)
        return response, False


async def perform_lookup(
    target: TargetLike = None, options: LookupOptions | None = None, *, settings: Settings | None = None
) -> LookupResponse:
    """One cached lookup with a facade built from `settings` (default: the environment)."""
    async with IpLookup(settings=settings) as ip_lookup:
        return await ip_lookup.perform_lookup(target, options)


def perform_lookup_blocking(
    target: TargetLike = None, options: LookupOptions | None = None, *, settings: Settings | None = None
) -> LookupResponse:
    with BlockingIpLookup(settings=settings) as ip_lookup:
        return ip_lookup.perform_lookup(target, options)


async def lookup_with_provider(
    provider: Provider | str,
    target: TargetLike = None,
    key: str | None = None,
    *,
    settings: Settings | None = None,
) -> LookupResponse:
    """Query exactly one provider, without fallback and without the cache."""
    settings = settings or get_settings()
    provider = Provider.parse(provider)
    service = LookupService(HttpxAsyncTransport(settings.timeout_seconds))
    return await service.lookup_with_provider(provider, target, key or settings.api_keys.get(provider))
