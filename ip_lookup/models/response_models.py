from pydantic import BaseModel

from ip_lookup.models.common import LookupResponse
from ip_lookup.models.request_models import Provider


class HealthResponse(BaseModel):
    """Response model for the health check endpoint."""

    status: str


class IPLookupResponse(LookupResponse):
    """Lookup result plus whether it was served from the local cache."""

    cached: bool = False


class ProviderFailureDetail(BaseModel):
    provider: Provider | None = None
    error: str
    message: str


class CacheEntryResponse(BaseModel):
    """One cached lookup as listed by the cache inspection endpoint."""

    key: str
    ip: str
    provider: Provider
    created_at: float
    expired: bool


class CachePurgeResponse(BaseModel):
    removed: int
