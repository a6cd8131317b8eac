import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ip_lookup.models.request_models import Provider
from ip_lookup.transport import DEFAULT_TIMEOUT_SECONDS

ENV_PREFIX = "IP_LOOKUP_"
KEY_ENV_PREFIX = f"{ENV_PREFIX}KEY_"
DEFAULT_CACHE_TTL = 300.0

_TRUTHY = ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Runtime configuration, normally read from `IP_LOOKUP_*` environment variables."""

    cache_ttl: float | None = DEFAULT_CACHE_TTL
    cache_path: Path | None = None
    cache_encrypt: bool = False
    cache_secret: str | None = None
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    provider: Provider | None = None
    api_keys: dict[Provider, str] = Field(default_factory=dict)
    host: str = "127.0.0.1"
    port: int = 8000

    @field_validator("cache_ttl", mode="before")
    @classmethod
    def _parse_ttl(cls, value: Any) -> float | None:
        """`none` or an empty value disables expiry."""
        if value is None:
            return None
        if isinstance(value, str) and value.strip().lower() in ("", "none"):
            return None
        ttl = float(value)
        if ttl < 0:
            raise ValueError("cache_ttl must not be negative")
        return ttl

    @field_validator("cache_encrypt", mode="before")
    @classmethod
    def _parse_flag(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in _TRUTHY
        return bool(value)

    @field_validator("provider", mode="before")
    @classmethod
    def _parse_provider(cls, value: Any) -> Provider | None:
        if value is None or isinstance(value, Provider):
            return value
        if not str(value).strip():
            return None
        return Provider.parse(value)


def _api_keys_from_env(environ: dict[str, str]) -> dict[Provider, str]:
    # IP_LOOKUP_KEY_IPDATA, IP_LOOKUP_KEY_IPAPI_CO, ...
    keys: dict[Provider, str] = {}
    for provider in Provider:
        key = environ.get(f"{KEY_ENV_PREFIX}{provider.name.upper()}")
        if key:
            keys[provider] = key
    return keys


def get_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build `Settings` from the environment (or an explicit mapping, for tests)."""
    env = dict(os.environ if environ is None else environ)
    values: dict[str, Any] = {"api_keys": _api_keys_from_env(env)}

    if f"{ENV_PREFIX}CACHE_TTL" in env:
        values["cache_ttl"] = env[f"{ENV_PREFIX}CACHE_TTL"]
    if env.get(f"{ENV_PREFIX}CACHE_PATH"):
        values["cache_path"] = Path(env[f"{ENV_PREFIX}CACHE_PATH"]).expanduser()
    if f"{ENV_PREFIX}CACHE_ENCRYPT" in env:
        values["cache_encrypt"] = env[f"{ENV_PREFIX}CACHE_ENCRYPT"]
    if env.get(f"{ENV_PREFIX}CACHE_SECRET"):
        values["cache_secret"] = env[f"{ENV_PREFIX}CACHE_SECRET"]
    if env.get(f"{ENV_PREFIX}TIMEOUT"):
        values["timeout_seconds"] = env[f"{ENV_PREFIX}TIMEOUT"]
    if env.get(f"{ENV_PREFIX}PROVIDER"):
        values["provider"] = env[f"{ENV_PREFIX}PROVIDER"]
    if env.get(f"{ENV_PREFIX}HOST"):
        values["host"] = env[f"{ENV_PREFIX}HOST"]
    if env.get(f"{ENV_PREFIX}PORT"):
        values["port"] = env[f"{ENV_PREFIX}PORT"]

    return Settings(**values)
