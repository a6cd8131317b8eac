"""Local response cache.

Entries live in an ordered in-memory map keyed by `LookupTarget.cache_key` and
are mirrored to a single JSON file. Expiry is decided when an entry is read;
nothing is evicted in the background. With `encrypt=True` the file content is
a Fernet token whose key is derived from a secret (by default the machine id),
so a cache file copied to another machine cannot be read there.
"""

import base64
import json
import os
import socket
import tempfile
import threading
import time
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

import platformdirs
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import BaseModel, ValidationError

from ip_lookup.config import DEFAULT_CACHE_TTL
from ip_lookup.errors import CacheDecryptError, CacheError, CacheIoError
from ip_lookup.logger import logger
from ip_lookup.models.common import LookupResponse
from ip_lookup.models.request_models import LookupTarget, Provider

CACHE_FORMAT_VERSION = 1
CACHE_APP_NAME = "ip-lookup"
CACHE_FILE_NAME = "lookup-cache.json"

_KDF_SALT = b"ip-lookup-cache-v1"
_KDF_ITERATIONS = 100_000
_MACHINE_ID_FILES = (Path("/etc/machine-id"), Path("/var/lib/dbus/machine-id"))


class CacheEntry(BaseModel):
    """A cached lookup result and when it was obtained (epoch seconds)."""

    response: LookupResponse
    created_at: float
    provider: Provider

    def is_expired(self, ttl: float | None, now: float) -> bool:
        if ttl is None:
            return False
        return now - self.created_at >= ttl


def default_cache_path() -> Path:
    return platformdirs.user_cache_path(CACHE_APP_NAME) / CACHE_FILE_NAME


def machine_secret() -> str:
    """Stable per-machine secret: the systemd/dbus machine id, else node id and host name."""
    for path in _MACHINE_ID_FILES:
        try:
            machine_id = path.read_text().strip()
        except OSError:
            continue
        if machine_id:
            return machine_id
    return f"{uuid.getnode():012x}-{socket.gethostname()}"


def derive_key(secret: str) -> bytes:
    """Fernet key from `secret` via PBKDF2-HMAC-SHA256."""
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=_KDF_SALT, iterations=_KDF_ITERATIONS)
    return base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))


def _cache_key(target: LookupTarget | str | None) -> str:
    return LookupTarget.parse(target).cache_key


class ResponseCache:
    """TTL cache of lookup responses backed by one (optionally encrypted) file.

    Only `load`, `flush` and `delete` touch the disk. A single owning process is
    assumed: concurrent writers to the same file are last-writer-wins.
    """

    def __init__(
        self,
        path: Path | str | None = None,
        ttl: float | None = DEFAULT_CACHE_TTL,
        encrypt: bool = False,
        secret: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl is not None and ttl < 0:
            raise ValueError("ttl must not be negative")
        self.path = Path(path) if path is not None else default_cache_path()
        self.ttl = ttl
        self.encrypt = encrypt
        self._fernet = Fernet(derive_key(secret or machine_secret())) if encrypt else None
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._flush_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, target: LookupTarget | str | None) -> bool:
        """True when `get` would return an entry for `target`."""
        return self.get(target) is not None

    def get(self, target: LookupTarget | str | None) -> CacheEntry | None:
        """Return the unexpired entry for `target`. Expired entries stay until `prune`."""
        entry = self._entries.get(_cache_key(target))
        if entry is None or self.is_expired(entry):
            return None
        return entry

    def put(self, target: LookupTarget | str | None, response: LookupResponse, provider: Provider) -> CacheEntry:
        entry = CacheEntry(response=response, created_at=self._clock(), provider=provider)
        self._entries[_cache_key(target)] = entry
        return entry

    def remove(self, target: LookupTarget | str | None) -> bool:
        return self._entries.pop(_cache_key(target), None) is not None

    def clear(self) -> int:
        removed = len(self._entries)
        self._entries.clear()
        return removed

    def prune(self) -> int:
        """Drop expired entries from memory; returns how many were removed."""
        expired = [key for key, entry in self._entries.items() if self.is_expired(entry)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info(f"Pruned expired cache entries removed={len(expired)} path={self.path}")
        return len(expired)

    def entries(self) -> dict[str, CacheEntry]:
        return dict(self._entries)

    def is_expired(self, entry: CacheEntry) -> bool:
        return entry.is_expired(self.ttl, self._clock())

    def load(self) -> None:
        """Merge the file into memory; the newer entry wins when a key exists in both.

        A missing file is an empty cache. Content that cannot be decrypted or
        parsed is logged and ignored (the next `flush` overwrites it).
        """
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            logger.debug(f"No cache file yet path={self.path}")
            return
        except OSError as exc:
            raise CacheIoError(f"Failed to read cache file {self.path}: {exc}") from exc

        try:
            loaded = self._decode(raw)
        except CacheError as exc:
            logger.warning(f"Ignoring unreadable cache file path={self.path} error={exc}")
            return

        for key, entry in loaded.items():
            current = self._entries.get(key)
            if current is None or entry.created_at > current.created_at:
                self._entries[key] = entry
        logger.debug(f"Loaded cache file path={self.path} entries={len(loaded)}")

    def flush(self) -> None:
        """Write every in-memory entry to the file, replacing it atomically.

        Safe to call from a worker thread: the entries are copied before encoding,
        and flushes are serialized so the newest copy is the one left on disk.
        """
        with self._flush_lock:
            snapshot = dict(self._entries)
            self._write(self._encode(snapshot))
        logger.debug(f"Flushed cache file path={self.path} entries={len(snapshot)}")

    def _write(self, data: bytes) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as tmp_file:
                    tmp_file.write(data)
                os.replace(tmp_name, self.path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise CacheIoError(f"Failed to write cache file {self.path}: {exc}") from exc

    def delete(self) -> int:
        """Remove the cache file and empty memory; returns the number of in-memory entries dropped."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            raise CacheIoError(f"Failed to delete cache file {self.path}: {exc}") from exc
        return self.clear()

    def _encode(self, entries: dict[str, CacheEntry]) -> bytes:
        document: dict[str, Any] = {
            "version": CACHE_FORMAT_VERSION,
            "entries": {key: entry.model_dump(mode="json") for key, entry in entries.items()},
        }
        data = json.dumps(document).encode("utf-8")
        if self._fernet is not None:
            data = self._fernet.encrypt(data)
        return data

    def _decode(self, raw: bytes) -> dict[str, CacheEntry]:
        if self._fernet is not None:
            try:
                raw = self._fernet.decrypt(raw)
            except InvalidToken as exc:
                raise CacheDecryptError(f"Cache file {self.path} failed decryption") from exc

        try:
            document = json.loads(raw)
        except ValueError as exc:
            raise CacheError(f"Cache file {self.path} is not valid JSON") from exc

        if not isinstance(document, dict) or document.get("version") != CACHE_FORMAT_VERSION:
            raise CacheError(f"Cache file {self.path} has an unsupported format")

        entries = document.get("entries")
        if not isinstance(entries, dict):
            raise CacheError(f"Cache file {self.path} has no entries mapping")

        try:
            return {str(key): CacheEntry.model_validate(value) for key, value in entries.items()}
        except ValidationError as exc:
            raise CacheError(f"Cache file {self.path} contains a malformed entry") from exc
