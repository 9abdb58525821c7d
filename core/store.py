"""Key-value store and secret store.

The engine reads two kinds of external state:

1. A mutable configuration store (feature flags, integration configs,
   vendor list). It is owned by another component, may be edited at any
   time, and may be unavailable. The engine only ever calls get().
2. A secret store holding credential values. Integration configs name the
   secrets; the values are read here at call time and never persisted.

Neither store caches. Every get() reflects the current state, which is what
makes configuration changes take effect on the next request.
"""

import asyncio
import json
import os
import pathlib
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol


class StoreUnavailable(Exception):
    """Raised by a KeyValueStore when it cannot be read at all.

    Callers (ConfigResolver, IntegrationConfigProvider) always catch this and
    fall back to static configuration.
    """


class KeyValueStore(Protocol):
    """Read-only view of the mutable configuration store."""

    async def get(self, key: str) -> Any:
        """Return the stored value, or None when the key is not set.

        Raises:
            StoreUnavailable: If the backend cannot be reached or parsed.
        """
        ...


class InMemoryStore:
    """Dict-backed store. Used when no store file is configured, and in tests."""

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(data or {})

    async def get(self, key: str) -> Any:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value


class JsonFileStore:
    """Store backed by a JSON object on disk, re-read on every lookup.

    The read runs in a worker thread so a slow disk never stalls the event
    loop serving other dashboard requests.

    The file is expected to hold one top-level object. Values may be
    strings (flags, CSV lists, JSON documents) or nested JSON (integration
    configs, the vendor list).

    Attributes:
        path: Location of the JSON document.
    """

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = pathlib.Path(path)

    async def get(self, key: str) -> Any:
        data = await asyncio.to_thread(self._load)
        return data.get(key) if data is not None else None

    def _load(self) -> dict[str, Any] | None:
        """Read and parse the file. Runs on a worker thread."""
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            raise StoreUnavailable(f"Cannot read config store {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StoreUnavailable(f"Config store {self.path} must hold a JSON object.")
        return data


@dataclass(frozen=True)
class Credentials:
    """A resolved username/password pair. Lives for one request only."""

    username: str
    password: str


class EnvironmentSecrets:
    """Secret store backed by process environment (and .env via dotenv).

    An unset variable and an empty one are both reported as missing.
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def get(self, name: str | None) -> str | None:
        if not name:
            return None
        value = self._environ.get(name)
        return value or None

    def credentials(self, username_var: str | None, password_var: str | None) -> Credentials | None:
        """Resolve a pair of named secrets. None if either is missing."""
        username = self.get(username_var)
        password = self.get(password_var)
        if not username or not password:
            return None
        return Credentials(username=username, password=password)
