"""Configuration resolution.

Two layers, both injected into the resilience policy rather than read from
ambient state inside request handling:

ConfigResolver
    Typed access to flags and strings (DEMO_MODE, SOLARWINDS_UI_BASE, ...).
    The mutable store wins; when it is down, unset, or holds a non-string,
    the resolver falls back to the value passed in by the caller, then to
    the static deployment mapping (environment). It never raises.

IntegrationConfigProvider
    Reads the ServiceNow config, the monitoring config and the vendor list
    from the same store on every call. Anything missing or invalid yields
    the disabled default, so a broken config document degrades to an empty
    panel instead of a crashed request.
"""

import json
import logging
import math
import os
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from core.store import KeyValueStore, StoreUnavailable
from schemas.integration import MonitoringConfig, ServiceNowConfig, VendorProbe

logger = logging.getLogger(__name__)

TRUTHY = frozenset({"true", "1", "yes", "on"})

SERVICENOW_CONFIG_KEY = "servicenow_config"
MONITORING_CONFIG_KEY = "solarwinds_config"
VENDORS_KEY = "vendors"

HTTP_TIMEOUT_VAR = "AEGIS_HTTP_TIMEOUT"
DEFAULT_HTTP_TIMEOUT = 15.0


def parse_bool(raw: Any) -> bool:
    """True for true/1/yes/on (any case, surrounding spaces ignored)."""
    return str(raw if raw is not None else "").strip().lower() in TRUTHY


def csv_to_list(raw: str | None) -> list[str]:
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


def http_timeout(environ: Mapping[str, str] | None = None) -> float:
    """Seconds from AEGIS_HTTP_TIMEOUT, or the default when unset or invalid."""
    env = os.environ if environ is None else environ
    raw = (env.get(HTTP_TIMEOUT_VAR) or "").strip()
    if not raw:
        return DEFAULT_HTTP_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        value = math.nan
    if not math.isfinite(value) or value <= 0:
        logger.warning("Ignoring invalid %s=%r.", HTTP_TIMEOUT_VAR, raw)
        return DEFAULT_HTTP_TIMEOUT
    return value


class ConfigResolver:
    """Resolves typed settings from the store with static fallback.

    Attributes:
        _store: Mutable configuration store. May be None (no store).
        _static: Static deployment configuration, usually os.environ.
    """

    def __init__(self, store: KeyValueStore | None, static: Mapping[str, str] | None = None) -> None:
        self._store = store
        self._static = static or {}

    async def _read(self, key: str) -> str | None:
        if self._store is None:
            return None
        try:
            value = await self._store.get(key)
        except StoreUnavailable as exc:
            logger.warning("Config store unavailable reading '%s', using fallback: %s", key, exc)
            return None
        except Exception as exc:
            logger.error("Config store read for '%s' failed, using fallback: %s", key, exc)
            return None
        return value if isinstance(value, str) else None

    async def get_string(self, key: str, env_fallback: str | None = None) -> str:
        """Return the store value for key, else env_fallback, else static[key], else ""."""
        value = await self._read(key)
        if value is not None:
            return value
        if env_fallback is not None:
            return str(env_fallback)
        return str(self._static.get(key, ""))

    async def get_bool(self, key: str, env_fallback: str | None = None) -> bool:
        return parse_bool(await self.get_string(key, env_fallback))

    async def get_list(self, key: str, env_fallback: str | None = None) -> list[str]:
        return csv_to_list(await self.get_string(key, env_fallback))

    async def is_demo_mode(self) -> bool:
        return await self.get_bool("DEMO_MODE")


class IntegrationConfigProvider:
    """Loads integration configuration documents fresh on every call."""

    def __init__(self, store: KeyValueStore | None) -> None:
        self._store = store

    async def _document(self, key: str) -> Any:
        if self._store is None:
            return None
        try:
            raw = await self._store.get(key)
        except Exception as exc:
            logger.warning("Could not read '%s' from config store: %s", key, exc)
            return None

        if isinstance(raw, str):
            try:
                return json.loads(raw)
            except json.JSONDecodeError as exc:
                logger.error("Config document '%s' is not valid JSON: %s", key, exc)
                return None
        return raw

    async def servicenow(self) -> ServiceNowConfig:
        doc = await self._document(SERVICENOW_CONFIG_KEY)
        if not isinstance(doc, dict):
            return ServiceNowConfig()
        try:
            return ServiceNowConfig.model_validate(doc)
        except ValidationError as exc:
            logger.error("Invalid ServiceNow config, treating as disabled: %s", exc)
            return ServiceNowConfig()

    async def monitoring(self) -> MonitoringConfig:
        doc = await self._document(MONITORING_CONFIG_KEY)
        if not isinstance(doc, dict):
            return MonitoringConfig()
        try:
            return MonitoringConfig.model_validate(doc)
        except ValidationError as exc:
            logger.error("Invalid monitoring config, treating as disabled: %s", exc)
            return MonitoringConfig()

    async def vendors(self) -> list[VendorProbe]:
        """Return all valid vendor probes. Invalid entries are skipped individually."""
        doc = await self._document(VENDORS_KEY)
        if not isinstance(doc, list):
            return []

        probes: list[VendorProbe] = []
        for entry in doc:
            try:
                probes.append(VendorProbe.model_validate(entry))
            except ValidationError as exc:
                logger.error("Skipping invalid vendor entry %r: %s", entry, exc)
        return probes
