"""Aegis status engine: dashboard API.

This file handles two concerns:

1. Wiring: builds the store, secret store, shared HTTP client and the
   ResiliencePolicy that every endpoint delegates to.

2. Read API: exposes the endpoints the dashboard polls. Each one asks the
   policy for an EndpointResult and returns its envelope:

       {"success": true,  "data": [...]}
       {"success": false, "error": "...", "diagnostic": {...}}

Flow for one request:
    GET /api/outages/active
        → get_policy() builds a policy around the shared client
        → policy reads DEMO_MODE and the ServiceNow config from the store
        → queries ServiceNow (or answers from the demo dataset)
        → returns EndpointResult
        → JSONResponse(result.envelope(), status_code=result.status_code)

Configuration is read on every request, so edits to the store file apply
to the next dashboard refresh without a restart.

Run locally:
    uv run uvicorn main:app --reload
"""

import logging
import logging.handlers
import os
import pathlib
from contextlib import asynccontextmanager

import httpx
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from core.config import ConfigResolver, IntegrationConfigProvider, http_timeout
from core.fetcher import ExternalFetcher
from core.policy import ResiliencePolicy
from core.prober import VendorStatusProber
from core.store import EnvironmentSecrets, InMemoryStore, JsonFileStore, KeyValueStore
from queries.servicenow import DEFAULT_HISTORY_DAYS
from schemas.result import EndpointResult

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_FILE = pathlib.Path(__file__).parent / "aegis.log"
LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

_file_handler = logging.handlers.RotatingFileHandler(
    LOG_FILE, maxBytes=1_000_000, backupCount=3, encoding="utf-8",
)
_file_handler.setFormatter(_formatter)

_console_handler = logging.StreamHandler()
_console_handler.setFormatter(_formatter)

_root_logger = logging.getLogger()
_root_logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
_root_logger.addHandler(_file_handler)
_root_logger.addHandler(_console_handler)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

def build_store() -> KeyValueStore:
    """JSON file store when AEGIS_STORE_PATH is set, else an empty in-memory one."""
    path = os.environ.get("AEGIS_STORE_PATH")
    if path:
        logger.info("Reading configuration from %s.", path)
        return JsonFileStore(path)
    logger.warning("AEGIS_STORE_PATH not set, using an empty in-memory config store.")
    return InMemoryStore()


_store = build_store()
_secrets = EnvironmentSecrets()

# ---------------------------------------------------------------------------
# App + CORS
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the shared HTTP client for the lifetime of the process."""
    async with httpx.AsyncClient(timeout=http_timeout()) as client:
        app.state.http_client = client
        yield


app = FastAPI(title="Aegis Status Engine", lifespan=lifespan)

# Allow the dashboard to call these endpoints from a different origin.
# ALLOWED_ORIGINS env var overrides the default for production deployments.
_origins = os.environ.get("ALLOWED_ORIGINS", "http://localhost:3000").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Policy dependency
# ---------------------------------------------------------------------------

def get_policy(request: Request) -> ResiliencePolicy:
    """Build the policy for one request around the shared client.

    Tests replace this with app.dependency_overrides.
    """
    client: httpx.AsyncClient = request.app.state.http_client
    return ResiliencePolicy(
        resolver=ConfigResolver(_store, os.environ),
        configs=IntegrationConfigProvider(_store),
        secrets=_secrets,
        fetcher=ExternalFetcher(client),
        prober=VendorStatusProber(client),
    )


def respond(result: EndpointResult) -> JSONResponse:
    return JSONResponse(result.envelope(), status_code=result.status_code)


# ---------------------------------------------------------------------------
# Health check + UI config
# ---------------------------------------------------------------------------

@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/config")
async def ui_config(policy: ResiliencePolicy = Depends(get_policy)):
    """Feature flags the dashboard reads before rendering management controls."""
    return {
        "enableManagement": await policy.management_enabled(),
        "demoMode": await policy.demo_mode(),
    }


# ---------------------------------------------------------------------------
# Dashboard read API
# ---------------------------------------------------------------------------

@app.get("/api/outages/active")
async def active_outages(policy: ResiliencePolicy = Depends(get_policy)):
    return respond(await policy.active_outages())


@app.get("/api/outages/history")
async def outage_history(
    days: int = Query(default=DEFAULT_HISTORY_DAYS, ge=1, le=90),
    policy: ResiliencePolicy = Depends(get_policy),
):
    """Outages for the trend chart: ongoing, or ended within the last `days` days."""
    return respond(await policy.outage_history(days))


@app.get("/api/monitoring/alerts")
async def monitoring_alerts(policy: ResiliencePolicy = Depends(get_policy)):
    return respond(await policy.monitoring_alerts())


@app.get("/api/servicenow/tickets")
async def servicenow_tickets(policy: ResiliencePolicy = Depends(get_policy)):
    return respond(await policy.tickets())


@app.get("/api/changes/today")
async def changes_today(policy: ResiliencePolicy = Depends(get_policy)):
    return respond(await policy.changes_today())


@app.get("/api/vendors/status")
async def vendor_statuses(policy: ResiliencePolicy = Depends(get_policy)):
    """Derived status of every configured vendor, problems first."""
    return respond(await policy.vendor_statuses())
