"""API endpoint tests for the dashboard read API.

The policy dependency is overridden per test, so no request leaves the
process and no store file is needed.
"""

from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from core.config import ConfigResolver, IntegrationConfigProvider
from core.fetcher import ExternalFetcher
from core.policy import ResiliencePolicy
from core.prober import VendorStatusProber
from core.store import EnvironmentSecrets, InMemoryStore
from main import app, get_policy

NOW = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)

SERVICENOW_STORE = {"servicenow_config": {"enabled": True, "instanceUrl": "https://acme.service-now.com"}}
SERVICENOW_ENV = {"SERVICENOW_USERNAME": "svc", "SERVICENOW_PASSWORD": "pw"}


def build_policy(store: dict, env: dict | None = None, handler=None) -> ResiliencePolicy:
    kv = InMemoryStore(store)
    transport = httpx.MockTransport(handler or (lambda request: httpx.Response(500)))
    client = httpx.AsyncClient(transport=transport)
    return ResiliencePolicy(
        resolver=ConfigResolver(kv, {}),
        configs=IntegrationConfigProvider(kv),
        secrets=EnvironmentSecrets(env or {}),
        fetcher=ExternalFetcher(client),
        prober=VendorStatusProber(client),
        clock=lambda: NOW,
    )


@pytest.fixture
def use_policy():
    """Install a policy for the duration of one test."""

    def install(policy: ResiliencePolicy) -> TestClient:
        app.dependency_overrides[get_policy] = lambda: policy
        return TestClient(app)

    yield install
    app.dependency_overrides.clear()


# ── Health + config ───────────────────────────────────────────────────────────

def test_health():
    res = TestClient(app).get("/health")
    assert res.json()["status"] == "ok"


def test_config_reflects_store(use_policy):
    client = use_policy(build_policy({"DEMO_MODE": "true", "ENABLE_MANAGEMENT": "false"}))
    assert client.get("/api/config").json() == {"enableManagement": False, "demoMode": True}


# ── Read endpoints ────────────────────────────────────────────────────────────

class TestReadEndpoints:
    def test_demo_active_outages_use_camel_case(self, use_policy):
        client = use_policy(build_policy({"DEMO_MODE": "true"}))

        res = client.get("/api/outages/active")

        assert res.status_code == 200
        body = res.json()
        assert body["success"] is True
        assert len(body["data"]) == 4
        first = body["data"][0]
        assert {"id", "systemName", "impactLevel", "startTime", "eta", "description"} <= set(first)
        assert first["impactLevel"] == "SEV1"

    def test_demo_tickets_keep_affected_ci_wire_name(self, use_policy):
        client = use_policy(build_policy({"DEMO_MODE": "true"}))
        ticket = client.get("/api/servicenow/tickets").json()["data"][0]
        assert "affectedCI" in ticket
        assert "assignedTeam" in ticket

    @pytest.mark.parametrize("path", [
        "/api/outages/active",
        "/api/outages/history",
        "/api/monitoring/alerts",
        "/api/servicenow/tickets",
        "/api/changes/today",
        "/api/vendors/status",
    ])
    def test_unconfigured_endpoints_are_empty(self, use_policy, path):
        client = use_policy(build_policy({}))
        res = client.get(path)
        assert res.status_code == 200
        assert res.json() == {"success": True, "data": []}

    def test_alerts_without_credentials_are_400(self, use_policy):
        store = {"solarwinds_config": {"enabled": True, "apiUrl": "https://orion.example.com:17774"}}
        client = use_policy(build_policy(store))

        res = client.get("/api/monitoring/alerts")

        assert res.status_code == 400
        assert res.json()["success"] is False
        assert "credentials" in res.json()["error"]

    @pytest.mark.parametrize("days", [0, 91, "week"])
    def test_history_days_is_validated(self, use_policy, days):
        client = use_policy(build_policy({"DEMO_MODE": "true"}))
        assert client.get("/api/outages/history", params={"days": days}).status_code == 422

    def test_history_days_narrows_demo_window(self, use_policy):
        client = use_policy(build_policy({"DEMO_MODE": "true"}))
        data = client.get("/api/outages/history", params={"days": 1}).json()["data"]
        assert [o["id"] for o in data[4:]] == ["hist-01", "hist-02"]

    def test_unreachable_servicenow_is_400_for_tickets(self, use_policy):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = use_policy(build_policy(SERVICENOW_STORE, SERVICENOW_ENV, handler))

        res = client.get("/api/servicenow/tickets")

        assert res.status_code == 400
        assert res.json() == {
            "success": False,
            "error": "Failed to fetch tickets from ServiceNow: connection failed",
        }

    def test_unreachable_servicenow_is_empty_for_outages(self, use_policy):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = use_policy(build_policy(SERVICENOW_STORE, SERVICENOW_ENV, handler))

        res = client.get("/api/outages/active")

        assert res.status_code == 200
        assert res.json() == {"success": True, "data": []}

    def test_unexpected_error_is_500_with_diagnostic(self, use_policy, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("normalizer bug")

        monkeypatch.setattr("core.policy.normalize_ticket", explode)
        record = {"sys_id": "abc", "number": "INC1"}
        client = use_policy(build_policy(
            SERVICENOW_STORE, SERVICENOW_ENV, lambda request: httpx.Response(200, json={"result": [record]}),
        ))

        res = client.get("/api/servicenow/tickets")

        assert res.status_code == 500
        body = res.json()
        assert body["success"] is False
        assert body["error"] == "An unexpected error occurred while fetching ServiceNow tickets."
        assert body["diagnostic"]["endpoint"] == "Tickets"
        assert body["diagnostic"]["error"]["type"] == "RuntimeError"
        assert body["diagnostic"]["lastCall"]["response"]["status"] == 200
