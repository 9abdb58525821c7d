"""Aegis status engine: terminal snapshot.

Runs every dashboard endpoint once through the same ResiliencePolicy the
API uses and renders the results as Rich tables. Handy for checking an
integration config without starting the server or opening a browser.

Configuration comes from the environment (and .env), exactly as for the
API: set AEGIS_STORE_PATH to a config store file, or DEMO_MODE=true to see
the synthetic dataset.

Usage:
    uv run python cli.py
"""

import asyncio
import os

import httpx
from dotenv import load_dotenv
from rich.console import Console

load_dotenv()

from core.config import ConfigResolver, IntegrationConfigProvider, http_timeout
from core.fetcher import ExternalFetcher
from core.policy import ResiliencePolicy
from core.prober import VendorStatusProber
from core.store import EnvironmentSecrets, InMemoryStore, JsonFileStore
from display.panels import (
    render_alerts,
    render_changes,
    render_outages,
    render_tickets,
    render_vendors,
)

console = Console()


def _build_policy(client: httpx.AsyncClient) -> ResiliencePolicy:
    path = os.environ.get("AEGIS_STORE_PATH")
    store = JsonFileStore(path) if path else InMemoryStore()
    return ResiliencePolicy(
        resolver=ConfigResolver(store, os.environ),
        configs=IntegrationConfigProvider(store),
        secrets=EnvironmentSecrets(),
        fetcher=ExternalFetcher(client),
        prober=VendorStatusProber(client),
    )


# ── Entry point ───────────────────────────────────────────────────────────────

async def _run() -> None:
    async with httpx.AsyncClient(timeout=http_timeout()) as client:
        policy = _build_policy(client)

        console.rule("[bold]Aegis[/bold]")
        console.print(f"  demo mode   [cyan]{await policy.demo_mode()}[/cyan]")
        console.print(f"  store       [cyan]{os.environ.get('AEGIS_STORE_PATH') or 'in-memory'}[/cyan]")
        console.print()

        # Independent endpoints, so fetch them side by side.
        async with asyncio.TaskGroup() as tg:
            active = tg.create_task(policy.active_outages())
            history = tg.create_task(policy.outage_history())
            alerts = tg.create_task(policy.monitoring_alerts())
            tickets = tg.create_task(policy.tickets())
            changes = tg.create_task(policy.changes_today())
            vendors = tg.create_task(policy.vendor_statuses())

    console.print(render_outages(active.result()))
    console.print(render_outages(history.result(), title="Outage History (7 days)"))
    console.print(render_alerts(alerts.result()))
    console.print(render_tickets(tickets.result()))
    console.print(render_changes(changes.result()))
    console.print(render_vendors(vendors.result()))
    console.print()


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()
