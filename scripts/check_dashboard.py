"""Hit every dashboard endpoint on a running server and print the envelopes."""

import json
import sys
import urllib.error
import urllib.request


BASE_URL = "http://127.0.0.1:8000"

ENDPOINTS = [
    "/health",
    "/api/config",
    "/api/outages/active",
    "/api/outages/history?days=7",
    "/api/monitoring/alerts",
    "/api/servicenow/tickets",
    "/api/changes/today",
    "/api/vendors/status",
]


def _request(path: str) -> tuple[int, dict]:
    url = f"{BASE_URL}{path}"
    req = urllib.request.Request(url=url, method="GET", headers={"Accept": "application/json"})
    try:
        with urllib.request.urlopen(req, timeout=30) as resp:
            body = resp.read().decode("utf-8")
            return resp.status, json.loads(body) if body else {}
    except urllib.error.HTTPError as exc:
        # Error envelopes come back with 4xx/5xx; still JSON.
        body = exc.read().decode("utf-8")
        return exc.code, json.loads(body) if body else {}


def main() -> int:
    failures = 0

    for path in ENDPOINTS:
        try:
            status, body = _request(path)
        except urllib.error.URLError as exc:
            print(f"Failed to reach API at {BASE_URL}: {exc}", file=sys.stderr)
            print("Start it first with: uvicorn main:app", file=sys.stderr)
            return 1

        data = body.get("data")
        summary = f"{len(data)} item(s)" if isinstance(data, list) else body.get("error", "")
        print(f"{status}  {path:<32} {summary}")

        if status >= 400:
            failures += 1
            print(json.dumps(body, indent=2))

    return 2 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
