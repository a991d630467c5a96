"""Post-deploy smoke checks executed from the app container."""

from __future__ import annotations

import json
import os
import urllib.error
import urllib.request
from datetime import UTC, datetime, timedelta
from uuid import uuid4

BASE_URL = os.getenv("SMOKE_BASE_URL", "http://localhost:8000").rstrip("/")
API_PREFIX = os.getenv("SMOKE_API_PREFIX", "/api/v1")


def request(
    path: str,
    *,
    headers: dict[str, str] | None = None,
    expected: int = 200,
) -> bytes:
    req_headers = {"Accept": "application/json"}
    if headers:
        req_headers.update(headers)

    request_obj = urllib.request.Request(f"{BASE_URL}{path}", method="GET", headers=req_headers)
    try:
        with urllib.request.urlopen(request_obj, timeout=30) as response:
            content = response.read()
            status = response.getcode()
    except urllib.error.HTTPError as exc:  # pragma: no cover - runtime smoke script
        if exc.code == expected:
            return exc.read()
        body_text = exc.read().decode("utf-8", errors="ignore")
        raise RuntimeError(f"GET {path} -> {exc.code}: {body_text}") from exc

    if status != expected:
        raise RuntimeError(f"GET {path} -> {status}, expected {expected}")
    return content


def main() -> None:
    for endpoint in ["/health", "/ready", "/docs", "/metrics"]:
        request(endpoint, expected=200)

    # Unknown tutor is a 404 from the DB-backed read path.
    tomorrow = (datetime.now(UTC).date() + timedelta(days=1)).isoformat()
    body = json.loads(request(f"{API_PREFIX}/availability/slots/{uuid4()}/{tomorrow}", expected=404))
    if body.get("error", {}).get("code") != "not_found":
        raise RuntimeError(f"Unexpected error body for unknown tutor: {body}")

    request(f"{API_PREFIX}/identity/users/me", expected=401)

    token = os.getenv("SMOKE_ACCESS_TOKEN")
    if token:
        request(
            f"{API_PREFIX}/identity/users/me",
            headers={"Authorization": f"Bearer {token}"},
            expected=200,
        )

    print("Smoke checks passed.")


if __name__ == "__main__":
    main()
