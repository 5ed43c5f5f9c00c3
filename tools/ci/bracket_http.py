"""Minimal HTTP client helpers for bracket service CI gates.

- Uses stdlib only (urllib) to avoid extra deps in CI.
- Optional auth header (only used to key the rate limiter):
  - Authorization: Bearer <api-key>

Environment variables:
- BRACKET_API_BASE_URL (default: http://localhost:8000)
- BRACKET_API_KEY (optional)
"""

from __future__ import annotations

import json
import os
import urllib.error
import urllib.request
from typing import Any


def env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def post_json(path: str, payload: dict[str, Any], *, timeout_s: int = 30) -> dict[str, Any]:
    base_url = env("BRACKET_API_BASE_URL") or "http://localhost:8000"
    api_key = env("BRACKET_API_KEY")

    url = base_url.rstrip("/") + path
    body = json.dumps(payload).encode("utf-8")

    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"

    req = urllib.request.Request(url=url, data=body, method="POST", headers=headers)

    try:
        with urllib.request.urlopen(req, timeout=timeout_s) as resp:
            raw = resp.read().decode("utf-8")
            return json.loads(raw) if raw else {}
    except urllib.error.HTTPError as e:
        raw = e.read().decode("utf-8") if getattr(e, "fp", None) else ""
        try:
            detail = json.loads(raw) if raw else {"raw": raw}
        except ValueError:
            detail = {"raw": raw}
        raise RuntimeError(f"HTTP {e.code} calling {url}: {detail}") from e
    except urllib.error.URLError as e:
        raise RuntimeError(f"Network error calling {url}: {e}") from e
