"""Shared HTTP client for the mediashelf server."""
from __future__ import annotations

from typing import Any

import requests
from requests.adapters import HTTPAdapter

from shelf.config import get_server_url

# A manual scan holds the request open until the pass finishes
SCAN_TIMEOUT = (5, 3600)


def _make_session() -> requests.Session:
    session = requests.Session()
    adapter = HTTPAdapter()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


# Module-level singleton: one TCP connection pool per process
_session: requests.Session | None = None


def _get_session() -> requests.Session:
    global _session
    if _session is None:
        _session = _make_session()
    return _session


def api_url(path: str) -> str:
    """Construct full API URL from config server URL + path."""
    base = get_server_url().rstrip("/")
    return f"{base}{path}"


def get(path: str, params: dict | None = None) -> Any:
    resp = _get_session().get(api_url(path), params=params, timeout=(5, 30))
    resp.raise_for_status()
    return resp.json()


def post(path: str, data: Any = None, timeout: tuple = (5, 30)) -> Any:
    resp = _get_session().post(api_url(path), json=data, timeout=timeout)
    resp.raise_for_status()
    return resp.json()


def error_detail(exc: Exception) -> str:
    """Best-effort message from a failed request: the server's `detail` if any."""
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        try:
            detail = exc.response.json().get("detail")
        except ValueError:
            detail = None
        if detail:
            return str(detail)
    return str(exc)
