"""
Integration test configuration.

Set SHELF_TEST_SERVER to run these tests against a live server, e.g.:
    SHELF_TEST_SERVER=http://192.168.1.200:8765 pytest -m integration

Tests are skipped automatically if the server is unreachable.
"""
import os
import pytest
import requests


SHELF_TEST_SERVER = os.environ.get("SHELF_TEST_SERVER", "http://localhost:8765")


@pytest.fixture(scope="session")
def live_client():
    """
    A thin wrapper around requests.Session pointed at the live server.
    Skips if the server is unreachable.
    """
    session = requests.Session()
    session.base_url = SHELF_TEST_SERVER

    try:
        r = session.get(f"{SHELF_TEST_SERVER}/api/scan/status", timeout=5)
        r.raise_for_status()
    except Exception as e:
        pytest.skip(f"Live server not reachable at {SHELF_TEST_SERVER}: {e}")

    return session


def get(session, path, **params):
    url = f"{session.base_url}{path}"
    r = session.get(url, params=params or None, timeout=30)
    r.raise_for_status()
    return r.json()
