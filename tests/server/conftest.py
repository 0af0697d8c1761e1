"""
Fixtures and helpers shared by all server tests.

Each test gets a fresh in-memory DuckDB — we reset the global _conn before
every test via the autouse `fresh_db` fixture, then pre-init with ":memory:"
so the FastAPI lifespan's init_db() call hits the guard and skips.
"""
import asyncio
import os

import pytest
import server.db as db_module
from fastapi.testclient import TestClient
from server import store
from server.main import app
from server.scanner import Scanner
from shelf import config

# Fixed on-disk mtime used for files created by write_file()
MTIME = 1_700_000_000


@pytest.fixture(autouse=True)
def fresh_db():
    """Give every server test a clean in-memory DuckDB."""
    db_module._conn = None
    db_module.init_db(":memory:")
    yield
    db_module.close_db()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """No user config file and no automatic scans during tests."""
    monkeypatch.setenv("SHELF_CONFIG_PATH", str(tmp_path / "no-such.config"))
    monkeypatch.setenv("SHELF_SCAN_SCHEDULE", "off")
    monkeypatch.delenv("SCAN_DIRECTORY", raising=False)
    config.reset_config()
    yield
    config.reset_config()


@pytest.fixture
def media_root(tmp_path, monkeypatch):
    """An empty media directory configured as the scan root."""
    root = tmp_path / "media"
    root.mkdir()
    monkeypatch.setenv("SCAN_DIRECTORY", str(root))
    config.reset_config()
    return root


@pytest.fixture
def scanner():
    s = Scanner()
    app.state.scanner = s
    yield s
    app.state.scanner = None


@pytest.fixture
def client(scanner):
    """FastAPI TestClient backed by the in-memory DB."""
    # lifespan fires init_db() but _conn is already set → guard skips it
    with TestClient(app) as c:
        yield c


def run(coro):
    return asyncio.run(coro)


def write_file(path, size=10, mtime=MTIME):
    """Create a file of `size` bytes with a fixed mtime; returns its str path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    os.utime(path, (mtime, mtime))
    return str(path)


def make_directory(path="/media", parent_id=None):
    return store.create_directory(os.path.basename(path) or path, path, parent_id)


def make_file(directory, name="file.txt", size=1000, file_type="document",
              extension=".txt", mtime=MTIME, subtitle_paths=None):
    data = {
        "name": name,
        "path": os.path.join(directory.path, name),
        "directory_id": directory.id,
        "file_type": file_type,
        "extension": extension,
        "size": size,
        "mtime": mtime,
    }
    if subtitle_paths is not None:
        data["subtitle_paths"] = subtitle_paths
    return store.create_file(data)
