"""DuckDB connection, schema DDL, thread-safe query helpers."""
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import duckdb

_lock = threading.RLock()
_conn: duckdb.DuckDBPyConnection | None = None

# Timestamps are naive UTC.  files.mtime is the on-disk st_mtime_ns.
# subtitle_paths holds a JSON array of absolute paths.
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS directories (
    id          TEXT        PRIMARY KEY,
    name        TEXT        NOT NULL,
    path        TEXT        NOT NULL UNIQUE,
    parent_id   TEXT,
    file_count  INTEGER     NOT NULL DEFAULT 0,
    total_size  BIGINT      NOT NULL DEFAULT 0,
    created_at  TIMESTAMP   NOT NULL,
    updated_at  TIMESTAMP   NOT NULL
);

CREATE TABLE IF NOT EXISTS files (
    id              TEXT        PRIMARY KEY,
    name            TEXT        NOT NULL,
    path            TEXT        NOT NULL UNIQUE,
    directory_id    TEXT        NOT NULL,
    file_type       TEXT        NOT NULL DEFAULT 'other',
    extension       TEXT        NOT NULL DEFAULT '',
    size            BIGINT      NOT NULL DEFAULT 0,
    thumbnail_path  TEXT,
    duration        INTEGER,
    width           INTEGER,
    height          INTEGER,
    has_subtitles   BOOLEAN     NOT NULL DEFAULT FALSE,
    subtitle_paths  TEXT        NOT NULL DEFAULT '[]',
    mtime           BIGINT,
    created_at      TIMESTAMP   NOT NULL,
    updated_at      TIMESTAMP   NOT NULL
);

CREATE TABLE IF NOT EXISTS scan_jobs (
    id               TEXT       PRIMARY KEY,
    status           TEXT       NOT NULL DEFAULT 'idle',
    progress         INTEGER    NOT NULL DEFAULT 0,
    root_path        TEXT,
    total_files      INTEGER    NOT NULL DEFAULT 0,
    processed_files  INTEGER    NOT NULL DEFAULT 0,
    started_at       TIMESTAMP,
    completed_at     TIMESTAMP,
    error            TEXT
);

CREATE TABLE IF NOT EXISTS recent_file_views (
    id          TEXT        PRIMARY KEY,
    user_id     TEXT        NOT NULL,
    file_id     TEXT        NOT NULL,
    view_type   TEXT        NOT NULL,
    viewed_at   TIMESTAMP   NOT NULL
);

CREATE TABLE IF NOT EXISTS video_progress (
    id              TEXT        PRIMARY KEY,
    user_id         TEXT        NOT NULL,
    file_id         TEXT        NOT NULL,
    current_secs    INTEGER     NOT NULL DEFAULT 0,
    duration_secs   INTEGER     NOT NULL DEFAULT 0,
    is_watched      BOOLEAN     NOT NULL DEFAULT FALSE,
    last_watched    TIMESTAMP   NOT NULL,
    created_at      TIMESTAMP   NOT NULL,
    updated_at      TIMESTAMP   NOT NULL,
    UNIQUE (user_id, file_id)
);

CREATE INDEX IF NOT EXISTS idx_files_directory  ON files(directory_id);
CREATE INDEX IF NOT EXISTS idx_files_updated    ON files(updated_at);
CREATE INDEX IF NOT EXISTS idx_dirs_parent      ON directories(parent_id);
CREATE INDEX IF NOT EXISTS idx_jobs_started     ON scan_jobs(started_at);
CREATE INDEX IF NOT EXISTS idx_views_user       ON recent_file_views(user_id, viewed_at);
"""


def get_db_path() -> str:
    if path := os.environ.get("SHELF_DB_PATH"):
        return path
    return str(Path.home() / ".shelf.duckdb")


def get_connection() -> duckdb.DuckDBPyConnection:
    global _conn
    if _conn is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _conn


def init_db(db_path: str | None = None) -> None:
    global _conn
    with _lock:
        if _conn is not None:
            return
        path = db_path or get_db_path()
        _conn = duckdb.connect(path)
        for stmt in _split_statements(SCHEMA_SQL):
            if stmt.strip():
                _conn.execute(stmt)


def close_db() -> None:
    global _conn
    with _lock:
        if _conn is not None:
            _conn.close()
        _conn = None


def _split_statements(sql: str) -> list[str]:
    """Split SQL on semicolons, preserving statement integrity."""
    return [s.strip() for s in sql.split(";") if s.strip()]


def execute(sql: str, params: list[Any] | None = None) -> None:
    """Execute a write statement under the global lock."""
    with _lock:
        conn = get_connection()
        if params:
            conn.execute(sql, params)
        else:
            conn.execute(sql)


def query(sql: str, params: list[Any] | None = None) -> list[tuple]:
    """Execute a SELECT and return all rows under the global lock."""
    with _lock:
        conn = get_connection()
        if params:
            result = conn.execute(sql, params)
        else:
            result = conn.execute(sql)
        return result.fetchall()


def query_one(sql: str, params: list[Any] | None = None) -> tuple | None:
    """Execute a SELECT and return the first row, or None."""
    rows = query(sql, params)
    return rows[0] if rows else None


@contextmanager
def transaction() -> Iterator[duckdb.DuckDBPyConnection]:
    """
    Hold the global lock for a BEGIN … COMMIT block.
    Any exception rolls the whole block back and propagates.
    """
    with _lock:
        conn = get_connection()
        conn.execute("BEGIN TRANSACTION")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
