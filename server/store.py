"""Catalog store — CRUD and batch operations over directories, files and scan jobs.

Every function is synchronous and serialized by the global DuckDB lock in
`server.db`.  Batch writes are all-or-nothing: each batch runs in a single
transaction and a failing row rolls back the whole batch.
"""
from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

import duckdb

from server import db
from server.models import Directory, FileItem, ScanJob

# Rows per multi-row INSERT statement
INSERT_CHUNK_SIZE = 500


class StoreError(Exception):
    """Base class for catalog store failures."""


class ConstraintViolation(StoreError):
    """A unique column (directory or file path) already holds the value."""


class NotFound(StoreError):
    """No record with the requested id."""


_DIR_COLS = [
    "id", "name", "path", "parent_id", "file_count", "total_size",
    "created_at", "updated_at",
]
FILE_COLUMNS = [
    "id", "name", "path", "directory_id", "file_type", "extension", "size",
    "thumbnail_path", "duration", "width", "height", "has_subtitles",
    "subtitle_paths", "mtime", "created_at", "updated_at",
]
_JOB_COLS = [
    "id", "status", "progress", "root_path", "total_files", "processed_files",
    "started_at", "completed_at", "error",
]

_DIR_UPDATABLE = frozenset({"name", "parent_id", "file_count", "total_size"})
_FILE_UPDATABLE = frozenset(FILE_COLUMNS) - {"id", "created_at", "updated_at"}
_JOB_UPDATABLE = frozenset(_JOB_COLS) - {"id"}


def now() -> datetime:
    """Naive UTC timestamp, matching the TIMESTAMP columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


def select_list(cols: list[str], alias: str = "") -> str:
    prefix = f"{alias}." if alias else ""
    return ", ".join(prefix + c for c in cols)


def _placeholders(n: int) -> str:
    return ", ".join(["?"] * n)


def _directory(row: tuple) -> Directory:
    return Directory(**dict(zip(_DIR_COLS, row)))


def file_from_row(row: tuple) -> FileItem:
    data = dict(zip(FILE_COLUMNS, row))
    data["subtitle_paths"] = json.loads(data["subtitle_paths"] or "[]")
    return FileItem(**data)


def _job(row: tuple) -> ScanJob:
    return ScanJob(**dict(zip(_JOB_COLS, row)))


def _check_fields(fields: dict[str, Any], allowed: frozenset) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"cannot update column(s): {', '.join(sorted(unknown))}")


def _file_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Encode subtitle_paths for storage and derive has_subtitles from it."""
    out = dict(fields)
    if "subtitle_paths" in out:
        paths = list(out["subtitle_paths"] or [])
        out["subtitle_paths"] = json.dumps(paths)
        out["has_subtitles"] = bool(paths)
    elif "has_subtitles" in out:
        raise ValueError("has_subtitles is derived from subtitle_paths")
    return out


def _update_row(conn: duckdb.DuckDBPyConnection, table: str, record_id: str,
                fields: dict[str, Any], stamp: Optional[datetime]) -> None:
    assignments = [f"{col} = ?" for col in fields]
    params = list(fields.values())
    if stamp is not None:
        assignments.append("updated_at = ?")
        params.append(stamp)
    if not assignments:
        row = conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", [record_id]).fetchone()
        count = 1 if row else 0
    else:
        params.append(record_id)
        count = conn.execute(
            f"UPDATE {table} SET {', '.join(assignments)} WHERE id = ?", params
        ).fetchone()[0]
    if not count:
        raise NotFound(f"{table}: no record with id {record_id}")


# ---------------------------------------------------------------------------
# Directories
# ---------------------------------------------------------------------------


def get_directories() -> list[Directory]:
    rows = db.query(f"SELECT {select_list(_DIR_COLS)} FROM directories ORDER BY path")
    return [_directory(r) for r in rows]


def get_subdirectories(parent_id: Optional[str]) -> list[Directory]:
    """Children of parent_id; None lists the scan roots."""
    if parent_id is None:
        rows = db.query(
            f"SELECT {select_list(_DIR_COLS)} FROM directories WHERE parent_id IS NULL ORDER BY path"
        )
    else:
        rows = db.query(
            f"SELECT {select_list(_DIR_COLS)} FROM directories WHERE parent_id = ? ORDER BY path",
            [parent_id],
        )
    return [_directory(r) for r in rows]


def get_directory(directory_id: str) -> Optional[Directory]:
    row = db.query_one(
        f"SELECT {select_list(_DIR_COLS)} FROM directories WHERE id = ?", [directory_id]
    )
    return _directory(row) if row else None


def get_directory_by_path(path: str) -> Optional[Directory]:
    row = db.query_one(
        f"SELECT {select_list(_DIR_COLS)} FROM directories WHERE path = ?", [path]
    )
    return _directory(row) if row else None


def get_directories_by_ids(ids: Iterable[str]) -> list[Directory]:
    ids = list(ids)
    if not ids:
        return []
    rows = db.query(
        f"SELECT {select_list(_DIR_COLS)} FROM directories "
        f"WHERE id IN ({_placeholders(len(ids))}) ORDER BY path",
        ids,
    )
    return [_directory(r) for r in rows]


def create_directory(name: str, path: str, parent_id: Optional[str] = None) -> Directory:
    if parent_id is not None and get_directory(parent_id) is None:
        raise NotFound(f"directories: parent {parent_id} does not exist")
    stamp = now()
    directory = Directory(
        id=new_id(), name=name, path=path, parent_id=parent_id,
        file_count=0, total_size=0, created_at=stamp, updated_at=stamp,
    )
    try:
        db.execute(
            f"INSERT INTO directories ({select_list(_DIR_COLS)}) VALUES ({_placeholders(len(_DIR_COLS))})",
            [getattr(directory, c) for c in _DIR_COLS],
        )
    except duckdb.ConstraintException as e:
        raise ConstraintViolation(f"directory path already exists: {path}") from e
    return directory


def update_directory(directory_id: str, fields: dict[str, Any]) -> Directory:
    _check_fields(fields, _DIR_UPDATABLE)
    with db.transaction() as conn:
        _update_row(conn, "directories", directory_id, fields, now())
    return get_directory(directory_id)


def get_empty_directories() -> list[Directory]:
    """
    Structural leaves: no File records point at the directory and no
    Directory records name it as parent.
    """
    rows = db.query(
        f"""
        SELECT {select_list(_DIR_COLS, "d")} FROM directories d
        WHERE NOT EXISTS (SELECT 1 FROM files f WHERE f.directory_id = d.id)
          AND NOT EXISTS (SELECT 1 FROM directories c WHERE c.parent_id = d.id)
        ORDER BY d.path
        """
    )
    return [_directory(r) for r in rows]


def batch_delete_directories(ids: Iterable[str]) -> int:
    """Delete by id set.  Unknown ids are ignored; returns rows removed."""
    ids = list(ids)
    if not ids:
        return 0
    with db.transaction() as conn:
        row = conn.execute(
            f"DELETE FROM directories WHERE id IN ({_placeholders(len(ids))})", ids
        ).fetchone()
    return row[0] if row else 0


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def get_files(directory_id: Optional[str] = None, search: Optional[str] = None) -> list[FileItem]:
    """Files filtered by exact directory and case-insensitive name substring,
    most recently updated first."""
    clauses = []
    params: list[Any] = []
    if directory_id:
        clauses.append("directory_id = ?")
        params.append(directory_id)
    if search:
        clauses.append("strpos(lower(name), lower(?)) > 0")
        params.append(search)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = db.query(
        f"SELECT {select_list(FILE_COLUMNS)} FROM files {where} ORDER BY updated_at DESC, name",
        params,
    )
    return [file_from_row(r) for r in rows]


def get_file(file_id: str) -> Optional[FileItem]:
    row = db.query_one(f"SELECT {select_list(FILE_COLUMNS)} FROM files WHERE id = ?", [file_id])
    return file_from_row(row) if row else None


def get_file_by_path(path: str) -> Optional[FileItem]:
    row = db.query_one(f"SELECT {select_list(FILE_COLUMNS)} FROM files WHERE path = ?", [path])
    return file_from_row(row) if row else None


def get_files_by_paths(paths: Iterable[str]) -> dict[str, FileItem]:
    """Batch lookup: path → File for every path that has a record."""
    paths = list(paths)
    if not paths:
        return {}
    rows = db.query(
        f"SELECT {select_list(FILE_COLUMNS)} FROM files WHERE path IN ({_placeholders(len(paths))})",
        paths,
    )
    files = [file_from_row(r) for r in rows]
    return {f.path: f for f in files}


def get_files_by_ids(ids: Iterable[str]) -> list[FileItem]:
    ids = list(ids)
    if not ids:
        return []
    rows = db.query(
        f"SELECT {select_list(FILE_COLUMNS)} FROM files "
        f"WHERE id IN ({_placeholders(len(ids))}) ORDER BY path",
        ids,
    )
    return [file_from_row(r) for r in rows]


def get_all_files() -> list[FileItem]:
    rows = db.query(f"SELECT {select_list(FILE_COLUMNS)} FROM files ORDER BY path")
    return [file_from_row(r) for r in rows]


_FILE_DEFAULTS: dict[str, Any] = {
    "file_type": "other",
    "extension": "",
    "size": 0,
    "subtitle_paths": [],
}


def _new_file_row(data: dict[str, Any], stamp: datetime) -> list[Any]:
    fields = _file_fields({**_FILE_DEFAULTS, **data})
    _check_fields(fields, _FILE_UPDATABLE)
    for required in ("name", "path", "directory_id"):
        if not fields.get(required):
            raise ValueError(f"file record needs {required}")
    fields.update(id=new_id(), created_at=stamp, updated_at=stamp)
    return [fields.get(c) for c in FILE_COLUMNS]


def create_file(data: dict[str, Any]) -> FileItem:
    return batch_create_files([data])[0]


def update_file(file_id: str, fields: dict[str, Any]) -> FileItem:
    batch_update_files([(file_id, fields)])
    return get_file(file_id)


def batch_create_files(items: list[dict[str, Any]]) -> list[FileItem]:
    """
    Insert every item in one transaction (multi-row INSERT per chunk).
    A duplicate path anywhere in the batch raises ConstraintViolation and
    nothing is written.
    """
    if not items:
        return []
    stamp = now()
    rows = [_new_file_row(item, stamp) for item in items]
    row_ph = f"({_placeholders(len(FILE_COLUMNS))})"
    dir_ids = sorted({item["directory_id"] for item in items})
    try:
        with db.transaction() as conn:
            known = conn.execute(
                f"SELECT count(*) FROM directories WHERE id IN ({_placeholders(len(dir_ids))})",
                dir_ids,
            ).fetchone()[0]
            if known != len(dir_ids):
                raise NotFound("files: directory_id does not reference an existing directory")
            for start in range(0, len(rows), INSERT_CHUNK_SIZE):
                chunk = rows[start:start + INSERT_CHUNK_SIZE]
                params: list[Any] = []
                for r in chunk:
                    params.extend(r)
                conn.execute(
                    f"INSERT INTO files ({select_list(FILE_COLUMNS)}) "
                    f"VALUES {', '.join([row_ph] * len(chunk))}",
                    params,
                )
    except duckdb.ConstraintException as e:
        raise ConstraintViolation(f"file path already exists: {e}") from e
    return [file_from_row(tuple(r)) for r in rows]


def batch_update_files(updates: list[tuple[str, dict[str, Any]]]) -> int:
    """
    Apply (id, partial fields) pairs in one transaction.
    An unknown id raises NotFound and rolls back the whole batch.
    """
    if not updates:
        return 0
    prepared = []
    for file_id, fields in updates:
        encoded = _file_fields(fields)
        _check_fields(encoded, _FILE_UPDATABLE)
        prepared.append((file_id, encoded))
    stamp = now()
    try:
        with db.transaction() as conn:
            for file_id, fields in prepared:
                _update_row(conn, "files", file_id, fields, stamp)
    except duckdb.ConstraintException as e:
        raise ConstraintViolation(f"file path already exists: {e}") from e
    return len(prepared)


def batch_delete_files(ids: Iterable[str]) -> int:
    """Delete by id set.  Unknown ids are ignored; returns rows removed."""
    ids = list(ids)
    if not ids:
        return 0
    with db.transaction() as conn:
        row = conn.execute(
            f"DELETE FROM files WHERE id IN ({_placeholders(len(ids))})", ids
        ).fetchone()
    return row[0] if row else 0


def get_total_stats() -> dict[str, int]:
    row = db.query_one("SELECT count(*), coalesce(sum(size), 0) FROM files")
    return {"total_files": int(row[0]), "total_size": int(row[1])}


# ---------------------------------------------------------------------------
# Scan jobs
# ---------------------------------------------------------------------------


def create_scan_job(status: str = "scanning", progress: int = 0,
                    root_path: Optional[str] = None,
                    started_at: Optional[datetime] = None) -> ScanJob:
    job = ScanJob(
        id=new_id(), status=status, progress=progress, root_path=root_path,
        started_at=started_at or now(),
    )
    db.execute(
        f"INSERT INTO scan_jobs ({select_list(_JOB_COLS)}) VALUES ({_placeholders(len(_JOB_COLS))})",
        [getattr(job, c) for c in _JOB_COLS],
    )
    return job


def update_scan_job(job_id: str, fields: dict[str, Any]) -> ScanJob:
    _check_fields(fields, _JOB_UPDATABLE)
    with db.transaction() as conn:
        _update_row(conn, "scan_jobs", job_id, fields, None)
    return get_scan_job(job_id)


def get_scan_job(job_id: str) -> Optional[ScanJob]:
    row = db.query_one(f"SELECT {select_list(_JOB_COLS)} FROM scan_jobs WHERE id = ?", [job_id])
    return _job(row) if row else None


def get_current_scan_job() -> Optional[ScanJob]:
    """Most recent job by start time."""
    row = db.query_one(
        f"SELECT {select_list(_JOB_COLS)} FROM scan_jobs "
        "ORDER BY started_at DESC NULLS LAST LIMIT 1"
    )
    return _job(row) if row else None


def get_scan_jobs(limit: int = 50) -> list[ScanJob]:
    rows = db.query(
        f"SELECT {select_list(_JOB_COLS)} FROM scan_jobs "
        "ORDER BY started_at DESC NULLS LAST LIMIT ?",
        [limit],
    )
    return [_job(r) for r in rows]
