"""Incremental filesystem scanner — reconcile a directory tree into the catalog.

One scan pass walks the tree depth-first (subdirectories before the
directory's own files), batches each directory's file writes, recomputes
per-directory stats from the disk listing, then runs two sweeps over the
whole catalog: files whose path vanished and structural-leaf directories
that are empty or gone on disk.  Sweep results are snapshots of the latest
pass and feed the cleanup operations.

All filesystem and database calls are awaited; database work runs in the
default thread pool so API reads keep being served while a scan runs.
"""
from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from typing import Iterable, Optional

import aiofiles.os

from server import store
from server.models import Directory, ScanJob
from shelf.classify import VIDEO, classify_file
from shelf.subtitles import find_subtitles

logger = logging.getLogger("shelf.scanner")


class ScanError(Exception):
    """Base class for scan failures surfaced to callers."""


class ScanAlreadyInProgress(ScanError):
    """A scan is already running in this process."""


class DirectoryNotAccessible(ScanError):
    """The scan root cannot be read; no scan job was created."""


@dataclass
class ScanStats:
    directories: int = 0
    files_seen: int = 0
    bytes_seen: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    errors: int = 0

    @property
    def processed(self) -> int:
        return self.created + self.updated

    def merge(self, other: "ScanStats") -> None:
        self.directories += other.directories
        self.files_seen += other.files_seen
        self.bytes_seen += other.bytes_seen
        self.created += other.created
        self.updated += other.updated
        self.unchanged += other.unchanged
        self.errors += other.errors


@dataclass
class _FileEntry:
    name: str
    path: str
    extension: str
    file_type: str
    size: int
    mtime: int


def _list_entries(path: str) -> tuple[list[str], list[str]]:
    """
    Read a directory once and split it into (subdirectory paths, file names).
    Symlinks, special files and names that are not valid UTF-8 are skipped.
    """
    subdirs: list[str] = []
    names: list[str] = []
    with os.scandir(path) as it:
        for entry in it:
            try:
                entry.path.encode("utf-8")
            except UnicodeEncodeError:
                logger.warning("skipping undecodable name %r", entry.path)
                continue
            try:
                if entry.is_symlink():
                    continue
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(entry.path)
                elif entry.is_file(follow_symlinks=False):
                    names.append(entry.name)
            except OSError as e:
                logger.warning("cannot read entry %s: %s", entry.path, e)
    subdirs.sort()
    names.sort()
    return subdirs, names


async def _is_empty_on_disk(path: str) -> bool:
    """True when path is gone, is not a directory, or has no entries."""
    if not await aiofiles.os.path.exists(path):
        return True
    if not await aiofiles.os.path.isdir(path):
        return True
    try:
        names = await aiofiles.os.listdir(path)
    except OSError as e:
        logger.warning("cannot list %s: %s", path, e)
        return False
    return not names


class Scanner:
    """Single-instance scan service.

    Holds the single-flight guard and the latest sweep results.  State is only
    touched from the event loop, so no locking is needed.
    """

    def __init__(self) -> None:
        self.current_job_id: Optional[str] = None
        self.last_stats: Optional[ScanStats] = None
        self._in_flight = False
        self._deleted_files: set[str] = set()
        self._empty_directories: set[str] = set()

    @property
    def is_scanning(self) -> bool:
        return self._in_flight

    # ------------------------------------------------------------------
    # Scan pass
    # ------------------------------------------------------------------

    async def start_scan(self, root_path: str) -> ScanJob:
        """Run one full scan pass over root_path and return the finished job.

        Raises ScanAlreadyInProgress if another scan is running and
        DirectoryNotAccessible if root_path cannot be read.  Any failure after
        the job is created marks it 'error' and is re-raised.
        """
        # Claimed before the first await so two callers cannot both pass.
        if self._in_flight:
            raise ScanAlreadyInProgress("Scan already in progress")
        self._in_flight = True
        try:
            root = os.path.abspath(root_path)
            if not (
                await aiofiles.os.path.isdir(root)
                and await aiofiles.os.access(root, os.R_OK | os.X_OK)
            ):
                raise DirectoryNotAccessible(f"Directory not accessible: {root}")

            job = await asyncio.to_thread(
                store.create_scan_job, "scanning", 0, root
            )
            self.current_job_id = job.id
            logger.info("Scan %s started: %s", job.id, root)
            started = time.monotonic()

            try:
                stats = await self._reconcile_directory(root, None)
                await self.detect_deleted_files()
                await self.detect_empty_directories()
            except Exception as e:
                logger.exception("Scan %s failed", job.id)
                await asyncio.to_thread(
                    store.update_scan_job,
                    job.id,
                    {
                        "status": "error",
                        "error": str(e) or type(e).__name__,
                        "completed_at": store.now(),
                    },
                )
                raise

            self.last_stats = stats
            job = await asyncio.to_thread(
                store.update_scan_job,
                job.id,
                {
                    "status": "completed",
                    "progress": 100,
                    "total_files": stats.files_seen,
                    "processed_files": stats.processed,
                    "completed_at": store.now(),
                },
            )
            logger.info(
                "Scan %s completed in %.1fs: %d dirs, %d files "
                "(%d created, %d updated, %d unchanged, %d errors)",
                job.id, time.monotonic() - started, stats.directories,
                stats.files_seen, stats.created, stats.updated,
                stats.unchanged, stats.errors,
            )
            return job
        finally:
            self.current_job_id = None
            self._in_flight = False

    async def _reconcile_directory(self, path: str, parent_id: Optional[str]) -> ScanStats:
        """Reconcile path and everything below it; return aggregated stats."""
        subdirs, names = await asyncio.to_thread(_list_entries, path)

        directory = await asyncio.to_thread(store.get_directory_by_path, path)
        if directory is None:
            directory = await asyncio.to_thread(
                store.create_directory, os.path.basename(path) or path, path, parent_id
            )

        stats = ScanStats(directories=1)
        for subdir in subdirs:
            try:
                stats.merge(await self._reconcile_directory(subdir, directory.id))
            except Exception:
                logger.exception("Failed to reconcile %s, skipping subtree", subdir)
                stats.errors += 1

        stats.merge(await self._process_files(directory, names))
        return stats

    async def _process_files(self, directory: Directory, names: list[str]) -> ScanStats:
        """Stat, diff by mtime and batch-write one directory's files."""
        stats = ScanStats()
        entries: list[_FileEntry] = []
        for name in names:
            path = os.path.join(directory.path, name)
            try:
                st = await aiofiles.os.stat(path)
            except OSError as e:
                logger.warning("cannot stat %s: %s", path, e)
                stats.errors += 1
                continue
            ext, file_type = classify_file(name)
            entries.append(_FileEntry(
                name=name, path=path, extension=ext, file_type=file_type,
                size=st.st_size, mtime=st.st_mtime_ns,
            ))

        existing = await asyncio.to_thread(
            store.get_files_by_paths, [e.path for e in entries]
        )

        to_create: list[dict] = []
        to_update: list[tuple[str, dict]] = []
        for entry in entries:
            record = existing.get(entry.path)
            if record is not None and record.mtime == entry.mtime:
                stats.unchanged += 1
                continue
            fields = {
                "name": entry.name,
                "directory_id": directory.id,
                "file_type": entry.file_type,
                "extension": entry.extension,
                "size": entry.size,
                "mtime": entry.mtime,
            }
            if entry.file_type == VIDEO:
                fields["subtitle_paths"] = await find_subtitles(entry.path)
            if record is None:
                to_create.append({"path": entry.path, **fields})
            else:
                to_update.append((record.id, fields))

        if to_create:
            await asyncio.to_thread(store.batch_create_files, to_create)
        if to_update:
            await asyncio.to_thread(store.batch_update_files, to_update)
        stats.created += len(to_create)
        stats.updated += len(to_update)

        # Stats come from the disk listing, not the catalog.
        total_size = sum(e.size for e in entries)
        await asyncio.to_thread(
            store.update_directory,
            directory.id,
            {"file_count": len(entries), "total_size": total_size},
        )
        stats.files_seen += len(entries)
        stats.bytes_seen += total_size
        return stats

    # ------------------------------------------------------------------
    # Sweeps
    # ------------------------------------------------------------------

    async def detect_deleted_files(self) -> list[str]:
        """Collect ids of File records whose path is no longer a regular file."""
        files = await asyncio.to_thread(store.get_all_files)
        missing = set()
        for f in files:
            if not await aiofiles.os.path.isfile(f.path):
                missing.add(f.id)
        self._deleted_files = missing
        logger.info("Deleted-file sweep: %d of %d files missing on disk",
                    len(missing), len(files))
        return self.get_deleted_files()

    async def detect_empty_directories(self) -> list[str]:
        """Collect ids of structural-leaf directories that are empty or gone."""
        candidates = await asyncio.to_thread(store.get_empty_directories)
        empty = set()
        for d in candidates:
            if await _is_empty_on_disk(d.path):
                empty.add(d.id)
        self._empty_directories = empty
        logger.info("Empty-directory sweep: %d of %d leaf directories empty",
                    len(empty), len(candidates))
        return self.get_empty_directories()

    def get_deleted_files(self) -> list[str]:
        return sorted(self._deleted_files)

    def get_empty_directories(self) -> list[str]:
        return sorted(self._empty_directories)

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    async def cleanup_deleted_files(self, ids: Iterable[str]) -> int:
        """
        Delete File records by id and drop them from the tracked set.
        Idempotent; a store failure leaves the tracked set untouched.
        """
        ids = list(dict.fromkeys(ids))
        removed = await asyncio.to_thread(store.batch_delete_files, ids)
        self._deleted_files.difference_update(ids)
        logger.info("Cleaned up %d deleted file record(s)", removed)
        return removed

    async def cleanup_empty_directories(self, ids: Iterable[str]) -> int:
        ids = list(dict.fromkeys(ids))
        removed = await asyncio.to_thread(store.batch_delete_directories, ids)
        self._empty_directories.difference_update(ids)
        logger.info("Cleaned up %d empty directory record(s)", removed)
        return removed
