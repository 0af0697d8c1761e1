"""FastAPI application — all endpoints."""

from __future__ import annotations

import logging
import mimetypes
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("shelf.server")

from server import db, store, views
from server.models import (
    CleanupResponse,
    CleanupStatus,
    Directory,
    DirectoryCleanupRequest,
    FileCleanupRequest,
    FileItem,
    RecentFileEntry,
    RecentFileView,
    RecentViewCreate,
    ScanJob,
    StatsOverview,
    SubtitleTrack,
    VideoProgress,
    VideoProgressUpdate,
)
from server.scanner import DirectoryNotAccessible, ScanAlreadyInProgress, Scanner
from server.scheduler import ScanScheduler
from shelf.classify import VIDEO
from shelf.config import get_scan_root, get_scan_schedule
from shelf.subtitles import subtitle_language


@asynccontextmanager
async def lifespan(app: FastAPI):
    db_path = os.environ.get("SHELF_DB_PATH") or db.get_db_path()
    db.init_db(db_path)
    if getattr(app.state, "scanner", None) is None:
        app.state.scanner = Scanner()
    scheduler = ScanScheduler(app.state.scanner, get_scan_root(), get_scan_schedule())
    scheduler.start()
    try:
        yield
    finally:
        await scheduler.stop()


app = FastAPI(title="mediashelf", version="0.1.0", lifespan=lifespan)
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.monotonic()
    response = await call_next(request)
    elapsed = time.monotonic() - start
    path = request.url.path
    # Skip static asset noise
    if path.startswith("/assets/") or path == "/favicon.ico":
        return response
    if elapsed > 1.0:
        logger.warning(
            "%s %s %d — %.1fs", request.method, path, response.status_code, elapsed
        )
    elif request.method in ("POST", "PATCH", "DELETE"):
        logger.info(
            "%s %s %d — %.3fs", request.method, path, response.status_code, elapsed
        )
    return response


def get_scanner(request: Request) -> Scanner:
    return request.app.state.scanner


def _file_or_404(file_id: str) -> FileItem:
    f = store.get_file(file_id)
    if f is None:
        raise HTTPException(404, "File not found")
    return f


# Static frontend is mounted AFTER all API routes (see bottom of file)


# ---------------------------------------------------------------------------
# Browsing
# ---------------------------------------------------------------------------


@app.get("/api/directories", response_model=list[Directory])
def list_directories(parent_id: Optional[str] = None, roots: bool = False):
    if roots:
        return store.get_subdirectories(None)
    if parent_id:
        return store.get_subdirectories(parent_id)
    return store.get_directories()


@app.get("/api/directories/{directory_id}", response_model=Directory)
def get_directory(directory_id: str):
    directory = store.get_directory(directory_id)
    if directory is None:
        raise HTTPException(404, "Directory not found")
    return directory


@app.get("/api/files", response_model=list[FileItem])
def list_files(directory_id: Optional[str] = None, search: Optional[str] = None):
    return store.get_files(directory_id, search)


@app.get("/api/files/{file_id}", response_model=FileItem)
def get_file(file_id: str):
    return _file_or_404(file_id)


@app.get("/api/files/{file_id}/download")
def download_file(file_id: str):
    f = _file_or_404(file_id)
    if not os.path.isfile(f.path):
        raise HTTPException(404, "File not found on disk")
    return FileResponse(f.path, filename=f.name)


@app.get("/api/files/{file_id}/stream")
def stream_video(file_id: str):
    f = store.get_file(file_id)
    if f is None or f.file_type != VIDEO:
        raise HTTPException(404, "Video file not found")
    if not os.path.isfile(f.path):
        raise HTTPException(404, "Video file not found on disk")
    media_type = mimetypes.guess_type(f.path)[0] or "video/mp4"
    return FileResponse(f.path, media_type=media_type)


@app.get("/api/files/{file_id}/subtitles", response_model=list[SubtitleTrack])
def list_subtitles(file_id: str):
    f = store.get_file(file_id)
    if f is None:
        return []
    return [
        SubtitleTrack(path=p, name=os.path.basename(p), language=subtitle_language(p))
        for p in f.subtitle_paths
        if os.path.isfile(p)
    ]


@app.get("/api/files/{file_id}/subtitles/{index}")
def serve_subtitle(file_id: str, index: int):
    f = _file_or_404(file_id)
    if not 0 <= index < len(f.subtitle_paths):
        raise HTTPException(404, "Subtitle file not found")
    path = f.subtitle_paths[index]
    if not os.path.isfile(path):
        raise HTTPException(404, "Subtitle file not found")
    return FileResponse(path, media_type="text/plain; charset=utf-8")


@app.get("/api/stats", response_model=StatsOverview)
def stats():
    return store.get_total_stats()


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------


@app.get("/api/scan/status")
def scan_status():
    job = store.get_current_scan_job()
    if job is None:
        return {"status": "idle", "progress": 0}
    return job


@app.get("/api/scan/jobs", response_model=list[ScanJob])
def scan_jobs(limit: int = Query(20, ge=1, le=500)):
    return store.get_scan_jobs(limit)


@app.post("/api/scan/start", response_model=ScanJob)
async def start_scan(scanner: Scanner = Depends(get_scanner)):
    try:
        return await scanner.start_scan(get_scan_root())
    except ScanAlreadyInProgress:
        raise HTTPException(409, "Scan already in progress")
    except DirectoryNotAccessible as e:
        raise HTTPException(500, str(e))
    except Exception:
        raise HTTPException(500, "Failed to start scan")


# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------


@app.get("/api/cleanup/status", response_model=CleanupStatus)
async def cleanup_status(scanner: Scanner = Depends(get_scanner)):
    deleted = len(scanner.get_deleted_files())
    empty = len(scanner.get_empty_directories())
    return CleanupStatus(
        deleted_file_count=deleted,
        has_deleted_files=deleted > 0,
        empty_directory_count=empty,
        has_empty_directories=empty > 0,
    )


@app.get("/api/cleanup/deleted-files", response_model=list[FileItem])
async def deleted_files(scanner: Scanner = Depends(get_scanner)):
    ids = scanner.get_deleted_files()
    return store.get_files_by_ids(ids)


@app.post("/api/cleanup/delete-files", response_model=CleanupResponse)
async def cleanup_deleted_files(body: FileCleanupRequest,
                                scanner: Scanner = Depends(get_scanner)):
    try:
        removed = await scanner.cleanup_deleted_files(body.file_ids)
    except store.StoreError:
        logger.exception("cleanup of deleted files failed")
        raise HTTPException(500, "Failed to cleanup deleted files")
    return CleanupResponse(
        removed=removed,
        message=f"Successfully cleaned up {removed} files from database",
    )


@app.get("/api/cleanup/empty-directories", response_model=list[Directory])
async def empty_directories(scanner: Scanner = Depends(get_scanner)):
    ids = scanner.get_empty_directories()
    return store.get_directories_by_ids(ids)


@app.post("/api/cleanup/delete-directories", response_model=CleanupResponse)
async def cleanup_empty_directories(body: DirectoryCleanupRequest,
                                    scanner: Scanner = Depends(get_scanner)):
    try:
        removed = await scanner.cleanup_empty_directories(body.directory_ids)
    except store.StoreError:
        logger.exception("cleanup of empty directories failed")
        raise HTTPException(500, "Failed to cleanup empty directories")
    return CleanupResponse(
        removed=removed,
        message=f"Successfully cleaned up {removed} directories from database",
    )


# ---------------------------------------------------------------------------
# Recent files and watch progress (single default user, no auth)
# ---------------------------------------------------------------------------


@app.get("/api/recent-files", response_model=list[RecentFileEntry])
def recent_files(limit: int = Query(20, ge=1, le=200)):
    return views.get_recent_views(views.DEFAULT_USER, limit)


@app.post("/api/recent-files", response_model=RecentFileView)
def record_recent_file(body: RecentViewCreate):
    _file_or_404(body.file_id)
    return views.record_view(views.DEFAULT_USER, body.file_id, body.view_type)


@app.get("/api/video-progress", response_model=list[VideoProgress])
def all_video_progress():
    return views.get_user_video_progress(views.DEFAULT_USER)


@app.get("/api/video-progress/{file_id}")
def get_video_progress(file_id: str):
    progress = views.get_video_progress(views.DEFAULT_USER, file_id)
    if progress is None:
        return {"current_time": 0, "duration": 0, "is_watched": False}
    return progress


@app.post("/api/video-progress/{file_id}", response_model=VideoProgress)
def save_video_progress(file_id: str, body: VideoProgressUpdate):
    _file_or_404(file_id)
    return views.save_video_progress(
        views.DEFAULT_USER, file_id, body.current_time, body.duration
    )


# ---------------------------------------------------------------------------
# Static frontend, mounted LAST so API routes take precedence
# ---------------------------------------------------------------------------

_frontend_dist = os.path.join(os.path.dirname(__file__), "..", "frontend", "dist")
if not os.path.isdir(_frontend_dist):
    # Fallback for non-editable installs: check current working directory
    _frontend_dist = os.path.join(os.getcwd(), "frontend", "dist")
if os.path.isdir(_frontend_dist):
    app.mount("/", StaticFiles(directory=_frontend_dist, html=True), name="frontend")
