"""Pydantic models for catalog records and the mediashelf server API."""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Catalog records
# ---------------------------------------------------------------------------

class Directory(BaseModel):
    id: str
    name: str
    path: str
    parent_id: Optional[str] = None  # None = scan root
    file_count: int = 0   # direct children only
    total_size: int = 0   # direct children only
    created_at: datetime
    updated_at: datetime


class FileItem(BaseModel):
    id: str
    name: str
    path: str
    directory_id: str
    file_type: str  # 'video', 'image', 'audio', 'document', 'other'
    extension: str = ""
    size: int = 0
    thumbnail_path: Optional[str] = None
    duration: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    has_subtitles: bool = False
    subtitle_paths: list[str] = Field(default_factory=list)
    mtime: Optional[int] = None  # st_mtime_ns at last reconcile
    created_at: datetime
    updated_at: datetime


class ScanJob(BaseModel):
    id: str
    status: str  # 'idle', 'scanning', 'completed', 'error'
    progress: int = 0
    root_path: Optional[str] = None
    total_files: int = 0
    processed_files: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None


class RecentFileView(BaseModel):
    id: str
    user_id: str
    file_id: str
    view_type: str
    viewed_at: datetime


class VideoProgress(BaseModel):
    id: str
    user_id: str
    file_id: str
    current_time: int = 0
    duration: int = 0
    is_watched: bool = False
    last_watched: datetime
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class VideoProgressUpdate(BaseModel):
    current_time: float = Field(0, ge=0)
    duration: float = Field(0, ge=0)


class RecentViewCreate(BaseModel):
    file_id: str
    view_type: Literal["view", "download", "stream"] = "view"


class FileCleanupRequest(BaseModel):
    file_ids: list[str]


class DirectoryCleanupRequest(BaseModel):
    directory_ids: list[str]


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class RecentFileEntry(BaseModel):
    view_type: str
    viewed_at: datetime
    file: FileItem


class StatsOverview(BaseModel):
    total_files: int
    total_size: int


class SubtitleTrack(BaseModel):
    path: str
    name: str
    language: str


class CleanupStatus(BaseModel):
    deleted_file_count: int
    has_deleted_files: bool
    empty_directory_count: int
    has_empty_directories: bool


class CleanupResponse(BaseModel):
    removed: int
    message: str

