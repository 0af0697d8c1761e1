"""Per-user interaction records: recent file views and video watch progress."""
from __future__ import annotations

from typing import Optional

from server import db
from server.models import RecentFileEntry, RecentFileView, VideoProgress
from server.store import FILE_COLUMNS, file_from_row, new_id, now, select_list

DEFAULT_USER = "default-user"

# Fraction of the duration after which a video counts as watched
WATCHED_THRESHOLD = 0.9

_PROGRESS_COLS = [
    "id", "user_id", "file_id", "current_secs", "duration_secs", "is_watched",
    "last_watched", "created_at", "updated_at",
]


def _progress(row: tuple) -> VideoProgress:
    data = dict(zip(_PROGRESS_COLS, row))
    data["current_time"] = data.pop("current_secs")
    data["duration"] = data.pop("duration_secs")
    return VideoProgress(**data)


def is_watched(current_time: float, duration: float) -> bool:
    return duration > 0 and current_time > WATCHED_THRESHOLD * duration


# ---------------------------------------------------------------------------
# Recent views
# ---------------------------------------------------------------------------


def record_view(user_id: str, file_id: str, view_type: str = "view") -> RecentFileView:
    view = RecentFileView(
        id=new_id(), user_id=user_id, file_id=file_id,
        view_type=view_type, viewed_at=now(),
    )
    db.execute(
        "INSERT INTO recent_file_views (id, user_id, file_id, view_type, viewed_at) "
        "VALUES (?, ?, ?, ?, ?)",
        [view.id, view.user_id, view.file_id, view.view_type, view.viewed_at],
    )
    return view


def get_recent_views(user_id: str, limit: int = 20) -> list[RecentFileEntry]:
    """Latest view per file, newest first.  Views of vanished files are dropped."""
    rows = db.query(
        f"""
        SELECT v.view_type, v.viewed_at, {select_list(FILE_COLUMNS, "f")}
        FROM (
            SELECT file_id, view_type, viewed_at,
                   row_number() OVER (PARTITION BY file_id ORDER BY viewed_at DESC) AS rn
            FROM recent_file_views
            WHERE user_id = ?
        ) v
        JOIN files f ON f.id = v.file_id
        WHERE v.rn = 1
        ORDER BY v.viewed_at DESC
        LIMIT ?
        """,
        [user_id, limit],
    )
    return [
        RecentFileEntry(view_type=r[0], viewed_at=r[1], file=file_from_row(r[2:]))
        for r in rows
    ]


# ---------------------------------------------------------------------------
# Video progress
# ---------------------------------------------------------------------------


def get_video_progress(user_id: str, file_id: str) -> Optional[VideoProgress]:
    row = db.query_one(
        f"SELECT {select_list(_PROGRESS_COLS)} FROM video_progress WHERE user_id = ? AND file_id = ?",
        [user_id, file_id],
    )
    return _progress(row) if row else None


def save_video_progress(user_id: str, file_id: str,
                        current_time: float, duration: float) -> VideoProgress:
    """Upsert the single progress row for (user_id, file_id)."""
    stamp = now()
    watched = is_watched(current_time, duration)
    with db.transaction() as conn:
        existing = conn.execute(
            "SELECT id FROM video_progress WHERE user_id = ? AND file_id = ?",
            [user_id, file_id],
        ).fetchone()
        if existing:
            conn.execute(
                "UPDATE video_progress SET current_secs = ?, duration_secs = ?, "
                "is_watched = ?, last_watched = ?, updated_at = ? WHERE id = ?",
                [int(current_time), int(duration), watched, stamp, stamp, existing[0]],
            )
        else:
            conn.execute(
                f"INSERT INTO video_progress ({select_list(_PROGRESS_COLS)}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [new_id(), user_id, file_id, int(current_time), int(duration),
                 watched, stamp, stamp, stamp],
            )
    return get_video_progress(user_id, file_id)


def get_user_video_progress(user_id: str) -> list[VideoProgress]:
    rows = db.query(
        f"SELECT {select_list(_PROGRESS_COLS)} FROM video_progress "
        "WHERE user_id = ? ORDER BY last_watched DESC",
        [user_id],
    )
    return [_progress(r) for r in rows]
