"""Subtitle lookup: sibling files sharing a video's base name."""
from __future__ import annotations

import logging
import os
from typing import Iterable

import aiofiles.os

logger = logging.getLogger("shelf.subtitles")

SUBTITLE_EXTS = frozenset(".srt .vtt .ass .ssa .sub".split())


def match_subtitles(video_name: str, names: Iterable[str]) -> list[str]:
    """
    Return the entries of names that look like subtitles for video_name.

    A match has a subtitle extension and a base name starting with the
    video's base name, so `movie.en.srt` belongs to `movie.mp4`.
    Input order is preserved.
    """
    base = os.path.splitext(video_name)[0]
    matched = []
    for name in names:
        stem, ext = os.path.splitext(name)
        if ext.lower() in SUBTITLE_EXTS and stem.startswith(base):
            matched.append(name)
    return matched


def _is_utf8(name: str) -> bool:
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


async def find_subtitles(video_path: str) -> list[str]:
    """Return absolute paths of subtitle files next to video_path.

    Read errors are logged and yield an empty list. Names that are not
    valid UTF-8 are never matched.
    """
    directory, video_name = os.path.split(video_path)
    try:
        names = await aiofiles.os.listdir(directory)
    except OSError as e:
        logger.warning("cannot list %s for subtitles: %s", directory, e)
        return []
    return [
        os.path.join(directory, n)
        for n in match_subtitles(video_name, names)
        if _is_utf8(n)
    ]


def subtitle_language(path: str) -> str:
    """`movie.en.srt` → `en`; a bare `movie.srt` yields its base name."""
    stem = os.path.splitext(os.path.basename(path))[0]
    return stem.rsplit(".", 1)[-1] or "unknown"
