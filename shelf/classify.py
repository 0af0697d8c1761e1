"""File classification: extension → file type tag."""
from __future__ import annotations

import os

VIDEO = "video"
IMAGE = "image"
AUDIO = "audio"
DOCUMENT = "document"
OTHER = "other"

FILE_TYPES = (VIDEO, IMAGE, AUDIO, DOCUMENT, OTHER)

_VIDEO_EXTS = frozenset(
    ".mp4 .avi .mkv .mov .wmv .flv .webm .m4v".split()
)
_IMAGE_EXTS = frozenset(
    ".jpg .jpeg .png .gif .bmp .webp .tiff .svg".split()
)
_AUDIO_EXTS = frozenset(
    ".mp3 .wav .flac .aac .ogg .wma .m4a".split()
)
_DOCUMENT_EXTS = frozenset(
    ".pdf .doc .docx .txt .rtf .xls .xlsx .ppt .pptx".split()
)


def file_extension(filename: str) -> str:
    """
    Return the lowercase extension of filename, including the leading dot.
    Dotfiles such as `.gitignore` have no extension.
    """
    return os.path.splitext(filename)[1].lower()


def classify(extension: str) -> str:
    """Map an extension (with leading dot) to a file type tag.

    Comparison is case-insensitive. Unknown or empty extensions are "other".
    """
    ext = extension.lower()
    if ext in _VIDEO_EXTS:
        return VIDEO
    if ext in _IMAGE_EXTS:
        return IMAGE
    if ext in _AUDIO_EXTS:
        return AUDIO
    if ext in _DOCUMENT_EXTS:
        return DOCUMENT
    return OTHER


def classify_file(filename: str) -> tuple[str, str]:
    """Return (extension, file_type) for a filename."""
    ext = file_extension(filename)
    return ext, classify(ext)
