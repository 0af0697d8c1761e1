"""shelf find — search the catalog by name."""
from __future__ import annotations

import sys

from shelf import client
from shelf.commands import human_size, print_server_info


def cmd_find(args) -> None:
    print_server_info()

    params: dict = {}
    if getattr(args, "text", None):
        params["search"] = args.text
    if getattr(args, "dir", None):
        params["directory_id"] = args.dir

    try:
        entries = client.get("/api/files", params=params)
    except Exception as e:
        print(f"shelf: error: {e}", file=sys.stderr)
        sys.exit(1)

    file_type = getattr(args, "type", None)
    ext = getattr(args, "ext", None)
    if ext and not ext.startswith("."):
        ext = "." + ext

    for entry in entries:
        if file_type and entry.get("file_type") != file_type:
            continue
        if ext and entry.get("extension") != ext.lower():
            continue
        if getattr(args, "long", False):
            _print_long(entry)
        else:
            print(entry["path"])


def _print_long(entry: dict) -> None:
    """id  type  size  path  [subs]"""
    subs = "  [subs]" if entry.get("has_subtitles") else ""
    print(
        f"{entry['id'][:8]}  {entry.get('file_type', ''):<8}  "
        f"{human_size(entry.get('size')):>8}  {entry['path']}{subs}"
    )
