"""shelf cleanup — review and remove catalog records that vanished from disk."""

from __future__ import annotations

import sys

from shelf import client
from shelf.commands import human_size, print_server_info


def _confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} [y/N] ").strip().lower()
    except (KeyboardInterrupt, EOFError):
        print(file=sys.stderr)
        return False
    return answer in ("y", "yes")


def cmd_cleanup(args) -> None:
    print_server_info()
    want_files = getattr(args, "files", False)
    want_dirs = getattr(args, "dirs", False)
    if not want_files and not want_dirs:
        want_files = want_dirs = True
    assume_yes = getattr(args, "yes", False)

    try:
        files = client.get("/api/cleanup/deleted-files") if want_files else []
        dirs = client.get("/api/cleanup/empty-directories") if want_dirs else []
    except Exception as e:
        print(f"shelf: cannot reach server: {e}", file=sys.stderr)
        sys.exit(1)

    if not files and not dirs:
        print("Nothing to clean up (as of the last scan).", file=sys.stderr)
        return

    if files:
        print(f"Missing files ({len(files):,}):")
        for f in files:
            print(f"  {human_size(f.get('size')):>8}  {f['path']}")
    if dirs:
        print(f"Empty directories ({len(dirs):,}):")
        for d in dirs:
            print(f"  {d['path']}")

    if not assume_yes and not _confirm("Remove these records from the catalog?"):
        return

    try:
        if files:
            resp = client.post("/api/cleanup/delete-files",
                               {"file_ids": [f["id"] for f in files]})
            print(resp["message"])
        if dirs:
            resp = client.post("/api/cleanup/delete-directories",
                               {"directory_ids": [d["id"] for d in dirs]})
            print(resp["message"])
    except Exception as e:
        print(f"shelf: cleanup failed: {client.error_detail(e)}", file=sys.stderr)
        sys.exit(1)
