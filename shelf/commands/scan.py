"""shelf scan — ask the server to run a scan of its configured root."""

from __future__ import annotations

import sys
import time

import requests

from shelf import client
from shelf.commands import print_server_info


def cmd_scan(args) -> None:
    print_server_info()
    quiet = getattr(args, "quiet", False)

    if not quiet:
        print("Scanning…", file=sys.stderr)
    start = time.monotonic()
    try:
        job = client.post("/api/scan/start", timeout=client.SCAN_TIMEOUT)
    except requests.HTTPError as e:
        if e.response is not None and e.response.status_code == 409:
            print("shelf: a scan is already in progress", file=sys.stderr)
            sys.exit(75)
        print(f"shelf: scan failed: {client.error_detail(e)}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"shelf: cannot reach server: {e}", file=sys.stderr)
        sys.exit(1)

    elapsed = time.monotonic() - start
    print(
        f"Scan {job['status']} in {elapsed:.1f}s: "
        f"{job.get('total_files', 0):,} files, "
        f"{job.get('processed_files', 0):,} written"
    )
    try:
        cleanup = client.get("/api/cleanup/status")
    except Exception:
        return
    if cleanup.get("has_deleted_files") or cleanup.get("has_empty_directories"):
        print(
            f"  {cleanup['deleted_file_count']:,} missing files and "
            f"{cleanup['empty_directory_count']:,} empty directories "
            "— run `shelf cleanup` to review"
        )
