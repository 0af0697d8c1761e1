"""shelf status — show scan state and catalog totals."""

from __future__ import annotations

import sys
from datetime import datetime

from shelf import client
from shelf.commands import human_size, print_server_info


def _fmt_dt(dt_str: str | None) -> str:
    if not dt_str:
        return "never"
    try:
        dt = datetime.fromisoformat(dt_str.replace("Z", "+00:00"))
        return dt.strftime("%Y-%m-%d %H:%M UTC")
    except ValueError:
        return dt_str


def cmd_status(args) -> None:
    print_server_info()
    limit = getattr(args, "limit", 5)

    try:
        current = client.get("/api/scan/status")
        totals = client.get("/api/stats")
    except Exception as e:
        print(f"shelf: cannot reach server: {e}", file=sys.stderr)
        sys.exit(1)

    print()
    print(f"  {totals['total_files']:,} files  ·  {human_size(totals['total_size'])}")
    print()

    status = current.get("status", "idle")
    line = f"  Scan: {status}"
    if status == "scanning":
        line += f" since {_fmt_dt(current.get('started_at'))}"
    elif current.get("completed_at"):
        line += f" at {_fmt_dt(current.get('completed_at'))}"
    print(line)
    if current.get("error"):
        print(f"    error: {current['error']}")

    if limit:
        try:
            jobs = client.get("/api/scan/jobs", params={"limit": limit})
        except Exception as e:
            print(f"  (scan history unavailable: {e})")
            return
        if jobs:
            print()
            print("  Recent scans:")
            for job in jobs:
                print(
                    f"    {_fmt_dt(job.get('started_at'))}  {job['status']:<10}"
                    f"  {job.get('total_files', 0):>8,} files  {job.get('root_path') or ''}"
                )
    print()
