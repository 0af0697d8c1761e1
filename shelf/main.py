"""CLI entry point — dispatches shelf subcommands."""
import argparse
import sys

from shelf.classify import FILE_TYPES


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="shelf",
        description="Media catalog: scan, browse and clean up a media library",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    # shelf scan
    p_scan = sub.add_parser("scan", help="Run a scan of the server's media root now")
    p_scan.add_argument("--quiet", action="store_true", help="Only print the final summary")

    # shelf status
    p_status = sub.add_parser("status", help="Show scan state and catalog totals")
    p_status.add_argument("-n", dest="limit", type=int, default=5,
                          help="Number of past scans to list (default: 5)")

    # shelf find
    p_find = sub.add_parser("find", help="Search the catalog")
    p_find.add_argument("text", nargs="?", default=None, help="Name substring (case-insensitive)")
    p_find.add_argument("--dir", default=None, help="Only files in this directory id")
    p_find.add_argument("--type", default=None, choices=FILE_TYPES, help="Filter by file type")
    p_find.add_argument("--ext", default=None, help="Filter by extension")
    p_find.add_argument("-l", dest="long", action="store_true", help="Long format")

    # shelf cleanup
    p_clean = sub.add_parser("cleanup", help="Remove records for files/directories gone from disk")
    p_clean.add_argument("--files", action="store_true", help="Only missing files")
    p_clean.add_argument("--dirs", action="store_true", help="Only empty directories")
    p_clean.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    # shelf server
    p_server = sub.add_parser("server", help="Start the mediashelf server")
    p_server.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    p_server.add_argument("--port", type=int, default=8765, help="Port (default: 8765)")
    p_server.add_argument("--db", default=None, help="Path to shelf.duckdb")
    p_server.add_argument("--root", default=None, help="Media root to scan")
    p_server.add_argument("--reload", action="store_true", help="Enable auto-reload (dev only)")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        if args.command == "scan":
            from shelf.commands.scan import cmd_scan
            cmd_scan(args)
        elif args.command == "status":
            from shelf.commands.status import cmd_status
            cmd_status(args)
        elif args.command == "find":
            from shelf.commands.find import cmd_find
            cmd_find(args)
        elif args.command == "cleanup":
            from shelf.commands.cleanup import cmd_cleanup
            cmd_cleanup(args)
        elif args.command == "server":
            from shelf.commands.server import cmd_server
            cmd_server(args)
        else:
            parser.print_help()
            sys.exit(1)
    except KeyboardInterrupt:
        sys.stderr.write("\n")
        sys.exit(130)


if __name__ == "__main__":
    main()
