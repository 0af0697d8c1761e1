import sys
from shelf.config import get_server_url


def print_server_info() -> None:
    """Print version and server URL to stderr (TTY only)."""
    if sys.stderr.isatty():
        print(f"shelf {get_version()}", file=sys.stderr)
        print(f"  → {get_server_url()}", file=sys.stderr)


def get_version() -> str:
    # Prefer pyproject.toml so editable installs always reflect the latest version
    try:
        import tomllib
        from pathlib import Path
        pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
        with open(pyproject, "rb") as f:
            return tomllib.load(f)["project"]["version"]
    except Exception:
        pass
    try:
        from importlib.metadata import version
        return version("mediashelf")
    except Exception:
        return "unknown"


def human_size(n: int | None) -> str:
    if n is None:
        return "0B"
    val = float(n)
    for unit in ("B", "K", "M", "G", "T", "P"):
        if abs(val) < 1024:
            return f"{val:.1f}{unit}" if unit != "B" else f"{int(val)}B"
        val /= 1024
    return f"{val:.1f}P"
