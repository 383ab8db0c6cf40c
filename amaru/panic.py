"""Crash reporting: a friendly report printed when the process dies on an unhandled error."""

from __future__ import annotations

import platform
import sys
import traceback
from types import TracebackType

VERSION = "0.1.0"
GIT_COMMIT_HASH_SHORT: str | None = None

_FATAL = "amaru::fatal::error"

_OS_NAMES = {"darwin": "macos"}


def pad_left(text: str, n: int, delimiter: str) -> str:
    """Prepend ``delimiter`` until ``text`` is ``n`` bytes long (once per missing byte)."""
    diff = n - len(text.encode("utf-8"))
    return delimiter * diff + text if diff > 0 else text


def indent(lines: str, n: int) -> str:
    """Indent every line of ``lines`` by ``n`` spaces."""
    tab = pad_left("", n, " ")
    parts = lines.split("\n")
    if parts and parts[-1] == "":
        parts.pop()
    return "\n".join(f"{tab}{line.removesuffix(chr(13))}" for line in parts)


def node_version(include_commit_hash: bool) -> str:
    suffix = f"+{GIT_COMMIT_HASH_SHORT or 'unknown'}" if include_commit_hash else ""
    return f"v{VERSION}{suffix}"


def node_info() -> str:
    system = platform.system().lower()
    return (
        "\n"
        f"Operating System: {_OS_NAMES.get(system, system)}\n"
        f"Architecture:     {platform.machine()}\n"
        f"Version:          {node_version(True)}"
    )


def format_crash_report(message: str, location: tuple[str, int, int] | None = None) -> str:
    """Build the indented crash report for ``message`` raised at ``location``."""
    where = "" if location is None else "{}:{}:{}\n\n    ".format(*location)
    report = (
        f"{_FATAL}\n"
        "Whoops! The Amaru process panicked, rather than handling the error it "
        "encountered gracefully.\n"
        "\n"
        "This is almost certainly a bug, and we'd appreciate a report so we can "
        "improve Amaru.\n"
        "\n"
        "Please report this error to the Amaru maintainers.\n"
        "\n"
        "In your bug report please provide the information below and if possible the code\n"
        "that produced it.\n"
        f"{node_info()}\n"
        "\n"
        f"{where}{message}"
    )
    return indent(report, 3)


def _hook(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
) -> None:
    message = str(exc) or "unknown error"
    location = None
    frames = traceback.extract_tb(tb) if tb is not None else []
    if frames:
        last = frames[-1]
        column = getattr(last, "colno", None) or 0
        location = (last.filename, last.lineno or 0, column + 1)
    print("\n" + format_crash_report(message, location))


def install_panic_handler() -> None:
    """Print a crash report for any unhandled exception."""
    sys.excepthook = _hook