"""
Terminal rendering.

Aligned report table that keeps emoji, ANSI colors and OSC 8 hyperlinks
intact and pads by display width.
"""

from __future__ import annotations

import os
import re
import sys
from typing import IO, Iterable

from wcwidth import wcswidth

from .report import ReportRow
from .status import UNRESOLVED, UP_TO_DATE, UPDATE_AVAILABLE

# Environment options
USE_EMOJI = os.environ.get("BACKUP_AUDIT_EMOJI", "1") == "1"
ENABLE_LINKS = os.environ.get("BACKUP_AUDIT_LINKS", "1") == "1"
USE_COLOR = os.environ.get("BACKUP_AUDIT_COLOR", "1") == "1"

# ANSI color codes
GREEN = "\033[32m"
BOLD_GREEN = "\033[1;32m"
YELLOW = "\033[33m"
RED = "\033[31m"
RESET = "\033[0m"

HEADERS = ("state", "game", "appid", "installed", "latest", "updated", "rating")

CSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")
OSC8_OPEN_RE = re.compile(r"\x1b\]8;[^\\]*\\")
OSC8_CLOSE_RE = re.compile(r"\x1b\]8;;\\")


def status_icon(status: str) -> str:
    """Icon for a status; plain glyphs when emoji are disabled."""
    if not USE_EMOJI:
        return {UP_TO_DATE: "✓", UPDATE_AVAILABLE: "↑", UNRESOLVED: "x"}.get(status, "?")
    return {UP_TO_DATE: "✅", UPDATE_AVAILABLE: "⬆", UNRESOLVED: "❌"}.get(status, "❓")


def colorize(text: str, color: str) -> str:
    """Apply color to text.

    Args:
        text: Text to colorize
        color: ANSI color code

    Returns:
        Colored text or plain text if colors disabled
    """
    if not USE_COLOR or not text:
        return text
    return f"{color}{text}{RESET}"


def osc8(url: str | None, text: str) -> str:
    """Create OSC8 hyperlink.

    Args:
        url: Link URL
        text: Display text

    Returns:
        Hyperlinked text or plain text if links disabled
    """
    if not ENABLE_LINKS or not url:
        return text
    return f"\033]8;;{url}\033\\{text}\033]8;;\033\\"


def strip_control(text: str) -> str:
    """Remove color and hyperlink sequences, keeping visible text."""
    text = OSC8_OPEN_RE.sub("", text)
    text = OSC8_CLOSE_RE.sub("", text)
    return CSI_RE.sub("", text)


def display_width(text: str) -> int:
    visible = strip_control(text)
    width = wcswidth(visible)
    if width < 0:
        width = len(visible)
    return width


def _version(value: int | None) -> str:
    return str(value) if value is not None else "n/a"


def format_row(row: ReportRow) -> tuple[str, ...]:
    """Cells for one report row, colored and linked."""
    if row.status == UP_TO_DATE:
        inst_color, latest_color = GREEN, GREEN
    elif row.status == UPDATE_AVAILABLE:
        inst_color, latest_color = YELLOW, BOLD_GREEN
    else:
        inst_color, latest_color = RED, RED

    rating = ""
    if row.rating is not None and row.rating.percent is not None:
        rating = f"{row.rating.percent:g}% ({row.rating.total})"

    return (
        status_icon(row.status),
        row.name,
        str(row.app_id),
        colorize(_version(row.installed_version), inst_color),
        osc8(row.external_ref, colorize(_version(row.latest_version), latest_color)),
        row.observed_date,
        rating,
    )


def format_table(rows: Iterable[ReportRow], pad: int = 2) -> list[str]:
    """Aligned table lines, header and rule first."""
    table = [HEADERS] + [format_row(row) for row in rows]
    widths = [0] * len(HEADERS)
    for cells in table:
        for i, cell in enumerate(cells):
            widths[i] = max(widths[i], display_width(cell))

    lines = []
    for ridx, cells in enumerate(table):
        padded = [cell + " " * (widths[i] - display_width(cell)) for i, cell in enumerate(cells)]
        lines.append((" " * pad).join(padded).rstrip())
        if ridx == 0:
            lines.append((" " * pad).join("-" * w for w in widths))
    return lines


def render_table(rows: Iterable[ReportRow], file: IO[str] | None = None) -> None:
    """Print the report table to stdout."""
    out = file or sys.stdout
    for line in format_table(rows):
        print(line, file=out)


def print_summary(summary: dict[str, int], mode_label: str, file: IO[str] | None = None) -> None:
    """Print summary line.

    Args:
        summary: Counts from report.summarize()
        mode_label: Run mode label
    """
    parts = [
        f"{summary.get('total', 0)} games",
        f"{summary.get(UPDATE_AVAILABLE, 0)} with updates",
        f"{summary.get(UNRESOLVED, 0)} unresolved",
    ]
    print(f"\n{mode_label}: {', '.join(parts)}", file=file or sys.stderr)
