"""
Entry status classification.
"""

from __future__ import annotations

UNRESOLVED = "UNRESOLVED"
UPDATE_AVAILABLE = "UPDATE_AVAILABLE"
UP_TO_DATE = "UP_TO_DATE"

STATUSES = (UNRESOLVED, UPDATE_AVAILABLE, UP_TO_DATE)

STATUS_LABELS = {
    UNRESOLVED: "❌ Could not fetch latest",
    UPDATE_AVAILABLE: "⚠️ Update available",
    UP_TO_DATE: "✅ Up to date",
}


def classify(installed: int | None, latest: int | None) -> str:
    """Classify an entry from its installed and latest build ids.

    A missing installed build counts as 0, so it never makes an entry
    unresolved on its own.

    Args:
        installed: Build id of the local backup, if known
        latest: Latest resolved build id, None if resolution failed

    Returns:
        One of UNRESOLVED, UPDATE_AVAILABLE, UP_TO_DATE
    """
    if latest is None:
        return UNRESOLVED
    if latest > (installed or 0):
        return UPDATE_AVAILABLE
    return UP_TO_DATE


def status_label(status: str) -> str:
    """Human-readable label for a status."""
    return STATUS_LABELS.get(status, status)
