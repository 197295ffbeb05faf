"""
Report assembly.

Turns catalog entries into presentation rows. Everything here is pure so
that rendering (terminal, HTML, JSON) can be tested separately.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Iterable

from .catalog import CatalogEntry, RatingSummary, format_instant
from .status import STATUSES, classify, status_label


@dataclass(frozen=True)
class ReportRow:
    """One presentation row of the report."""

    name: str
    app_id: int
    installed_version: int | None
    latest_version: int | None
    observed_at: datetime.datetime | None
    status: str
    rating: RatingSummary | None = None
    external_ref: str | None = None

    @property
    def label(self) -> str:
        return status_label(self.status)

    @property
    def observed_date(self) -> str:
        """Observed instant as ``YYYY-MM-DD`` (UTC), or empty."""
        if self.observed_at is None:
            return ""
        return self.observed_at.astimezone(datetime.timezone.utc).date().isoformat()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "name": self.name,
            "app_id": self.app_id,
            "installed_version": self.installed_version,
            "latest_version": self.latest_version,
            "latest_observed_at": format_instant(self.observed_at),
            "status": self.status,
            "label": self.label,
            "rating": self.rating.to_dict() if self.rating is not None else None,
            "external_ref": self.external_ref,
        }


def build_row(entry: CatalogEntry) -> ReportRow:
    """Shape one catalog entry into a report row."""
    return ReportRow(
        name=entry.name,
        app_id=entry.app_id,
        installed_version=entry.installed_version,
        latest_version=entry.latest_version,
        observed_at=entry.latest_observed_at,
        status=classify(entry.installed_version, entry.latest_version),
        rating=entry.rating,
        external_ref=entry.external_ref,
    )


def assemble_report(entries: Iterable[CatalogEntry]) -> list[ReportRow]:
    """Rows sorted by name, case-insensitively; ties keep input order."""
    rows = [build_row(entry) for entry in entries]
    return sorted(rows, key=lambda row: row.name.casefold())


def summarize(rows: Iterable[ReportRow]) -> dict[str, int]:
    """Count rows per status (every status present, possibly 0)."""
    counts = {status: 0 for status in STATUSES}
    total = 0
    for row in rows:
        counts[row.status] = counts.get(row.status, 0) + 1
        total += 1
    counts["total"] = total
    return counts
