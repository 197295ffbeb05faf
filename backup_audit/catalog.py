"""
Persisted catalog of tracked backups.

The catalog is a flat map from Steam AppID to CatalogEntry, stored as a
single JSON document. It is read once at the start of a run and replaced
wholesale at the end. Unlike the other caches in this package, a damaged
catalog is never silently discarded: it holds the only record of when each
latest build was first seen.
"""

from __future__ import annotations

import datetime
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_FILE = "games.json"

SCHEMA_VERSION = 1


class CatalogError(Exception):
    """Raised when the persisted catalog exists but cannot be read."""
    pass


class CatalogWriteError(IOError):
    """Raised when the updated catalog cannot be persisted."""
    pass


def format_instant(value: datetime.datetime | None) -> str | None:
    """Serialize an aware datetime as ISO-8601 UTC with a trailing Z."""
    if value is None:
        return None
    return (
        value.astimezone(datetime.timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


def parse_instant(value: Any) -> datetime.datetime | None:
    """Parse a persisted instant; empty or unparseable values become None."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Ignoring unparseable timestamp in catalog: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def _optional_int(value: Any) -> int | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class RatingSummary:
    """Steam review summary. Every field is independently optional."""

    percent: float | None = None
    total: int | None = None
    positive: int | None = None
    negative: int | None = None
    description: str | None = None

    def is_empty(self) -> bool:
        return all(
            v is None for v in (self.percent, self.total, self.positive, self.negative, self.description)
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "percent": self.percent,
            "total": self.total,
            "positive": self.positive,
            "negative": self.negative,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RatingSummary":
        """Create from dictionary."""
        return cls(
            percent=_optional_float(data.get("percent")),
            total=_optional_int(data.get("total")),
            positive=_optional_int(data.get("positive")),
            negative=_optional_int(data.get("negative")),
            description=data.get("description") or None,
        )


@dataclass
class CatalogEntry:
    """One tracked backup.

    Attributes:
        app_id: Steam AppID, primary key of the catalog
        name: Display label, corrected on every local observation
        installed_version: Build id of the local backup (local inventory only)
        latest_version: Most recently resolved remote build id (oracle only)
        latest_observed_at: Instant associated with latest_version
        external_ref: Sticky link to an external release page
        rating: Review summary from the last resolution, if any
    """

    app_id: int
    name: str
    installed_version: int | None = None
    latest_version: int | None = None
    latest_observed_at: datetime.datetime | None = None
    external_ref: str | None = None
    rating: RatingSummary | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: dict[str, Any] = {
            "app_id": self.app_id,
            "name": self.name,
            "installed_version": self.installed_version,
            "latest_version": self.latest_version,
            "latest_observed_at": format_instant(self.latest_observed_at),
            "external_ref": self.external_ref,
        }
        if self.rating is not None:
            data["rating"] = self.rating.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CatalogEntry":
        """Create from dictionary.

        Raises:
            CatalogError: If the record has no usable app_id
        """
        app_id = _optional_int(data.get("app_id"))
        if app_id is None:
            raise CatalogError(f"Catalog record without a valid app_id: {data!r}")
        rating_raw = data.get("rating")
        return cls(
            app_id=app_id,
            name=str(data.get("name") or ""),
            installed_version=_optional_int(data.get("installed_version")),
            latest_version=_optional_int(data.get("latest_version")),
            latest_observed_at=parse_instant(data.get("latest_observed_at")),
            external_ref=data.get("external_ref") or None,
            rating=RatingSummary.from_dict(rating_raw) if isinstance(rating_raw, dict) else None,
        )

    @classmethod
    def from_legacy_dict(cls, data: dict[str, Any]) -> "CatalogEntry":
        """Create from a record in the legacy PascalCase layout.

        Legacy records use ``Name``/``AppID``/``InstalledBuild``/
        ``LatestBuild``/``LatestDate``/``SkidrowLink`` and flat review keys.
        """
        app_id = _optional_int(data.get("AppID"))
        if app_id is None:
            raise CatalogError(f"Legacy catalog record without a valid AppID: {data!r}")

        rating = None
        if any(k in data for k in ("RatingPercent", "ReviewsTotal", "ReviewSummary")):
            rating = RatingSummary(
                percent=_optional_float(data.get("RatingPercent")),
                total=_optional_int(data.get("ReviewsTotal")),
                positive=_optional_int(data.get("ReviewsPositive")),
                negative=_optional_int(data.get("ReviewsNegative")),
                description=data.get("ReviewSummary") or None,
            )

        return cls(
            app_id=app_id,
            name=str(data.get("Name") or ""),
            installed_version=_optional_int(data.get("InstalledBuild")),
            latest_version=_optional_int(data.get("LatestBuild")),
            latest_observed_at=parse_instant(data.get("LatestDate")),
            external_ref=data.get("SkidrowLink") or None,
            rating=rating,
        )


@dataclass
class Catalog:
    """Container for catalog entries with document metadata."""

    entries: dict[int, CatalogEntry] = field(default_factory=dict)
    schema_version: int = SCHEMA_VERSION
    updated_at: str = ""

    def __contains__(self, app_id: object) -> bool:
        return app_id in self.entries

    def __getitem__(self, app_id: int) -> CatalogEntry:
        return self.entries[app_id]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self.entries.values())

    def get(self, app_id: int) -> CatalogEntry | None:
        return self.entries.get(app_id)

    def add(self, entry: CatalogEntry) -> None:
        self.entries[entry.app_id] = entry

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "__meta__": {
                "schema_version": self.schema_version,
                "updated_at": self.updated_at,
                "count": len(self.entries),
            },
            "entries": {
                str(app_id): entry.to_dict() for app_id, entry in self.entries.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Catalog":
        """Create from a parsed JSON document.

        Accepts the current ``{"__meta__", "entries"}`` layout, the legacy
        flat map keyed by AppID, and the legacy list of records.

        Raises:
            CatalogError: If the document has an unrecognised shape
        """
        if isinstance(data, list):
            return cls._from_legacy_records(data)
        if not isinstance(data, dict):
            raise CatalogError(f"Catalog document must be an object, got {type(data).__name__}")

        if "entries" not in data and "__meta__" not in data:
            return cls._from_legacy_records(list(data.values()))

        meta = data.get("__meta__", {})
        entries_raw = data.get("entries", {})
        if not isinstance(meta, dict) or not isinstance(entries_raw, dict):
            raise CatalogError("Catalog '__meta__' and 'entries' must be objects")

        catalog = cls(
            schema_version=meta.get("schema_version", SCHEMA_VERSION),
            updated_at=meta.get("updated_at", ""),
        )
        for key, record in entries_raw.items():
            if not isinstance(record, dict):
                raise CatalogError(f"Catalog entry {key!r} must be an object")
            record = dict(record)
            record.setdefault("app_id", key)
            catalog.add(CatalogEntry.from_dict(record))
        return catalog

    @classmethod
    def _from_legacy_records(cls, records: list[Any]) -> "Catalog":
        catalog = cls()
        for record in records:
            if not isinstance(record, dict):
                raise CatalogError(f"Legacy catalog record must be an object, got {record!r}")
            catalog.add(CatalogEntry.from_legacy_dict(record))
        logger.info(f"Migrated {len(catalog)} legacy catalog entries")
        return catalog


def load_catalog(path: Path) -> Catalog:
    """Load the catalog from file.

    Args:
        path: Path to catalog file

    Returns:
        Catalog instance (empty if the file does not exist)

    Raises:
        CatalogError: If the file exists but is unreadable or malformed
    """
    if not path.exists():
        logger.info(f"No catalog at {path}, starting with an empty catalog")
        return Catalog()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CatalogError(f"Malformed catalog {path}: {e}") from e
    except OSError as e:
        raise CatalogError(f"Cannot read catalog {path}: {e}") from e

    catalog = Catalog.from_dict(data)
    logger.debug(f"Loaded {len(catalog)} catalog entries from {path}")
    return catalog


def write_catalog(catalog: Catalog, path: Path) -> None:
    """Write the catalog to file, replacing it atomically.

    Args:
        catalog: Catalog instance to write
        path: Path to catalog file

    Raises:
        CatalogWriteError: If the document could not be persisted
    """
    catalog.updated_at = format_instant(datetime.datetime.now(datetime.timezone.utc)) or ""

    temp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(catalog.to_dict(), f, indent=2, ensure_ascii=False, sort_keys=True)
        temp_path.replace(path)
    except Exception as e:
        raise CatalogWriteError(f"Failed to write catalog {path}: {e}") from e

    logger.debug(f"Wrote {len(catalog)} catalog entries to {path}")
