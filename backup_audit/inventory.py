"""
Local backup inventory.

Backups are 7-Zip archives named ``<Name>_<AppID>_<BuildID>.7z``. The game
name may itself contain underscores; the last two parts are always the
AppID and the build id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .catalog import Catalog

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".7z"


@dataclass(frozen=True)
class InventoryRecord:
    """A locally observed backup (or a catalog entry queued for checking)."""

    app_id: int
    name: str
    installed_version: int | None = None


def parse_backup_name(filename: str) -> InventoryRecord | None:
    """Parse a backup archive file name.

    Args:
        filename: File name such as ``Hollow_Knight_367520_8612345.7z``

    Returns:
        InventoryRecord, or None if the name does not follow the convention
    """
    if not filename.lower().endswith(BACKUP_SUFFIX):
        return None

    parts = filename[: -len(BACKUP_SUFFIX)].split("_")
    if len(parts) < 3:
        return None

    name = "_".join(parts[:-2])
    app_id, build_id = parts[-2], parts[-1]
    if not name or not app_id.isdigit() or not build_id.isdigit():
        return None

    return InventoryRecord(app_id=int(app_id), name=name, installed_version=int(build_id))


def scan_backups(backup_dir: str | Path) -> list[InventoryRecord]:
    """Scan a directory for backup archives.

    Args:
        backup_dir: Directory holding the ``.7z`` backups

    Returns:
        Records in file-name order; empty if the directory does not exist
    """
    backup_path = Path(backup_dir)
    if not backup_path.is_dir():
        logger.warning(f"Backup directory not found: {backup_path}")
        return []

    records = []
    for path in sorted(backup_path.iterdir()):
        if not path.is_file():
            continue
        record = parse_backup_name(path.name)
        if record is None:
            if path.name.lower().endswith(BACKUP_SUFFIX):
                logger.debug(f"Skipping archive with unrecognised name: {path.name}")
            continue
        records.append(record)

    logger.info(f"Found {len(records)} local backups in {backup_path}")
    return records


def catalog_candidates(catalog: Catalog) -> list[InventoryRecord]:
    """Every catalog entry, for runs that check the whole catalog."""
    return [
        InventoryRecord(
            app_id=entry.app_id,
            name=entry.name,
            installed_version=entry.installed_version,
        )
        for entry in catalog
    ]
