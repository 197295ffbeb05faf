"""
Catalog reconciliation.

Two passes touch the catalog during a run:

1. ``merge_inventory`` folds freshly scanned local backups into the catalog
   (name and installed build only) and decides which entries to resolve.
2. ``apply_resolution`` folds one resolved remote result into its entry,
   applying the timestamp rule and the per-field overwrite policy.

Both run on the coordinating thread only; workers never see the catalog.
"""

from __future__ import annotations

import datetime
import logging
from typing import Iterable

from .catalog import Catalog, CatalogEntry
from .inventory import InventoryRecord
from .resolver import Resolved

logger = logging.getLogger(__name__)

RESOLVE_ALL = "all"
RESOLVE_CHANGED = "changed"
RESOLVE_POLICIES = (RESOLVE_ALL, RESOLVE_CHANGED)

# How a resolved value replaces the stored one:
#   always  - overwrite, including with None ("could not resolve")
#   sticky  - overwrite only with a non-empty value
#   present - overwrite whenever the resolution carries the field at all
#             (a failed fetch carries an all-null value and still overwrites)
ALWAYS = "always"
STICKY = "sticky"
PRESENT = "present"

# entry field -> (Resolved attribute, policy)
FIELD_POLICY: dict[str, tuple[str, str]] = {
    "latest_version": ("version", ALWAYS),
    "external_ref": ("external_ref", STICKY),
    "rating": ("rating", PRESENT),
}


def merge_inventory(
    catalog: Catalog,
    inventory: Iterable[InventoryRecord],
    policy: str = RESOLVE_ALL,
) -> tuple[Catalog, list[InventoryRecord]]:
    """Merge local inventory records into the catalog in place.

    Existing entries get ``name`` and ``installed_version`` overwritten;
    unknown ids are inserted. Remote-side fields are never touched and no
    entry is ever removed.

    Args:
        catalog: Catalog to update
        inventory: Locally observed records
        policy: ``"all"`` to resolve every record, ``"changed"`` to resolve
            only new records and records whose installed build changed

    Returns:
        Tuple of (catalog, records to resolve), records in inventory order

    Raises:
        ValueError: If policy is unknown
    """
    if policy not in RESOLVE_POLICIES:
        raise ValueError(
            f"Invalid resolve policy: {policy}. Must be one of: {', '.join(RESOLVE_POLICIES)}"
        )

    # keyed by app_id so a repeated id is resolved once, with its last record
    to_resolve: dict[int, InventoryRecord] = {}
    added = updated = 0

    for record in inventory:
        entry = catalog.get(record.app_id)
        if entry is None:
            catalog.add(CatalogEntry(
                app_id=record.app_id,
                name=record.name,
                installed_version=record.installed_version,
            ))
            added += 1
            to_resolve[record.app_id] = record
            continue

        changed = entry.installed_version != record.installed_version
        entry.name = record.name
        entry.installed_version = record.installed_version
        if changed:
            updated += 1
        if policy == RESOLVE_ALL or changed or record.app_id in to_resolve:
            to_resolve[record.app_id] = record

    logger.info(
        f"Merged inventory: {added} new, {updated} changed, {len(to_resolve)} to resolve"
    )
    return catalog, list(to_resolve.values())


def reconcile_observed_at(
    prev_version: int | None,
    prev_observed_at: datetime.datetime | None,
    version: int | None,
    observed_at: datetime.datetime | None,
    now: datetime.datetime,
) -> datetime.datetime | None:
    """Decide the instant to associate with a freshly resolved version.

    An oracle-supplied timestamp always wins. Without one, a version change
    (or a missing previous date) is dated at ``now``; otherwise the previous
    date is kept so unchanged builds do not get re-dated every run.
    """
    if observed_at is not None:
        return observed_at
    if version != prev_version or prev_observed_at is None:
        return now
    return prev_observed_at


def apply_resolution(
    catalog: Catalog,
    app_id: int,
    resolved: Resolved,
    now: datetime.datetime,
) -> CatalogEntry:
    """Fold one resolution result into its catalog entry.

    Args:
        catalog: Catalog holding the entry
        app_id: Entry to update
        resolved: Result returned by a resolver worker
        now: Reconciliation instant (aware datetime)

    Returns:
        The updated entry

    Raises:
        KeyError: If app_id is not in the catalog
    """
    entry = catalog[app_id]

    entry.latest_observed_at = reconcile_observed_at(
        entry.latest_version,
        entry.latest_observed_at,
        resolved.version,
        resolved.observed_at,
        now,
    )

    for field_name, (source, policy) in FIELD_POLICY.items():
        value = getattr(resolved, source)
        if policy == STICKY and not value:
            continue
        if policy == PRESENT and value is None:
            continue
        setattr(entry, field_name, value)

    if resolved.version is None:
        logger.debug(f"AppID {app_id}: unresolved, latest version cleared")
    return entry
