"""
Audit pipeline.

inventory → merge (pass 1) → concurrent resolution → apply (pass 2) →
classification → report rows, with the catalog loaded once at the start
and written back at the end. Catalog read and write failures are the only
errors that abort a run; everything per-entry is converted to data.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from .buildinfo import RetryPolicy, fetch_build_info
from .catalog import RatingSummary, load_catalog, write_catalog
from .config import Config
from .environment import Environment
from .feeds import FeedItem, find_links, load_feed
from .inventory import InventoryRecord, catalog_candidates, scan_backups
from .oracle import Oracle, SteamCmdClient
from .ratings import fetch_rating
from .reconcile import apply_resolution, merge_inventory, reconcile_observed_at
from .report import ReportRow, assemble_report, summarize
from .resolver import Resolved, resolve_all
from .status import classify, status_label

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolveTask:
    """Immutable view of one entry handed to a resolver worker."""

    app_id: int
    name: str
    prev_version: int | None = None
    prev_observed_at: datetime.datetime | None = None


@dataclass
class EntryResolver:
    """
    Resolves one task: build info with retry, review summary, release link.

    Runs on worker threads and only reads its own task and the shared,
    read-only feed items.
    """
    oracle: Oracle
    now: datetime.datetime
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    fetch_ratings: bool = True
    http_timeout: float = 10
    feed_items: list[FeedItem] | None = None
    link_prefix: str = ""
    rating_fetcher: Callable[..., RatingSummary] = fetch_rating

    def link_since(self, task: ResolveTask, version: int | None,
                   observed_at: datetime.datetime | None) -> datetime.datetime:
        """Earliest publication date accepted for a release link.

        Same instant the entry will be stored with, so a build first seen
        this run only matches releases published from now on.
        """
        return reconcile_observed_at(task.prev_version, task.prev_observed_at, version, observed_at, self.now)

    def __call__(self, task: ResolveTask) -> Resolved:
        attempt = fetch_build_info(task.app_id, self.oracle.invoke, self.retry_policy)
        info = attempt.info

        rating = None
        if self.fetch_ratings:
            try:
                rating = self.rating_fetcher(task.app_id, timeout=self.http_timeout)
            except Exception as e:
                logger.warning(f"AppID {task.app_id}: review lookup failed: {e}")
                rating = RatingSummary()

        external_ref = None
        if self.feed_items:
            since = self.link_since(task, info.version, info.observed_at)
            links = find_links(self.feed_items, task.name, since, prefix=self.link_prefix)
            if links:
                external_ref = links[0]
                logger.debug(f"AppID {task.app_id}: release link {external_ref}")

        return Resolved(
            version=info.version,
            observed_at=info.observed_at,
            rating=rating,
            external_ref=external_ref,
            attempts=attempt.attempts,
        )


@dataclass(frozen=True)
class RunResult:
    """
    Outcome of one audit run.

    Attributes:
        rows: Report rows sorted by name
        summary: Row counts per status plus 'total'
        mode: Run mode used
        catalog_path: Where the catalog was written
        generated_at: Reconciliation instant of the run
        resolved: Entries resolved this run
        unresolved: Entries that could not be resolved this run
    """
    rows: tuple[ReportRow, ...]
    summary: dict[str, int]
    mode: str
    catalog_path: Path
    generated_at: datetime.datetime
    resolved: int = 0
    unresolved: int = 0


def _unique_ids(records: list[InventoryRecord]) -> list[int]:
    seen: dict[int, None] = {}
    for record in records:
        seen.setdefault(record.app_id, None)
    return list(seen)


def run_audit(
    config: Config,
    env: Environment,
    oracle: Oracle | None = None,
    now: datetime.datetime | None = None,
    rating_fetcher: Callable[..., RatingSummary] | None = None,
    feed_loader: Callable[..., list[FeedItem]] | None = None,
) -> RunResult:
    """
    Run one audit against the configured catalog.

    Args:
        config: Loaded configuration
        env: Run mode
        oracle: Oracle to query (defaults to steamcmd at the configured path)
        now: Reconciliation instant (defaults to the current time)
        rating_fetcher: Review summary lookup (defaults to the Steam reviews API)
        feed_loader: Release feed loader (defaults to fetching the configured feed)

    Returns:
        RunResult

    Raises:
        CatalogError: If the existing catalog cannot be read
        CatalogWriteError: If the updated catalog cannot be written
    """
    prefs = config.preferences
    now = now or datetime.datetime.now(datetime.timezone.utc)
    rating_fetcher = rating_fetcher or fetch_rating
    feed_loader = feed_loader or load_feed
    catalog_path = Path(config.paths.catalog_path())

    catalog = load_catalog(catalog_path)
    logger.info(f"Loaded catalog with {len(catalog)} entries ({env.label})")

    if env.unattended:
        candidates = catalog_candidates(catalog)
        to_resolve = candidates
    else:
        candidates = scan_backups(config.paths.backup_dir)
        catalog, to_resolve = merge_inventory(catalog, candidates, prefs.resolve_policy)
        write_catalog(catalog, catalog_path)

    feed_items = None
    if prefs.fetch_links and to_resolve:
        feed_items = feed_loader(prefs.feed_url, timeout=prefs.http_timeout_seconds)

    resolver = EntryResolver(
        oracle=oracle or SteamCmdClient(config.paths.steamcmd_path, timeout=prefs.oracle_timeout_seconds),
        now=now,
        fetch_ratings=prefs.fetch_ratings,
        http_timeout=prefs.http_timeout_seconds,
        feed_items=feed_items,
        link_prefix=prefs.link_prefix,
        rating_fetcher=rating_fetcher,
    )

    tasks = [
        ResolveTask(
            app_id=record.app_id,
            name=catalog[record.app_id].name,
            prev_version=catalog[record.app_id].latest_version,
            prev_observed_at=catalog[record.app_id].latest_observed_at,
        )
        for record in to_resolve
    ]
    total = len(tasks)
    completed = 0
    counts = {"resolved": 0, "unresolved": 0}

    def apply(index: int, task: ResolveTask, resolved: Resolved) -> None:
        nonlocal completed
        completed += 1
        entry = apply_resolution(catalog, task.app_id, resolved, now)
        counts["resolved" if resolved.resolved else "unresolved"] += 1
        logger.info(
            f"[{completed}/{total}] {entry.name} (AppID {entry.app_id}): "
            f"installed {entry.installed_version if entry.installed_version is not None else 'n/a'}, "
            f"latest {entry.latest_version if entry.latest_version is not None else 'n/a'} "
            f"- {status_label(classify(entry.installed_version, entry.latest_version))}"
        )

    if tasks:
        logger.info(f"Resolving {total} entries with up to {prefs.max_workers} workers")
    resolve_all(
        tasks,
        prefs.max_workers,
        resolver,
        on_error=lambda task, e: Resolved(error=f"{type(e).__name__}: {e}"),
        on_result=apply,
    )

    rows = assemble_report(catalog[app_id] for app_id in _unique_ids(candidates))
    write_catalog(catalog, catalog_path)
    logger.info(f"Catalog updated: {catalog_path}")

    return RunResult(
        rows=tuple(rows),
        summary=summarize(rows),
        mode=env.mode,
        catalog_path=catalog_path,
        generated_at=now,
        resolved=counts["resolved"],
        unresolved=counts["unresolved"],
    )
