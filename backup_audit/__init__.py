"""
Backup Audit - Steam game backup freshness reporting.

Core Modules:
- Catalog: Persistent per-game record (games.json), atomic writes
- Inventory: Local backup archive scan
- Resolution: steamcmd build lookup with retry, bounded concurrent resolver
- Reconciliation: Two-pass merge of inventory and resolution results
- Enrichment: Steam review summaries, release feed links
- Reporting: Status classification, terminal table, HTML page, git publishing
"""

__version__ = "1.0.0"
__author__ = "Backup Audit Contributors"

VERSION = __version__

# Catalog
from .catalog import (
    Catalog,
    CatalogEntry,
    CatalogError,
    CatalogWriteError,
    RatingSummary,
    load_catalog,
    write_catalog,
)
from .inventory import InventoryRecord, parse_backup_name, scan_backups, catalog_candidates

# Resolution
from .oracle import Oracle, SteamCmdClient
from .buildinfo import BuildInfo, RetryPolicy, extract_build_info, fetch_build_info
from .resolver import Resolved, resolve_all
from .reconcile import merge_inventory, apply_resolution, reconcile_observed_at

# Enrichment
from .ratings import fetch_rating, parse_rating
from .feeds import FeedItem, load_feed, parse_feed, find_links

# Reporting
from .status import UNRESOLVED, UPDATE_AVAILABLE, UP_TO_DATE, classify, status_label
from .report import ReportRow, assemble_report, summarize
from .render import render_table, print_summary
from .html_report import render_html, write_html_report
from .publish import PublishResult, publish_report, should_publish

# Foundation
from .environment import Environment, detect_environment
from .config import Config, Paths, Preferences, GitSettings, load_config
from .engine import RunResult, run_audit

# Logging configuration
from .logging_config import (
    setup_logging,
    get_logger,
)

__all__ = [
    # Version
    "__version__",
    "VERSION",
    # Catalog
    "Catalog",
    "CatalogEntry",
    "CatalogError",
    "CatalogWriteError",
    "RatingSummary",
    "load_catalog",
    "write_catalog",
    "InventoryRecord",
    "parse_backup_name",
    "scan_backups",
    "catalog_candidates",
    # Resolution
    "Oracle",
    "SteamCmdClient",
    "BuildInfo",
    "RetryPolicy",
    "extract_build_info",
    "fetch_build_info",
    "Resolved",
    "resolve_all",
    "merge_inventory",
    "apply_resolution",
    "reconcile_observed_at",
    # Enrichment
    "fetch_rating",
    "parse_rating",
    "FeedItem",
    "load_feed",
    "parse_feed",
    "find_links",
    # Reporting
    "UNRESOLVED",
    "UPDATE_AVAILABLE",
    "UP_TO_DATE",
    "classify",
    "status_label",
    "ReportRow",
    "assemble_report",
    "summarize",
    "render_table",
    "print_summary",
    "render_html",
    "write_html_report",
    "PublishResult",
    "publish_report",
    "should_publish",
    # Foundation
    "Environment",
    "detect_environment",
    "Config",
    "Paths",
    "Preferences",
    "GitSettings",
    "load_config",
    "RunResult",
    "run_audit",
    # Logging
    "setup_logging",
    "get_logger",
]
