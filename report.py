#!/usr/bin/env python3
"""
Steam Backup Report - backup freshness audit.

Scans local game backups (or re-checks the whole catalog in scheduled
runs), resolves the latest public build of every game through steamcmd,
and writes the catalog, a terminal table and an HTML report.

Usage:
    report.py --backup-dir D:/Games --steamcmd /opt/steamcmd/steamcmd.sh
    report.py --mode unattended --no-publish
    report.py --json
"""

import argparse
import datetime
import json
import logging
import sys

from backup_audit.catalog import CatalogError, CatalogWriteError
from backup_audit.config import ENVIRONMENT_MODES, load_config
from backup_audit.engine import run_audit
from backup_audit.environment import detect_environment
from backup_audit.html_report import write_html_report
from backup_audit.logging_config import setup_logging
from backup_audit.publish import publish_report, should_publish
from backup_audit.render import print_summary, render_table

logger = logging.getLogger("backup_audit.cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CATALOG_UNREADABLE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Steam Backup Report - compare backed-up builds with the latest public builds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--backup-dir", help="Directory holding <Name>_<AppID>_<BuildID>.7z backups")
    parser.add_argument("--steamcmd", dest="steamcmd_path", help="Path to the steamcmd executable")
    parser.add_argument("--repo-path", help="Directory holding the catalog and the HTML report")
    parser.add_argument("--config", help="Configuration file (must exist if given)")
    parser.add_argument("--workers", dest="max_workers", type=int, help="Concurrent oracle invocations")
    parser.add_argument(
        "--mode",
        choices=ENVIRONMENT_MODES,
        help="Run mode (default: auto-detect from CI environment)",
    )
    parser.add_argument("--json", action="store_true", help="Print report rows as JSON instead of a table")
    parser.add_argument("--no-html", action="store_true", help="Do not write the HTML report")
    parser.add_argument("--no-publish", action="store_true", help="Do not commit and push the report")
    parser.add_argument("--git-user-name", dest="user_name", help="Committer name for publishing")
    parser.add_argument("--git-user-email", dest="user_email", help="Committer email for publishing")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only warnings and errors")
    parser.add_argument("--log-file", help="Also write a debug log to this file")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    try:
        config = load_config(args.config, verbose=args.verbose).with_overrides(
            backup_dir=args.backup_dir,
            steamcmd_path=args.steamcmd_path,
            repo_path=args.repo_path,
            max_workers=args.max_workers,
            environment_mode=args.mode,
            user_name=args.user_name,
            user_email=args.user_email,
        )
        env = detect_environment(config.environment_mode, verbose=args.verbose)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_FAILURE

    logger.info(f"Run mode: {env}")

    try:
        result = run_audit(config, env)
    except CatalogError as e:
        logger.error(f"Catalog unreadable, nothing was changed: {e}")
        return EXIT_CATALOG_UNREADABLE
    except CatalogWriteError as e:
        logger.error(f"Failed to write catalog: {e}")
        return EXIT_FAILURE

    if args.json:
        print(json.dumps(
            {"summary": result.summary, "rows": [row.to_dict() for row in result.rows]},
            indent=2,
            ensure_ascii=False,
        ))
    else:
        render_table(result.rows)
    print_summary(result.summary, env.label)

    files = [result.catalog_path]
    if not args.no_html:
        try:
            files.append(write_html_report(config.paths.report_path(), result.rows, result.generated_at, env.label))
        except OSError as e:
            logger.error(f"Failed to write HTML report: {e}")
            return EXIT_FAILURE

    if args.no_publish or not config.git.enabled:
        logger.debug("Publishing disabled")
    elif not should_publish(env):
        logger.info("Unattended run without GITHUB_TOKEN, skipping publish")
    else:
        stamp = result.generated_at.astimezone(datetime.timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        publish = publish_report(
            config.paths.repo_path,
            files,
            f"Update Steam backup report {stamp}",
            user_name=config.git.user_name,
            user_email=config.git.user_email,
        )
        if not publish.success:
            logger.warning("Report was not published; catalog is saved locally")

    return EXIT_OK


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
