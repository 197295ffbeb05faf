"""
Configuration file parsing and management.

YAML configuration merged from multiple sources (custom → project → user →
system → defaults), then overridden by environment variables and finally
by command-line flags.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

from .catalog import DEFAULT_CATALOG_FILE
from .common import vlog


CONFIG_LOCATIONS = [
    ".backup-audit.yml",                                    # Project root (highest priority)
    ".backup-audit.yaml",
    os.path.expanduser("~/.config/backup-audit/config.yml"),  # User global
    os.path.expanduser("~/.config/backup-audit/config.yaml"),
    "/etc/backup-audit/config.yml",                         # System global
    "/etc/backup-audit/config.yaml",
]

ENVIRONMENT_MODES = ("auto", "interactive", "unattended")
RESOLVE_POLICIES = ("all", "changed")


@dataclass(frozen=True)
class Paths:
    """
    File system locations.

    Attributes:
        backup_dir: Directory scanned for ``<Name>_<AppID>_<BuildID>.7z`` backups
        steamcmd_path: steamcmd executable
        repo_path: Directory holding the catalog and the HTML report
        catalog_file: Catalog file name (relative to repo_path unless absolute)
        report_file: HTML report file name (relative to repo_path unless absolute)
    """
    backup_dir: str = "."
    steamcmd_path: str = "steamcmd"
    repo_path: str = "."
    catalog_file: str = DEFAULT_CATALOG_FILE
    report_file: str = "index.html"

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Paths:
        """Create Paths from dictionary."""
        defaults = Paths()
        return Paths(
            backup_dir=str(data.get("backup_dir", defaults.backup_dir)),
            steamcmd_path=str(data.get("steamcmd_path", defaults.steamcmd_path)),
            repo_path=str(data.get("repo_path", defaults.repo_path)),
            catalog_file=str(data.get("catalog_file", defaults.catalog_file)),
            report_file=str(data.get("report_file", defaults.report_file)),
        )

    def catalog_path(self) -> str:
        return os.path.join(self.repo_path, self.catalog_file)

    def report_path(self) -> str:
        return os.path.join(self.repo_path, self.report_file)


@dataclass(frozen=True)
class Preferences:
    """
    Resolution behaviour.

    Attributes:
        max_workers: Concurrent steamcmd invocations (default 4)
        oracle_timeout_seconds: Hard timeout per steamcmd run
        http_timeout_seconds: Timeout for review and feed requests
        resolve_policy: 'all' re-resolves every local backup, 'changed' only new
            or changed ones
        fetch_ratings: Query Steam review summaries
        fetch_links: Search the release feed for links
        feed_url: Release feed URL
        link_prefix: Accepted prefix for release links
    """
    max_workers: int = 4
    oracle_timeout_seconds: int = 60
    http_timeout_seconds: int = 10
    resolve_policy: str = "all"
    fetch_ratings: bool = True
    fetch_links: bool = True
    feed_url: str = "https://feeds.feedburner.com/SkidrowReloadedGames"
    link_prefix: str = "https://www.skidrowreloaded.com/"

    def __post_init__(self):
        """Validate preferences after initialization."""
        if self.max_workers < 1 or self.max_workers > 32:
            raise ValueError(
                f"Invalid max_workers: {self.max_workers}. Must be between 1 and 32"
            )

        if self.oracle_timeout_seconds < 1 or self.oracle_timeout_seconds > 600:
            raise ValueError(
                f"Invalid oracle_timeout_seconds: {self.oracle_timeout_seconds}. "
                "Must be between 1 and 600"
            )

        if self.http_timeout_seconds < 1 or self.http_timeout_seconds > 120:
            raise ValueError(
                f"Invalid http_timeout_seconds: {self.http_timeout_seconds}. "
                "Must be between 1 and 120"
            )

        if self.resolve_policy not in RESOLVE_POLICIES:
            raise ValueError(
                f"Invalid resolve_policy: {self.resolve_policy}. "
                f"Must be one of: {', '.join(RESOLVE_POLICIES)}"
            )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Preferences:
        """Create Preferences from dictionary."""
        defaults = Preferences()
        return Preferences(
            max_workers=int(data.get("max_workers", defaults.max_workers)),
            oracle_timeout_seconds=int(data.get("oracle_timeout_seconds", defaults.oracle_timeout_seconds)),
            http_timeout_seconds=int(data.get("http_timeout_seconds", defaults.http_timeout_seconds)),
            resolve_policy=data.get("resolve_policy", defaults.resolve_policy),
            fetch_ratings=bool(data.get("fetch_ratings", defaults.fetch_ratings)),
            fetch_links=bool(data.get("fetch_links", defaults.fetch_links)),
            feed_url=data.get("feed_url", defaults.feed_url),
            link_prefix=data.get("link_prefix", defaults.link_prefix),
        )


@dataclass(frozen=True)
class GitSettings:
    """
    Publishing of the catalog and report to a git repository.

    Attributes:
        enabled: Commit and push after a successful run
        user_name: Commit author name
        user_email: Commit author email
    """
    enabled: bool = True
    user_name: str = ""
    user_email: str = ""

    @staticmethod
    def from_dict(data: dict[str, Any]) -> GitSettings:
        """Create GitSettings from dictionary."""
        return GitSettings(
            enabled=bool(data.get("enabled", True)),
            user_name=str(data.get("user_name", "") or ""),
            user_email=str(data.get("user_email", "") or ""),
        )


@dataclass(frozen=True)
class Config:
    """
    Complete configuration for the backup audit.

    Attributes:
        version: Config schema version
        environment_mode: 'auto', 'interactive' or 'unattended'
        paths: File system locations
        preferences: Resolution behaviour
        git: Publishing settings
        source: Configuration files that were loaded, highest priority first
    """
    version: int = 1
    environment_mode: str = "auto"
    paths: Paths = field(default_factory=Paths)
    preferences: Preferences = field(default_factory=Preferences)
    git: GitSettings = field(default_factory=GitSettings)
    source: tuple[str, ...] = ()

    def __post_init__(self):
        """Validate config after initialization."""
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

        if self.environment_mode not in ENVIRONMENT_MODES:
            raise ValueError(
                f"Invalid environment_mode: {self.environment_mode}. "
                f"Must be one of: {', '.join(ENVIRONMENT_MODES)}"
            )

    @staticmethod
    def from_dict(data: dict[str, Any], source: tuple[str, ...] = ()) -> Config:
        """Create Config from dictionary."""
        environment_data = data.get("environment", {}) or {}

        return Config(
            version=data.get("version", 1),
            environment_mode=environment_data.get("mode", "auto"),
            paths=Paths.from_dict(data.get("paths", {}) or {}),
            preferences=Preferences.from_dict(data.get("preferences", {}) or {}),
            git=GitSettings.from_dict(data.get("git", {}) or {}),
            source=source,
        )

    def with_overrides(self, **overrides: Any) -> Config:
        """
        Return a copy with non-None overrides applied.

        Keys are field names of Paths, Preferences or GitSettings, or
        ``environment_mode``.

        Raises:
            ValueError: If a key is unknown or a value fails validation
        """
        sections: dict[str, dict[str, Any]] = {"paths": {}, "preferences": {}, "git": {}}
        top: dict[str, Any] = {}

        for key, value in overrides.items():
            if value is None:
                continue
            if key == "environment_mode":
                top[key] = value
                continue
            for section in sections:
                if key in {f.name for f in dataclasses.fields(getattr(self, section))}:
                    sections[section][key] = value
                    break
            else:
                raise ValueError(f"Unknown configuration key: {key}")

        return dataclasses.replace(
            self,
            paths=dataclasses.replace(self.paths, **sections["paths"]),
            preferences=dataclasses.replace(self.preferences, **sections["preferences"]),
            git=dataclasses.replace(self.git, **sections["git"]),
            **top,
        )


def _deep_merge(high: dict[str, Any], low: dict[str, Any]) -> dict[str, Any]:
    """Merge two config dictionaries, preferring values from ``high``."""
    merged = dict(low)
    for key, value in high.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(value, merged[key])
        else:
            merged[key] = value
    return merged


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    """
    Load YAML configuration file.

    Returns:
        Parsed configuration dictionary, or None if the file is unreadable or invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return None


def load_config_data(file_path: str, verbose: bool = False) -> dict[str, Any] | None:
    """
    Load raw configuration data from a single file.

    Returns:
        Parsed dictionary, or None if the file does not exist or cannot be parsed
    """
    if not os.path.exists(file_path):
        return None

    vlog(f"Loading config from: {file_path}", verbose)
    data = _load_yaml(file_path)
    if data is None:
        vlog(f"Invalid config file: {file_path}", verbose)
    return data


def load_config_file(file_path: str, verbose: bool = False) -> Config | None:
    """
    Load configuration from a single file.

    Returns:
        Config object, or None if file cannot be loaded or fails validation
    """
    data = load_config_data(file_path, verbose)
    if data is None:
        return None

    try:
        return Config.from_dict(data, source=(file_path,))
    except (ValueError, TypeError) as e:
        vlog(f"Config validation failed for {file_path}: {e}", verbose)
        return None


def apply_env_overrides(config: Config, environ: dict[str, str] | None = None) -> Config:
    """
    Apply BACKUP_AUDIT_* environment variables on top of a config.

    Raises:
        ValueError: If an override value is invalid
    """
    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}

    if env.get("BACKUP_AUDIT_MAX_WORKERS"):
        try:
            overrides["max_workers"] = int(env["BACKUP_AUDIT_MAX_WORKERS"])
        except ValueError as e:
            raise ValueError(
                f"Invalid BACKUP_AUDIT_MAX_WORKERS: {env['BACKUP_AUDIT_MAX_WORKERS']}"
            ) from e
    if env.get("BACKUP_AUDIT_STEAMCMD"):
        overrides["steamcmd_path"] = env["BACKUP_AUDIT_STEAMCMD"]
    if env.get("BACKUP_AUDIT_CATALOG_FILE"):
        overrides["catalog_file"] = env["BACKUP_AUDIT_CATALOG_FILE"]

    return config.with_overrides(**overrides) if overrides else config


def load_config(
    custom_path: str | None = None,
    verbose: bool = False,
    locations: list[str] | None = None,
) -> Config:
    """
    Load and merge configuration from all sources.

    Configuration precedence (highest to lowest):
    1. Custom path (if provided)
    2. Project .backup-audit.yml
    3. User ~/.config/backup-audit/config.yml
    4. System /etc/backup-audit/config.yml
    5. Default configuration

    Environment overrides are applied to the merged result.

    Raises:
        ValueError: If custom_path cannot be loaded or the merged config is invalid
    """
    layers: list[tuple[str, dict[str, Any]]] = []

    if custom_path:
        data = load_config_data(custom_path, verbose)
        if data is None:
            raise ValueError(f"Could not load config from specified path: {custom_path}")
        layers.append((custom_path, data))
        vlog(f"Using custom config: {custom_path}", verbose)

    for location in CONFIG_LOCATIONS if locations is None else locations:
        data = load_config_data(location, verbose)
        if data is not None:
            layers.append((location, data))
            vlog(f"Found config at: {location}", verbose)

    if not layers:
        vlog("No config files found, using defaults", verbose)
        return apply_env_overrides(Config())

    merged: dict[str, Any] = {}
    for _, data in reversed(layers):
        merged = _deep_merge(data, merged)

    config = Config.from_dict(merged, source=tuple(path for path, _ in layers))
    vlog(f"Merged {len(layers)} config files", verbose)
    return apply_env_overrides(config)
