"""
Build information extraction from steamcmd app-info text.

The text is KeyValues-ish diagnostic output, not a grammar we parse
properly. Each scalar is scraped with a ``"<key>"  "<digits>"`` pattern and
the first occurrence wins; for ``buildid`` that is the public branch, which
steamcmd prints before any beta branches.

When the build id is missing the oracle is invoked once more (a full new
steamcmd run) before the entry is given up as unresolved.
"""

from __future__ import annotations

import datetime
import logging
import re
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger(__name__)

BUILD_ID_KEY = "buildid"
TIME_UPDATED_KEY = "timeupdated"

PREVIEW_CHARS = 500


def field_pattern(key: str) -> re.Pattern[str]:
    """Regex for a quoted key followed by a quoted integer value."""
    return re.compile(rf'"{re.escape(key)}"\s+"(\d+)"')


_PATTERNS = {key: field_pattern(key) for key in (BUILD_ID_KEY, TIME_UPDATED_KEY)}


def extract_int_field(text: str, key: str) -> int | None:
    """Return the first integer value for ``key`` in text, or None."""
    pattern = _PATTERNS.get(key) or field_pattern(key)
    match = pattern.search(text or "")
    return int(match.group(1)) if match else None


@dataclass(frozen=True)
class BuildInfo:
    """Typed fields scraped from one oracle output."""

    version: int | None = None
    observed_at: datetime.datetime | None = None


def extract_build_info(text: str) -> BuildInfo:
    """Extract the build id and update time from raw oracle text.

    Missing fields are None; this never raises on unexpected text.
    """
    version = extract_int_field(text, BUILD_ID_KEY)
    time_updated = extract_int_field(text, TIME_UPDATED_KEY)

    observed_at = None
    if time_updated:
        try:
            observed_at = datetime.datetime.fromtimestamp(time_updated, tz=datetime.timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.debug(f"Ignoring out-of-range timeupdated value: {time_updated}")

    return BuildInfo(version=version, observed_at=observed_at)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded re-invocation when the build id is missing.

    Attributes:
        max_attempts: Total oracle invocations per entry (first call included)
    """
    max_attempts: int = 2

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"Invalid max_attempts: {self.max_attempts}. Must be at least 1")

    def should_retry(self, info: BuildInfo, attempt: int) -> bool:
        """Retry only when nothing was found and attempts remain."""
        return info.version is None and attempt < self.max_attempts


DEFAULT_RETRY_POLICY = RetryPolicy()


@dataclass(frozen=True)
class BuildInfoAttempt:
    """
    Outcome of fetching build info for one entry.

    Attributes:
        info: Extraction from the last invocation
        raw_outputs: Raw text of every invocation, for diagnostics only
    """
    info: BuildInfo
    raw_outputs: tuple[str, ...] = field(default_factory=tuple)

    @property
    def attempts(self) -> int:
        return len(self.raw_outputs)


def fetch_build_info(
    app_id: int,
    invoke: Callable[[int], str],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
) -> BuildInfoAttempt:
    """Invoke the oracle and extract build info, retrying on a miss.

    Args:
        app_id: Steam AppID
        invoke: Oracle call returning raw text (a fresh invocation each time)
        policy: Retry policy

    Returns:
        BuildInfoAttempt with the final extraction and every raw output
    """
    outputs: list[str] = []
    attempt = 0

    while True:
        attempt += 1
        text = invoke(app_id)
        outputs.append(text)
        info = extract_build_info(text)

        if info.version is not None:
            logger.debug(f"AppID {app_id}: buildid {info.version} (attempt {attempt})")
            break
        if not policy.should_retry(info, attempt):
            break
        logger.info(f"AppID {app_id}: no buildid in oracle output, retrying")

    if info.version is None:
        preview = text[:PREVIEW_CHARS] if text else "<empty>"
        logger.warning(
            f"AppID {app_id}: no buildid after {attempt} attempt(s); output preview: {preview!r}"
        )
        for number, raw in enumerate(outputs, start=1):
            logger.debug(f"AppID {app_id}: raw oracle output, attempt {number}:\n{raw}")

    return BuildInfoAttempt(info=info, raw_outputs=tuple(outputs))
