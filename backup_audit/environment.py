"""
Run mode detection.

Two modes:
- interactive: run on the machine holding the backups; the local backup
  directory is scanned and merged into the catalog.
- unattended: scheduled CI run with no backups on disk; every catalog entry
  is re-checked.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .common import CI_ENV_VARS, is_ci_environment, vlog

INTERACTIVE = "interactive"
UNATTENDED = "unattended"

VALID_MODES = (INTERACTIVE, UNATTENDED)


@dataclass(frozen=True)
class Environment:
    """
    Detected run mode.

    Attributes:
        mode: 'interactive' or 'unattended'
        indicators: Evidence for the detection decision
        override: Whether mode was explicitly set
    """
    mode: str
    indicators: tuple[str, ...] = ()
    override: bool = False

    @property
    def unattended(self) -> bool:
        return self.mode == UNATTENDED

    @property
    def label(self) -> str:
        """Run mode as shown in the report footer."""
        return "Unattended run" if self.unattended else "Local run"

    def __str__(self) -> str:
        override_str = " (override)" if self.override else ""
        return f"{self.mode}{override_str}"


def detect_environment(override: str | None = None, verbose: bool = False) -> Environment:
    """
    Detect the run mode.

    Args:
        override: 'interactive', 'unattended', 'auto' or None

    Returns:
        Environment with detected or overridden mode

    Raises:
        ValueError: If override value is not valid
    """
    if override and override != "auto":
        if override not in VALID_MODES:
            raise ValueError(
                f"Invalid run mode override: {override}. "
                f"Must be one of: auto, {', '.join(VALID_MODES)}"
            )
        vlog(f"Run mode explicitly set to: {override}", verbose)
        return Environment(mode=override, indicators=(f"explicit_override={override}",), override=True)

    if is_ci_environment():
        indicators = tuple(
            f"env:{var}={os.environ[var]}" for var in CI_ENV_VARS if os.environ.get(var)
        )
        vlog(f"Unattended environment detected: {indicators}", verbose)
        return Environment(mode=UNATTENDED, indicators=indicators)

    vlog("Interactive environment (default)", verbose)
    return Environment(mode=INTERACTIVE)
