"""
steamcmd invocation.

steamcmd prints app metadata as human-oriented KeyValues text and very
often exits non-zero even after printing everything we need, so the exit
status is logged and otherwise ignored. Only a timeout or a failure to run
the process at all yields empty output.
"""

from __future__ import annotations

import logging
import subprocess
import time
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60


class Oracle(Protocol):
    """Anything that returns raw app-info text for an AppID."""

    def invoke(self, app_id: int) -> str: ...


def _decode(output: bytes | str | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


class SteamCmdClient:
    """Runs one steamcmd process per invocation.

    Args:
        steamcmd_path: Path to the steamcmd executable or wrapper script
        timeout: Hard timeout per invocation in seconds
    """

    def __init__(self, steamcmd_path: str, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.steamcmd_path = steamcmd_path
        self.timeout = timeout

    def build_command(self, app_id: int) -> list[str]:
        return [
            self.steamcmd_path,
            "+login", "anonymous",
            "+app_info_update", "1",
            "+app_info_print", str(int(app_id)),
            "+quit",
        ]

    def invoke(self, app_id: int) -> str:
        """Return combined stdout and stderr of one steamcmd run.

        Args:
            app_id: Steam AppID to query

        Returns:
            Captured text; empty on timeout or if the process could not run
        """
        command = self.build_command(app_id)
        logger.debug(f"Running: {' '.join(command)}")
        start_time = time.time()

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"steamcmd timed out after {self.timeout}s for AppID {app_id}")
            return ""
        except OSError as e:
            logger.error(f"Could not run steamcmd for AppID {app_id}: {e}")
            return ""

        output = _decode(result.stdout) + _decode(result.stderr)
        duration = time.time() - start_time
        if result.returncode != 0:
            logger.debug(f"steamcmd exited with code {result.returncode} for AppID {app_id}")
        logger.debug(f"steamcmd output for AppID {app_id}: {len(output)} chars in {duration:.1f}s")
        return output
