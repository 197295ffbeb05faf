"""
Common utilities shared across backup_audit modules.
"""

from __future__ import annotations

import os
import sys
import urllib.request

USER_AGENT = "backup-audit/1.0"


class CollectionError(Exception):
    """Raised when fetching auxiliary remote data fails."""
    pass


class NetworkError(CollectionError):
    """Raised when network requests fail."""
    pass


class ParseError(CollectionError):
    """Raised when response parsing fails."""
    pass


CI_ENV_VARS = (
    "CI",
    "CONTINUOUS_INTEGRATION",
    "GITHUB_ACTIONS",
    "GITLAB_CI",
    "CIRCLECI",
    "JENKINS_HOME",
    "BUILDKITE",
    "DRONE",
    "TF_BUILD",  # Azure Pipelines
)


def is_ci_environment() -> bool:
    """
    Check if running in an unattended CI/CD environment.

    Returns:
        True if CI indicators are present, False otherwise.
    """
    return any(os.environ.get(var) for var in CI_ENV_VARS)


def http_get(url: str, timeout: float = 10, headers: dict[str, str] | None = None) -> bytes:
    """Perform HTTP GET request.

    Args:
        url: URL to fetch
        timeout: Timeout in seconds
        headers: Optional HTTP headers

    Returns:
        Response body as bytes

    Raises:
        NetworkError: If the request fails or returns a non-2xx status
    """
    try:
        default_headers = {"User-Agent": USER_AGENT}
        if headers:
            default_headers.update(headers)

        req = urllib.request.Request(url, headers=default_headers)
        with urllib.request.urlopen(req, timeout=timeout) as response:
            status = getattr(response, "status", 200)
            if not 200 <= status < 300:
                raise NetworkError(f"Unexpected HTTP {status} from {url}")
            return response.read()
    except NetworkError:
        raise
    except Exception as e:
        raise NetworkError(f"Failed to fetch {url}: {e}") from e


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log verbose message using structured logging.

    Args:
        msg: Message to log
        verbose: Whether verbose mode is enabled
    """
    if verbose or os.environ.get("BACKUP_AUDIT_DEBUG", "0") == "1":
        try:
            from .logging_config import get_logger
            get_logger().info(msg)
        except Exception:
            # Fallback to stderr if logging fails
            print(f"[backup_audit] {msg}", file=sys.stderr)
