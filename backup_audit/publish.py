"""
Publishing the report through git.

Commits the catalog and the HTML report in the repository that hosts them
and pushes the commit. Failures are reported, not raised: by the time this
runs the catalog is already on disk.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from .environment import Environment

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 120
NOTHING_TO_COMMIT = "nothing to commit"


@dataclass(frozen=True)
class PublishResult:
    """
    Outcome of a publish attempt.

    Attributes:
        success: True if every git step succeeded (or there was nothing to commit)
        committed: True if a new commit was created
        pushed: True if the push succeeded
        steps: Git subcommands that ran, in order
        error: Output of the failing step
    """
    success: bool
    committed: bool = False
    pushed: bool = False
    steps: tuple[str, ...] = ()
    error: str | None = None


@dataclass
class _GitRunner:
    repo_path: Path
    timeout: int = GIT_TIMEOUT_SECONDS
    steps: list[str] = field(default_factory=list)

    def run(self, *args: str) -> subprocess.CompletedProcess:
        cmd = ["git", "-C", str(self.repo_path), *args]
        self.steps.append(args[0])
        logger.debug(f"Running: {' '.join(cmd)}")
        return subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=False,
        )


def should_publish(env: Environment, environ: dict[str, str] | None = None) -> bool:
    """Publishing runs locally, and in unattended runs only with a GITHUB_TOKEN."""
    environ = os.environ if environ is None else environ
    return bool(environ.get("GITHUB_TOKEN")) or not env.unattended


def publish_report(
    repo_path: str | Path,
    files: Iterable[str | Path],
    message: str,
    user_name: str = "",
    user_email: str = "",
) -> PublishResult:
    """
    Commit the given files and push.

    Args:
        repo_path: Repository working tree
        files: Files to stage, absolute or relative to repo_path
        message: Commit message
        user_name: Committer name (left as configured when empty)
        user_email: Committer email (left as configured when empty)

    Returns:
        PublishResult
    """
    repo = Path(repo_path)
    git = _GitRunner(repo)

    def failed(result: subprocess.CompletedProcess | None, error: str | None = None) -> PublishResult:
        if error is None:
            error = (result.stderr or result.stdout or "").strip() or f"exit code {result.returncode}"
        logger.error(f"git {git.steps[-1]} failed: {error}")
        return PublishResult(success=False, steps=tuple(git.steps), error=error)

    try:
        if user_name:
            result = git.run("config", "user.name", user_name)
            if result.returncode != 0:
                return failed(result)
        if user_email:
            result = git.run("config", "user.email", user_email)
            if result.returncode != 0:
                return failed(result)

        result = git.run("add", "--", *(str(f) for f in files))
        if result.returncode != 0:
            return failed(result)

        result = git.run("commit", "-m", message)
        if result.returncode != 0:
            if NOTHING_TO_COMMIT in (result.stdout or "") + (result.stderr or ""):
                logger.info("Report unchanged, nothing to publish")
                return PublishResult(success=True, steps=tuple(git.steps))
            return failed(result)

        result = git.run("pull", "--no-rebase", "--strategy=ours")
        if result.returncode != 0:
            return failed(result)

        result = git.run("push")
        if result.returncode != 0:
            return failed(result)
    except subprocess.TimeoutExpired:
        return failed(None, error=f"timed out after {git.timeout}s")
    except OSError as e:
        return failed(None, error=str(e))

    logger.info("Git commit and push completed")
    return PublishResult(success=True, committed=True, pushed=True, steps=tuple(git.steps))
