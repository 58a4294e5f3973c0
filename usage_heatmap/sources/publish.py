"""
Git publisher.

Keeps the history and the rendered graph in sync with the remote repository.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


class PublishError(Exception):
    """Raised when artifacts cannot be staged."""


def _git(args: Sequence[str], repo_dir: Optional[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args],
        cwd=repo_dir,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=True,
    )


def pull(repo_dir: Optional[str] = None) -> bool:
    """Pull the latest history before merging.

    A failed pull (no remote yet, offline) is logged and ignored.

    Returns:
        True if the pull succeeded
    """
    try:
        _git(["pull"], repo_dir)
    except (OSError, subprocess.CalledProcessError) as e:
        logger.warning("git pull failed, continuing with local history: %s", e)
        return False
    return True


def commit_and_push(
    paths: Sequence[str],
    message: str,
    repo_dir: Optional[str] = None
) -> bool:
    """Commit the given artifacts and push them.

    Args:
        paths: Files to stage
        message: Commit message
        repo_dir: Repository to run git in; defaults to the current directory

    Returns:
        True if a commit was pushed, False if there was nothing to commit
        or the push failed

    Raises:
        PublishError: If the files cannot be staged
    """
    try:
        _git(["add", "--", *[str(Path(p)) for p in paths]], repo_dir)
    except (OSError, subprocess.CalledProcessError) as e:
        raise PublishError(f"Failed to stage {', '.join(paths)}: {e}") from e

    try:
        _git(["commit", "-m", message], repo_dir)
    except subprocess.CalledProcessError:
        logger.info("No changes to commit")
        return False

    try:
        _git(["push"], repo_dir)
    except subprocess.CalledProcessError as e:
        logger.warning("git push failed: %s", (e.stderr or "").strip())
        return False

    logger.info("Pushed %s", ", ".join(paths))
    return True
