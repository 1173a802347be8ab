"""Local git queries against the checked-out workspace."""

import logging
import re
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

PR_MERGE_MESSAGE = re.compile(r"Merge (\w+) into (\w+)", re.IGNORECASE)


def _git(args: list[str], workspace: Path | None) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=workspace,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def get_current_commit_sha(workspace: Path | None, fallback: str | None = None) -> str:
    """
    Resolve the commit the run is checking.

    Pull request workflows check out a synthetic merge commit whose subject is
    `Merge <head> into <base>`; in that case the pull request head is returned.

    Args:
        workspace (Path | None): Local checkout.
        fallback (str | None): Sha to use when git cannot be queried.

    Returns:
        str: Commit sha.

    Raises:
        RuntimeError: If git fails and there is no fallback.
    """
    try:
        sha = _git(["rev-parse", "HEAD"], workspace)
    except (OSError, subprocess.CalledProcessError) as exc:
        if fallback:
            logger.warning("git rev-parse failed (%s), using %s", exc, fallback)
            return fallback
        raise RuntimeError(f"Failed to resolve current commit: {exc}") from exc

    try:
        subject = _git(["show", sha, "-s", "--format=%s"], workspace)
    except (OSError, subprocess.CalledProcessError) as exc:
        logger.debug("Could not read subject of %s: %s", sha, exc)
        return sha

    match = PR_MERGE_MESSAGE.search(subject)
    if match:
        return match.group(1)
    return sha
