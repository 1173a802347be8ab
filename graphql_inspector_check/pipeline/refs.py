"""Choice of the two revisions a check compares."""

import logging
from pathlib import Path

from graphql_inspector_check.schemas import PullRequestContext, RefDecision

logger = logging.getLogger(__name__)


def merge_ref(pull_request_number: int) -> str:
    """Merge-preview ref the host keeps for an open pull request."""
    return f"refs/pull/{pull_request_number}/merge"


def decide(
    push_ref: str,
    base_ref: str,
    pull_request: PullRequestContext | None,
    merge_mode_enabled: bool,
    workspace: Path | None = None,
) -> RefDecision:
    """
    Decide which revisions the old and new schema are read from.

    By default the old side is the base ref from the schema locator and the new
    side is the pushed commit, read from the local checkout. With merge mode on
    and an open pull request, the new side becomes the pull request's merge
    preview. That content is not in the checkout, so the new-side workspace is
    dropped. When the pull request names a base branch, it replaces the
    locator's base ref.

    Args:
        push_ref: Commit the run was triggered for.
        base_ref: Ref parsed from the schema locator.
        pull_request: Associated pull request, if any.
        merge_mode_enabled: Whether merge simulation is enabled.
        workspace: Local checkout of `push_ref`.

    Returns:
        RefDecision: Old and new refs with their workspace hints.
    """
    if not (merge_mode_enabled and pull_request is not None and pull_request.is_open):
        return RefDecision(
            old_ref=base_ref,
            new_ref=push_ref,
            new_workspace=workspace,
        )

    new_ref = merge_ref(pull_request.number)
    logger.info(f"EXPERIMENTAL - Using Pull Request {new_ref}")

    old_ref = base_ref
    if pull_request.base_ref:
        old_ref = pull_request.base_ref
        logger.info(f"EXPERIMENTAL - Using {old_ref} as base schema ref")

    return RefDecision(
        old_ref=old_ref,
        new_ref=new_ref,
        new_workspace=None,
        merge_simulated=True,
    )
