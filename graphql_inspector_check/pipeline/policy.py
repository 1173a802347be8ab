"""Override policies applied to the classifier's raw conclusion."""

import logging

from pydantic import BaseModel

from graphql_inspector_check.models import CheckConclusion
from graphql_inspector_check.schemas import (
    DiffResult,
    InvalidDocumentFinding,
    PolicyResult,
    PullRequestContext,
)

logger = logging.getLogger(__name__)


class PolicyContext(BaseModel):
    """Inputs of the override policies."""

    fail_on_breaking: bool = True
    annotations_enabled: bool = True
    approve_label: str
    pull_request: PullRequestContext | None = None
    endpoint_comparison: bool = False


def is_approved(context: PolicyContext) -> bool:
    """Whether the pull request carries the approval label."""
    return context.pull_request is not None and context.pull_request.has_label(
        context.approve_label
    )


def resolve(
    raw: DiffResult,
    findings: list[InvalidDocumentFinding],
    context: PolicyContext,
) -> PolicyResult:
    """
    Apply override policies to the raw diff result.

    The verdict and the annotations are projected independently: a disabled
    fail-on-breaking toggle or an approval label turns a failure into a
    success without touching annotations, and disabled annotations or an
    endpoint-to-URL comparison empty the annotations without touching the
    verdict. Changes and findings are reported either way.

    Args:
        raw (DiffResult): Classifier output.
        findings (list[InvalidDocumentFinding]): Invalid documents, reported
            in the summary only.
        context (PolicyContext): Toggles and pull request state.

    Returns:
        PolicyResult: Final conclusion and annotations.
    """
    conclusion = raw.conclusion
    overridden = False
    if conclusion == CheckConclusion.FAILURE and (
        not context.fail_on_breaking or is_approved(context)
    ):
        logger.info("FailOnBreaking disabled or change approved. Forcing SUCCESS")
        conclusion = CheckConclusion.SUCCESS
        overridden = True

    annotations = list(raw.annotations)
    if not context.annotations_enabled or context.endpoint_comparison:
        logger.info("Annotations are disabled. Skipping annotations...")
        annotations = []

    if findings:
        logger.info("Found %d invalid documents", len(findings))

    return PolicyResult(
        conclusion=conclusion,
        annotations=annotations,
        overridden=overridden,
    )
