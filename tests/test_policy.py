"""Tests for conclusion override policies."""

import pytest

from graphql_inspector_check.models import AnnotationLevel, CheckConclusion
from graphql_inspector_check.pipeline.policy import PolicyContext, resolve
from graphql_inspector_check.schemas import (
    Annotation,
    DiffResult,
    PullRequestContext,
)

APPROVE_LABEL = "approved-breaking-change"


def _raw(conclusion: CheckConclusion) -> DiffResult:
    return DiffResult(
        conclusion=conclusion,
        annotations=[
            Annotation(
                path="schema.graphql",
                start_line=2,
                end_line=2,
                annotation_level=AnnotationLevel.FAILURE,
                message="Query.a changed type from String to Int.",
            )
        ],
    )


def _context(**overrides) -> PolicyContext:
    values = {"approve_label": APPROVE_LABEL}
    values.update(overrides)
    return PolicyContext(**values)


def test_failure_is_kept_by_default() -> None:
    result = resolve(_raw(CheckConclusion.FAILURE), [], _context())

    assert result.conclusion == CheckConclusion.FAILURE
    assert result.overridden is False
    assert len(result.annotations) == 1


@pytest.mark.parametrize("raw", list(CheckConclusion))
def test_disabled_fail_on_breaking_always_succeeds(raw: CheckConclusion) -> None:
    result = resolve(_raw(raw), [], _context(fail_on_breaking=False))

    assert result.conclusion == CheckConclusion.SUCCESS
    assert len(result.annotations) == 1


def test_approval_label_forces_success() -> None:
    pull_request = PullRequestContext(
        number=3, state="open", labels=["docs", APPROVE_LABEL]
    )

    result = resolve(
        _raw(CheckConclusion.FAILURE), [], _context(pull_request=pull_request)
    )

    assert result.conclusion == CheckConclusion.SUCCESS
    assert result.overridden is True


def test_other_labels_do_not_override() -> None:
    pull_request = PullRequestContext(number=3, state="open", labels=["docs"])

    result = resolve(
        _raw(CheckConclusion.FAILURE), [], _context(pull_request=pull_request)
    )

    assert result.conclusion == CheckConclusion.FAILURE


def test_disabled_annotations_keep_conclusion() -> None:
    result = resolve(
        _raw(CheckConclusion.FAILURE), [], _context(annotations_enabled=False)
    )

    assert result.annotations == []
    assert result.conclusion == CheckConclusion.FAILURE


def test_endpoint_comparison_drops_annotations() -> None:
    result = resolve(
        _raw(CheckConclusion.SUCCESS), [], _context(endpoint_comparison=True)
    )

    assert result.annotations == []
    assert result.conclusion == CheckConclusion.SUCCESS
