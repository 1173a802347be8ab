"""Tests for summary rendering and check-run completion."""

from pathlib import Path

import pytest

from graphql_inspector_check.errors import ReportingError
from graphql_inspector_check.models import (
    AnnotationLevel,
    CheckConclusion,
    CriticalityLevel,
)
from graphql_inspector_check.pipeline import report
from graphql_inspector_check.schemas import (
    Annotation,
    Change,
    CheckRunHandle,
    CheckRunOutput,
    InvalidDocumentFinding,
)

HANDLE = CheckRunHandle(id=7, name="GraphQL Inspector", head_sha="abc123")

CHANGES = [
    Change(
        type="FIELD_REMOVED",
        message="Query.a was removed.",
        criticality=CriticalityLevel.BREAKING,
        path="Query.a",
    ),
    Change(
        type="VALUE_ADDED_TO_ENUM",
        message="USER was added to enum type Role.",
        criticality=CriticalityLevel.DANGEROUS,
        path="Role.USER",
    ),
    Change(
        type="FIELD_ADDED",
        message="Field 'b' was added to type 'Query'",
        criticality=CriticalityLevel.NON_BREAKING,
        path="Query.b",
    ),
]

ANNOTATION = Annotation(
    path="schema.graphql",
    start_line=1,
    end_line=1,
    annotation_level=AnnotationLevel.FAILURE,
    message="Query.a was removed.",
)


class _FakeChecks:
    """Check-run collaborator that records updates and can reject the first few."""

    def __init__(self, failures: int = 0) -> None:
        self._failures = failures
        self.updates: list[tuple[CheckConclusion, CheckRunOutput]] = []

    async def update_check_run(
        self,
        handle: CheckRunHandle,
        conclusion: CheckConclusion,
        output: CheckRunOutput,
    ) -> None:
        self.updates.append((conclusion, output))
        if len(self.updates) <= self._failures:
            raise RuntimeError("Validation Failed: annotations are invalid")


def test_create_summary_groups_changes_by_criticality() -> None:
    summary = report.create_summary(CHANGES, [], limit=100)

    assert summary.startswith("# Found 3 changes")
    assert "Breaking: 1" in summary
    assert "Dangerous: 1" in summary
    assert "Safe: 1" in summary
    assert summary.index("## Breaking changes") < summary.index("## Safe changes")
    assert "- Query.a was removed." in summary


def test_create_summary_caps_rendered_items() -> None:
    summary = report.create_summary(CHANGES, [], limit=1)

    assert "Query.a was removed." in summary
    assert "USER was added" not in summary
    assert "... and 2 more changes" in summary


def test_create_summary_lists_invalid_documents() -> None:
    finding = InvalidDocumentFinding(
        location="ops/query.graphql",
        errors=["Cannot query field 'a' on type 'Query'."],
    )

    summary = report.create_summary([], [finding], limit=100)

    assert summary.startswith("# No changes detected")
    assert "# Found 1 invalid document" in summary
    assert "## `ops/query.graphql`" in summary


def test_get_title_depends_on_conclusion_only() -> None:
    assert report.get_title(CheckConclusion.FAILURE) == report.FAILURE_TITLE
    assert report.get_title(CheckConclusion.SUCCESS) == report.SUCCESS_TITLE


async def test_emit_sends_full_report() -> None:
    checks = _FakeChecks()

    outcome = await report.emit(
        checks, HANDLE, CheckConclusion.FAILURE, CHANGES, [], [ANNOTATION], 100
    )

    assert outcome.title == report.FAILURE_TITLE
    assert outcome.fallback_used is False
    assert len(checks.updates) == 1
    conclusion, output = checks.updates[0]
    assert conclusion == CheckConclusion.FAILURE
    assert output.annotations == [ANNOTATION]


async def test_emit_falls_back_to_minimal_report() -> None:
    checks = _FakeChecks(failures=1)

    outcome = await report.emit(
        checks, HANDLE, CheckConclusion.SUCCESS, CHANGES, [], [ANNOTATION], 100
    )

    assert outcome.conclusion == CheckConclusion.FAILURE
    assert outcome.title == "Invalid config. Failed to add annotation"
    assert outcome.fallback_used is True
    conclusion, output = checks.updates[1]
    assert conclusion == CheckConclusion.FAILURE
    assert output.summary == output.title == report.FALLBACK_TITLE
    assert output.annotations == []


async def test_emit_raises_when_fallback_fails() -> None:
    checks = _FakeChecks(failures=2)

    with pytest.raises(ReportingError):
        await report.emit(
            checks, HANDLE, CheckConclusion.SUCCESS, CHANGES, [], [ANNOTATION], 100
        )

    assert len(checks.updates) == 2


async def test_fail_check_swallows_rejected_update() -> None:
    checks = _FakeChecks(failures=1)

    await report.fail_check(checks, HANDLE, ValueError("boom"))

    conclusion, output = checks.updates[0]
    assert conclusion == CheckConclusion.FAILURE
    assert output.title == report.FAILED_RUN_TITLE
    assert output.summary == "boom"


def test_write_output_appends(tmp_path: Path) -> None:
    output_file = tmp_path / "github_output"
    output_file.write_text("previous=1\n")

    report.write_output(output_file, "changes", "3")
    report.write_output(None, "changes", "3")

    assert output_file.read_text() == "previous=1\nchanges=3\n"
