"""Rendering the check summary and completing the check run."""

import logging
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel

from graphql_inspector_check.errors import ReportingError
from graphql_inspector_check.models import CheckConclusion, CriticalityLevel
from graphql_inspector_check.schemas import (
    Annotation,
    Change,
    CheckRunHandle,
    CheckRunOutput,
    InvalidDocumentFinding,
)

logger = logging.getLogger(__name__)

FAILURE_TITLE = "Something is wrong with your schema"
SUCCESS_TITLE = "Everything looks good"
FALLBACK_TITLE = "Invalid config. Failed to add annotation"
FAILED_RUN_TITLE = "Failed to compare schemas"

_SECTION_HEADINGS = {
    CriticalityLevel.BREAKING: "Breaking changes",
    CriticalityLevel.DANGEROUS: "Dangerous changes",
    CriticalityLevel.NON_BREAKING: "Safe changes",
}


class CheckRunUpdater(Protocol):
    async def update_check_run(
        self,
        handle: CheckRunHandle,
        conclusion: CheckConclusion,
        output: CheckRunOutput,
    ) -> None: ...


class ReportOutcome(BaseModel):
    """Terminal state the check run was left in."""

    conclusion: CheckConclusion
    title: str
    fallback_used: bool = False


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def _render_change(change: Change) -> str:
    line = f"- {change.message}"
    if change.reason:
        line += f" _({change.reason})_"
    return line


def create_summary(
    changes: list[Change],
    findings: list[InvalidDocumentFinding],
    limit: int,
) -> str:
    """
    Render the markdown summary of a check run.

    At most `limit` changes and `limit` findings are listed; the rest are only
    counted.

    Args:
        changes (list[Change]): Classified changes, in classifier order.
        findings (list[InvalidDocumentFinding]): Invalid documents.
        limit (int): Maximum number of rendered items per list.

    Returns:
        str: Markdown summary.
    """
    lines: list[str] = []
    if not changes:
        lines.append("# No changes detected")
    else:
        lines.append(f"# Found {_plural(len(changes), 'change')}")
        lines.append("")
        for level, label in (
            (CriticalityLevel.BREAKING, "Breaking"),
            (CriticalityLevel.DANGEROUS, "Dangerous"),
            (CriticalityLevel.NON_BREAKING, "Safe"),
        ):
            count = sum(1 for change in changes if change.criticality == level)
            lines.append(f"{label}: {count}")

        shown = changes[:limit]
        for level, heading in _SECTION_HEADINGS.items():
            section = [change for change in shown if change.criticality == level]
            if not section:
                continue
            lines.append("")
            lines.append(f"## {heading}")
            lines.extend(_render_change(change) for change in section)
        if len(changes) > limit:
            lines.append("")
            lines.append(f"... and {_plural(len(changes) - limit, 'more change')}")

    if findings:
        lines.append("")
        lines.append(f"# Found {_plural(len(findings), 'invalid document')}")
        for finding in findings[:limit]:
            lines.append("")
            lines.append(f"## `{finding.location}`")
            lines.extend(f"- {error}" for error in finding.errors)
        if len(findings) > limit:
            lines.append("")
            lines.append(
                f"... and {_plural(len(findings) - limit, 'more invalid document')}"
            )

    return "\n".join(lines) + "\n"


def get_title(conclusion: CheckConclusion) -> str:
    """Title of a completed check, chosen from the conclusion alone."""
    return FAILURE_TITLE if conclusion == CheckConclusion.FAILURE else SUCCESS_TITLE


async def emit(
    checks: CheckRunUpdater,
    handle: CheckRunHandle,
    conclusion: CheckConclusion,
    changes: list[Change],
    findings: list[InvalidDocumentFinding],
    annotations: list[Annotation],
    limit: int,
) -> ReportOutcome:
    """
    Complete the check run with the full report, falling back to a minimal one.

    If the host rejects the full report (typically a malformed annotation), a
    single failure report without annotations is sent instead.

    Args:
        checks (CheckRunUpdater): Check-run collaborator.
        handle (CheckRunHandle): In-progress check run.
        conclusion (CheckConclusion): Final conclusion.
        changes (list[Change]): Classified changes.
        findings (list[InvalidDocumentFinding]): Invalid documents.
        annotations (list[Annotation]): Final annotations.
        limit (int): Maximum rendered items per summary list.

    Returns:
        ReportOutcome: Conclusion and title the check run ended with.

    Raises:
        ReportingError: If the fallback report is rejected too.
    """
    title = get_title(conclusion)
    summary = create_summary(changes, findings, limit)
    logger.info(f"Conclusion: {conclusion}")

    try:
        await checks.update_check_run(
            handle,
            conclusion,
            CheckRunOutput(title=title, summary=summary, annotations=annotations),
        )
        return ReportOutcome(conclusion=conclusion, title=title)
    except Exception as exc:
        logger.error(f"Failed to update check run {handle.id}: {exc}")

    try:
        await checks.update_check_run(
            handle,
            CheckConclusion.FAILURE,
            CheckRunOutput(title=FALLBACK_TITLE, summary=FALLBACK_TITLE),
        )
    except Exception as exc:
        raise ReportingError(
            f"Failed to report on check run {handle.id}: {exc}"
        ) from exc

    return ReportOutcome(
        conclusion=CheckConclusion.FAILURE,
        title=FALLBACK_TITLE,
        fallback_used=True,
    )


async def fail_check(
    checks: CheckRunUpdater, handle: CheckRunHandle, error: Exception
) -> None:
    """
    Move a check run to a failure state after a fatal error.

    A rejected update is logged; the caller still propagates the original error.

    Args:
        checks (CheckRunUpdater): Check-run collaborator.
        handle (CheckRunHandle): In-progress check run.
        error (Exception): Error that ended the run.
    """
    try:
        await checks.update_check_run(
            handle,
            CheckConclusion.FAILURE,
            CheckRunOutput(title=FAILED_RUN_TITLE, summary=str(error)),
        )
    except Exception as exc:
        logger.error(f"Failed to mark check run {handle.id} as failed: {exc}")


def write_output(output_file: Path | None, name: str, value: str) -> None:
    """
    Append a step output in `name=value` form.

    Args:
        output_file (Path | None): Step output file, skipped when None.
        name (str): Output name.
        value (str): Output value.
    """
    logger.info(f"Output {name}: {value}")
    if output_file is None:
        return
    with output_file.open("a", encoding="utf-8") as handle:
        handle.write(f"{name}={value}\n")
