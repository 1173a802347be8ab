"""Schema check orchestration."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Protocol

from pydantic import BaseModel, Field

from graphql_inspector_check.clients import GitHubClientConfig, introspect_and_print
from graphql_inspector_check.config import (
    CheckConfig,
    is_url,
    parse_schema_locator,
    validate_config,
)
from graphql_inspector_check.git import get_current_commit_sha
from graphql_inspector_check.inspector import (
    DiffClassifier,
    DocumentValidator,
    GraphQLCoreDiffClassifier,
    GraphQLCoreDocumentValidator,
    UsageCheck,
    load_documents,
    resolve_rules,
)
from graphql_inspector_check.models import CheckConclusion, ReferenceKind
from graphql_inspector_check.pipeline.builder import build_pair, detect_format
from graphql_inspector_check.pipeline.policy import PolicyContext, resolve
from graphql_inspector_check.pipeline.refs import decide
from graphql_inspector_check.pipeline.report import emit, fail_check, write_output
from graphql_inspector_check.pipeline.sources import (
    FileReader,
    Introspector,
    build_references,
    fetch_pair,
)
from graphql_inspector_check.schemas import (
    Change,
    CheckRunHandle,
    InvalidDocumentFinding,
    PullRequestContext,
    RawSchemaPayload,
)

logger = logging.getLogger(__name__)


class SourceControl(FileReader, Protocol):
    async def get_associated_pull_request(
        self, commit_sha: str
    ) -> PullRequestContext | None: ...

    async def create_check_run(self, name: str, head_sha: str) -> CheckRunHandle: ...

    async def update_check_run(self, handle, conclusion, output) -> None: ...


class CheckRunResult(BaseModel):
    """What a completed check run reported."""

    conclusion: CheckConclusion
    title: str
    fallback_used: bool = False
    changes: list[Change] = Field(default_factory=list)
    invalid_documents: list[InvalidDocumentFinding] = Field(default_factory=list)

    @property
    def failed(self) -> bool:
        """Whether the run should signal failure to the caller."""
        return self.fallback_used


def _run_in_new_loop(coro: Any) -> CheckRunResult:
    """
    Runs a coroutine in a dedicated event loop from a worker thread.

    Args:
        coro (Any): Coroutine to execute.

    Returns:
        CheckRunResult: Result returned by the coroutine.
    """
    with ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(asyncio.run, coro).result()


async def run_check_async(
    config: CheckConfig,
    github: SourceControl,
    classifier: DiffClassifier | None = None,
    validator: DocumentValidator | None = None,
    introspect: Introspector = introspect_and_print,
    check_usage: UsageCheck | None = None,
    commit_sha: str | None = None,
) -> CheckRunResult:
    """
    Compare the schema of a change with its base and report on a check run.

    Args:
        config: Run configuration.
        github: Source-control and check-run collaborator.
        classifier: Diff classifier. Defaults to the graphql-core classifier.
        validator: Document validator. Defaults to the graphql-core validator.
        introspect: Introspects a live endpoint into SDL text.
        check_usage: Usage capability for the considerUsage rule.
        commit_sha: Commit under check. Defaults to the workspace HEAD.

    Returns:
        CheckRunResult: Terminal state of the check run.

    Raises:
        ConfigurationError: If an input is missing or a rule is unknown.
        SourceUnavailable: If either schema cannot be fetched.
        SchemaBuildError: If either schema cannot be built.
        ReportingError: If both the full and the fallback report are rejected.
    """
    logger.info("GraphQL Inspector started")
    classifier = classifier or GraphQLCoreDiffClassifier()
    validator = validator or GraphQLCoreDocumentValidator()

    validate_config(config)
    rules = resolve_rules(config.rules, has_usage_check=check_usage is not None)
    base_ref, schema_path = parse_schema_locator(config)

    if commit_sha is None:
        commit_sha = await asyncio.to_thread(
            get_current_commit_sha, config.workspace, config.commit_sha
        )
    logger.info(f"Ref: {config.commit_sha}")
    logger.info(f"Commit SHA: {commit_sha}")

    pull_request = await github.get_associated_pull_request(commit_sha)

    logger.info(f'Creating a check named "{config.check_name}"')
    handle = await github.create_check_run(config.check_name, commit_sha)
    logger.info(f"Check ID: {handle.id}")

    endpoint_comparison = bool(config.endpoint) and is_url(schema_path)
    try:
        decision = decide(
            push_ref=commit_sha,
            base_ref=base_ref,
            pull_request=pull_request,
            merge_mode_enabled=config.experimental_merge,
            workspace=config.workspace,
        )
        old_reference, new_reference = build_references(
            decision, schema_path, config.endpoint
        )
        old_text, new_text = await fetch_pair(
            old_reference, new_reference, github, introspect
        )

        schema_format = detect_format(schema_path)
        old_schema, new_schema = await build_pair(
            RawSchemaPayload(
                text=old_text,
                format=schema_format,
                source_label=old_reference.label,
                from_endpoint=old_reference.kind == ReferenceKind.LIVE_ENDPOINT,
            ),
            RawSchemaPayload(
                text=new_text,
                format=schema_format,
                source_label=schema_path,
                from_endpoint=new_reference.kind == ReferenceKind.LIVE_ENDPOINT,
            ),
        )

        async def _validate_documents() -> list[InvalidDocumentFinding]:
            documents = await asyncio.to_thread(
                load_documents, config.documents, config.workspace
            )
            return await validator.validate(new_schema.graphql_schema, documents)

        diff_result, findings = await asyncio.gather(
            classifier.classify(
                schema_path, old_schema, new_schema, rules, check_usage=check_usage
            ),
            _validate_documents(),
        )
    except Exception as exc:
        logger.error(f"Schema check failed: {exc}")
        await fail_check(github, handle, exc)
        raise

    changes = diff_result.changes
    write_output(config.output_file, "changes", str(len(changes)))
    logger.info(f"Changes: {len(changes)}")

    policy = resolve(
        diff_result,
        findings,
        PolicyContext(
            fail_on_breaking=config.fail_on_breaking,
            annotations_enabled=config.annotations,
            approve_label=config.approve_label,
            pull_request=pull_request,
            endpoint_comparison=endpoint_comparison,
        ),
    )
    outcome = await emit(
        github,
        handle,
        policy.conclusion,
        changes,
        findings,
        policy.annotations,
        config.summary_limit,
    )
    return CheckRunResult(
        conclusion=outcome.conclusion,
        title=outcome.title,
        fallback_used=outcome.fallback_used,
        changes=changes,
        invalid_documents=findings,
    )


async def run_with_github(
    config: CheckConfig, check_usage: UsageCheck | None = None
) -> CheckRunResult:
    """Run a check against the GitHub API configured in `config`."""
    async with GitHubClientConfig().create_client(config) as github:
        return await run_check_async(config, github, check_usage=check_usage)


def run_check(
    config: CheckConfig, check_usage: UsageCheck | None = None
) -> CheckRunResult:
    """
    Run a check synchronously.

    Args:
        config: Run configuration.
        check_usage: Usage capability for the considerUsage rule.

    Returns:
        CheckRunResult: Terminal state of the check run.
    """
    check_coro = run_with_github(config, check_usage=check_usage)
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(check_coro)
    return _run_in_new_loop(check_coro)
