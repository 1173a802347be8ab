import importlib
import logging
from pathlib import Path

import httpx
import typer
from dotenv import load_dotenv

from graphql_inspector_check.config import (
    DEFAULT_API_URL,
    DEFAULT_APPROVE_LABEL,
    DEFAULT_CHECK_NAME,
    DEFAULT_SUMMARY_LIMIT,
    CheckConfig,
    cast_to_boolean,
    get_input_as_array,
)
from graphql_inspector_check.errors import CheckError, ConfigurationError
from graphql_inspector_check.inspector import UsageCheck
from graphql_inspector_check.loggy import setup_logging
from graphql_inspector_check.pipeline.orchestrator import run_check

logger = logging.getLogger(__name__)

app = typer.Typer()


def load_usage_check(target: str) -> UsageCheck:
    """
    Import a usage check given as `module:attribute`.

    Args:
        target (str): Import path of the callable.

    Returns:
        UsageCheck: The imported callable.

    Raises:
        ConfigurationError: If the module or attribute cannot be loaded.
    """
    module_name, _, attribute = target.partition(":")
    try:
        module = importlib.import_module(module_name)
        check_usage = getattr(module, attribute or "check_usage")
    except (ImportError, AttributeError) as exc:
        raise ConfigurationError(
            f"Failed to load usage check '{target}': {exc}"
        ) from exc
    if not callable(check_usage):
        raise ConfigurationError(f"Usage check '{target}' is not callable")
    return check_usage


@app.command()
def main(
    schema: str = typer.Option(
        "", "--schema", envvar="INPUT_SCHEMA", help="`ref:path` or endpoint URL"
    ),
    documents: str = typer.Option(
        "",
        "--documents",
        envvar="INPUT_DOCUMENTS",
        help="Newline separated glob patterns of operation documents",
    ),
    rules: list[str] = typer.Option(
        [], "--rule", "-r", help="Rule name (repeatable)"
    ),
    rules_input: str = typer.Option(
        "", "--rules", envvar="INPUT_RULES", help="Newline separated rule names"
    ),
    endpoint: str = typer.Option(
        "",
        "--endpoint",
        envvar="INPUT_ENDPOINT",
        help="Live endpoint of the old schema",
    ),
    experimental_merge: str = typer.Option(
        "true", "--experimental-merge", envvar="INPUT_EXPERIMENTAL_MERGE"
    ),
    annotations: str = typer.Option(
        "true", "--annotations", envvar="INPUT_ANNOTATIONS"
    ),
    fail_on_breaking: str = typer.Option(
        "true", "--fail-on-breaking", envvar="INPUT_FAIL-ON-BREAKING"
    ),
    approve_label: str = typer.Option(
        DEFAULT_APPROVE_LABEL, "--approve-label", envvar="INPUT_APPROVE-LABEL"
    ),
    get_usage: str = typer.Option(
        "",
        "--get-usage",
        envvar="INPUT_GETUSAGE",
        help="Usage check callable as `module:attribute`",
    ),
    name: str = typer.Option(DEFAULT_CHECK_NAME, "--name", envvar="INPUT_NAME"),
    github_token: str = typer.Option(
        "", "--github-token", envvar="INPUT_GITHUB-TOKEN"
    ),
    workspace: Path | None = typer.Option(
        None, "--workspace", envvar="GITHUB_WORKSPACE"
    ),
    repository: str = typer.Option("", "--repository", envvar="GITHUB_REPOSITORY"),
    commit_sha: str = typer.Option("", "--sha", envvar="GITHUB_SHA"),
    api_url: str = typer.Option(
        DEFAULT_API_URL, "--api-url", envvar="GITHUB_API_URL"
    ),
    output_file: Path | None = typer.Option(
        None, "--output-file", envvar="GITHUB_OUTPUT"
    ),
    summary_limit: int = typer.Option(DEFAULT_SUMMARY_LIMIT, "--summary-limit"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging"
    ),
):
    """Check a GraphQL schema change for breaking changes and invalid operations."""
    setup_logging(level=logging.DEBUG if verbose else logging.INFO)

    try:
        config = CheckConfig(
            schema_locator=schema,
            workspace=workspace,
            repository=repository or None,
            github_token=github_token or None,
            api_url=api_url,
            commit_sha=commit_sha or None,
            endpoint=endpoint or None,
            documents=get_input_as_array(documents),
            rules=[*rules, *get_input_as_array(rules_input)],
            experimental_merge=cast_to_boolean(experimental_merge, True),
            annotations=cast_to_boolean(annotations, True),
            fail_on_breaking=cast_to_boolean(fail_on_breaking, True),
            approve_label=approve_label or DEFAULT_APPROVE_LABEL,
            check_name=name or DEFAULT_CHECK_NAME,
            output_file=output_file,
            summary_limit=summary_limit,
        )
        check_usage = load_usage_check(get_usage) if get_usage else None
        result = run_check(config, check_usage=check_usage)
    except (CheckError, httpx.HTTPError, RuntimeError) as exc:
        logger.error(str(exc))
        raise typer.Exit(code=1) from exc

    if result.failed:
        logger.error(result.title)
        raise typer.Exit(code=1)
    logger.info(f"Check completed: {result.conclusion}")


def run() -> None:
    """Console-script entry point."""
    load_dotenv()
    app()


if __name__ == "__main__":
    run()
