"""Run configuration for a schema check, built once at the entry point."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from graphql_inspector_check.errors import ConfigurationError

DEFAULT_CHECK_NAME = "GraphQL Inspector"
DEFAULT_APPROVE_LABEL = "approved-breaking-change"
DEFAULT_SUMMARY_LIMIT = 100
DEFAULT_API_URL = "https://api.github.com"


class CheckConfig(BaseModel):
    """Every input of a check run, passed to components instead of the environment."""

    model_config = ConfigDict(frozen=True)

    schema_locator: str = Field(
        ..., description="Either `ref:path` or a raw endpoint URL."
    )
    workspace: Path | None = Field(
        default=None, description="Checked-out repository directory."
    )
    repository: str | None = Field(
        default=None, description="Repository in `owner/name` form."
    )
    github_token: str | None = None
    api_url: str = DEFAULT_API_URL
    commit_sha: str | None = Field(
        default=None,
        description="Commit the run was triggered for, used when git is unavailable.",
    )
    endpoint: str | None = Field(
        default=None, description="Live endpoint that serves the old schema."
    )
    documents: list[str] = Field(
        default_factory=list, description="Glob patterns of operation documents."
    )
    rules: list[str] = Field(default_factory=list)
    experimental_merge: bool = True
    annotations: bool = True
    fail_on_breaking: bool = True
    approve_label: str = DEFAULT_APPROVE_LABEL
    check_name: str = DEFAULT_CHECK_NAME
    output_file: Path | None = Field(
        default=None, description="File that receives step outputs (GITHUB_OUTPUT)."
    )
    summary_limit: int = Field(default=DEFAULT_SUMMARY_LIMIT, ge=1)

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0] if self.repository else ""

    @property
    def repo(self) -> str:
        return self.repository.split("/", 1)[-1] if self.repository else ""


def cast_to_boolean(value: str | bool | None, default: bool = True) -> bool:
    """
    Cast an action input to a boolean.

    Args:
        value: Raw input value.
        default: Value used when the input is empty or not `true`/`false`.

    Returns:
        bool: Parsed flag.
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in ("true", "false"):
        return normalized == "true"
    return default


def get_input_as_array(value: str | list[str] | None) -> list[str]:
    """
    Split a newline separated input into its non-empty entries.

    Args:
        value: Raw input value or already split values.

    Returns:
        list[str]: Trimmed entries in input order.
    """
    if not value:
        return []
    lines = value if isinstance(value, list) else value.split("\n")
    return [line.strip() for line in lines if line and line.strip()]


def is_url(value: str) -> bool:
    """Whether a locator points at an HTTP endpoint."""
    return value.lower().startswith(("http://", "https://"))


def parse_schema_locator(config: CheckConfig) -> tuple[str, str]:
    """
    Split the schema locator into the base ref and the schema path.

    When an endpoint is configured the old side comes from the endpoint, so the
    whole locator is the new-side path (a file path or another URL).

    Args:
        config: Run configuration.

    Returns:
        tuple[str, str]: Base ref (empty for endpoint runs) and schema path.

    Raises:
        ConfigurationError: If the locator has no `ref:path` separator, or is a
            URL while no endpoint is configured.
    """
    locator = config.schema_locator.strip()
    if config.endpoint:
        return "", locator
    if is_url(locator):
        raise ConfigurationError(
            f"Schema locator '{locator}' is a URL but no `endpoint` is set"
        )

    ref, sep, path = locator.partition(":")
    if not sep or not ref or not path:
        raise ConfigurationError(
            f"Schema locator '{locator}' must have the form `ref:path`"
        )
    return ref, path


def validate_config(config: CheckConfig) -> None:
    """
    Check the hard preconditions of a run before any I/O happens.

    Args:
        config: Run configuration.

    Raises:
        ConfigurationError: If the workspace, schema locator or repository is missing.
    """
    if config.workspace is None:
        raise ConfigurationError(
            "Failed to resolve workspace directory. GITHUB_WORKSPACE is missing"
        )
    if not config.schema_locator or not config.schema_locator.strip():
        raise ConfigurationError("Failed to find `schema` variable")
    if not config.repository or "/" not in config.repository:
        raise ConfigurationError(
            "Failed to resolve repository. GITHUB_REPOSITORY must be `owner/name`"
        )
    parse_schema_locator(config)
