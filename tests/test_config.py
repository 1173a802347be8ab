"""Tests for run configuration parsing."""

from pathlib import Path

import pytest

from graphql_inspector_check.config import (
    CheckConfig,
    cast_to_boolean,
    get_input_as_array,
    parse_schema_locator,
    validate_config,
)
from graphql_inspector_check.errors import ConfigurationError


def _config(**overrides) -> CheckConfig:
    values = {
        "schema_locator": "main:schema.graphql",
        "workspace": Path("/tmp/workspace"),
        "repository": "acme/api",
    }
    values.update(overrides)
    return CheckConfig(**values)


@pytest.mark.parametrize(
    ("value", "default", "expected"),
    [
        ("true", False, True),
        ("FALSE", True, False),
        ("", True, True),
        (None, False, False),
        ("maybe", True, True),
        (False, True, False),
    ],
)
def test_cast_to_boolean(value, default, expected) -> None:
    assert cast_to_boolean(value, default) is expected


def test_get_input_as_array_drops_blank_lines() -> None:
    assert get_input_as_array("a.graphql\n\n  src/**/*.ts  \n") == [
        "a.graphql",
        "src/**/*.ts",
    ]
    assert get_input_as_array("") == []


def test_parse_schema_locator_splits_ref_and_path() -> None:
    config = _config(schema_locator="master:api/schema.graphql")

    assert parse_schema_locator(config) == ("master", "api/schema.graphql")


def test_parse_schema_locator_uses_whole_locator_with_endpoint() -> None:
    config = _config(
        schema_locator="https://new.example.com/graphql",
        endpoint="https://old.example.com/graphql",
    )
    assert parse_schema_locator(config) == ("", "https://new.example.com/graphql")


def test_parse_schema_locator_rejects_missing_separator() -> None:
    with pytest.raises(ConfigurationError, match="ref:path"):
        parse_schema_locator(_config(schema_locator="schema.graphql"))


def test_parse_schema_locator_rejects_url_without_endpoint() -> None:
    with pytest.raises(ConfigurationError, match="endpoint"):
        parse_schema_locator(_config(schema_locator="https://api.test/graphql"))


def test_validate_config_requires_workspace() -> None:
    with pytest.raises(ConfigurationError, match="GITHUB_WORKSPACE"):
        validate_config(_config(workspace=None))


def test_validate_config_requires_schema() -> None:
    with pytest.raises(ConfigurationError, match="schema"):
        validate_config(_config(schema_locator="  "))


def test_config_owner_and_repo() -> None:
    config = _config()
    validate_config(config)
    assert (config.owner, config.repo) == ("acme", "api")
