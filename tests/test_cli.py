"""Tests for the command-line entry point."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from graphql_inspector_check import cli
from graphql_inspector_check.config import CheckConfig
from graphql_inspector_check.errors import ConfigurationError
from graphql_inspector_check.models import CheckConclusion
from graphql_inspector_check.pipeline.orchestrator import CheckRunResult

runner = CliRunner()


def test_load_usage_check_imports_callable() -> None:
    check_usage = cli.load_usage_check("os.path:exists")

    assert callable(check_usage)


def test_load_usage_check_rejects_missing_module() -> None:
    with pytest.raises(ConfigurationError, match="no_such_module"):
        cli.load_usage_check("no_such_module:check")


def test_main_builds_config_from_action_inputs(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    captured: list[CheckConfig] = []

    def fake_run_check(config: CheckConfig, check_usage=None) -> CheckRunResult:
        captured.append(config)
        return CheckRunResult(
            conclusion=CheckConclusion.SUCCESS, title="Everything looks good"
        )

    monkeypatch.setattr(cli, "run_check", fake_run_check)

    result = runner.invoke(
        cli.app,
        [],
        env={
            "INPUT_SCHEMA": "master:schema.graphql",
            "INPUT_DOCUMENTS": "ops/*.graphql\nsrc/**/*.ts\n",
            "INPUT_RULES": "safeUnreachable\n",
            "INPUT_FAIL-ON-BREAKING": "false",
            "INPUT_EXPERIMENTAL_MERGE": "",
            "GITHUB_WORKSPACE": str(tmp_path),
            "GITHUB_REPOSITORY": "acme/api",
        },
    )

    assert result.exit_code == 0, result.output
    config = captured[0]
    assert config.schema_locator == "master:schema.graphql"
    assert config.documents == ["ops/*.graphql", "src/**/*.ts"]
    assert config.rules == ["safeUnreachable"]
    assert config.fail_on_breaking is False
    assert config.experimental_merge is True
    assert config.approve_label == "approved-breaking-change"
    assert config.workspace == tmp_path


def test_main_exits_non_zero_on_fallback_report(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    def fake_run_check(config: CheckConfig, check_usage=None) -> CheckRunResult:
        return CheckRunResult(
            conclusion=CheckConclusion.FAILURE,
            title="Invalid config. Failed to add annotation",
            fallback_used=True,
        )

    monkeypatch.setattr(cli, "run_check", fake_run_check)

    result = runner.invoke(
        cli.app,
        ["--schema", "master:schema.graphql", "--workspace", str(tmp_path)],
    )

    assert result.exit_code == 1


def test_main_exits_non_zero_on_configuration_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def fake_run_check(config: CheckConfig, check_usage=None) -> CheckRunResult:
        raise ConfigurationError("Failed to find `schema` variable")

    monkeypatch.setattr(cli, "run_check", fake_run_check)

    result = runner.invoke(cli.app, [])

    assert result.exit_code == 1
