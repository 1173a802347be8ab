from graphql_inspector_check.config import CheckConfig
from graphql_inspector_check.pipeline.orchestrator import (
    CheckRunResult,
    run_check,
    run_check_async,
)

__all__ = [
    "CheckConfig",
    "CheckRunResult",
    "run_check",
    "run_check_async",
]
