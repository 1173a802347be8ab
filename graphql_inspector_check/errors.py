"""Error taxonomy for a schema check run."""

from graphql_inspector_check.models import SchemaSide


class CheckError(Exception):
    """Base class for every failure that ends a check run."""


class ConfigurationError(CheckError):
    """A required input is missing or a rule name could not be resolved."""


class SourceUnavailable(CheckError):
    """Schema content could not be fetched for one side of the comparison."""

    def __init__(self, side: SchemaSide, message: str) -> None:
        self.side = side
        super().__init__(f"Failed to load {side} schema: {message}")


class SchemaBuildError(CheckError):
    """Schema content was fetched but could not be turned into a schema."""

    def __init__(self, side: SchemaSide, message: str) -> None:
        self.side = side
        super().__init__(f"Failed to build {side} schema: {message}")


class ReportingError(CheckError):
    """The check record rejected both the full and the fallback report."""
