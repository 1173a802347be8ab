"""Diff classification and document validation capabilities."""

from typing import Protocol

from graphql import GraphQLSchema

from graphql_inspector_check.inspector.diff import GraphQLCoreDiffClassifier
from graphql_inspector_check.inspector.documents import (
    GraphQLCoreDocumentValidator,
    load_documents,
)
from graphql_inspector_check.inspector.rules import (
    RULES,
    Rule,
    UsageCheck,
    resolve_rules,
)
from graphql_inspector_check.schemas import (
    CanonicalSchema,
    DiffResult,
    DocumentSource,
    InvalidDocumentFinding,
)


class DiffClassifier(Protocol):
    async def classify(
        self,
        schema_path: str,
        old: CanonicalSchema,
        new: CanonicalSchema,
        rules: list[Rule],
        check_usage: UsageCheck | None = None,
    ) -> DiffResult: ...


class DocumentValidator(Protocol):
    async def validate(
        self, schema: GraphQLSchema, documents: list[DocumentSource]
    ) -> list[InvalidDocumentFinding]: ...


__all__ = [
    "RULES",
    "DiffClassifier",
    "DocumentValidator",
    "GraphQLCoreDiffClassifier",
    "GraphQLCoreDocumentValidator",
    "Rule",
    "UsageCheck",
    "load_documents",
    "resolve_rules",
]
