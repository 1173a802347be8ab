"""Pydantic schemas for the data passed between check pipeline stages."""

from pathlib import Path

from graphql import GraphQLSchema, Source
from pydantic import BaseModel, ConfigDict, Field

from graphql_inspector_check.models import (
    AnnotationLevel,
    CheckConclusion,
    CriticalityLevel,
    ReferenceKind,
    SchemaFormat,
    SchemaSide,
)


class SchemaReference(BaseModel):
    """Where one side of the comparison is read from."""

    model_config = ConfigDict(frozen=True)

    revision: str | None = Field(
        default=None, description="Branch, commit sha or merge ref to read at."
    )
    path: str = Field(..., description="File path or endpoint URL.")
    kind: ReferenceKind
    workspace: Path | None = Field(
        default=None,
        description="Local checkout to read from instead of the contents API.",
    )

    @property
    def label(self) -> str:
        """Provenance label used as the source name of the schema."""
        if self.kind == ReferenceKind.LIVE_ENDPOINT or self.revision is None:
            return self.path
        return f"{self.revision}:{self.path}"


class RefDecision(BaseModel):
    """Revisions chosen for the old and new side of the comparison."""

    model_config = ConfigDict(frozen=True)

    old_ref: str
    new_ref: str
    old_workspace: Path | None = None
    new_workspace: Path | None = None
    merge_simulated: bool = False


class RawSchemaPayload(BaseModel):
    """Schema text as fetched, before it is parsed."""

    model_config = ConfigDict(frozen=True)

    text: str
    format: SchemaFormat
    source_label: str
    from_endpoint: bool = Field(
        default=False,
        description="True when the text is SDL printed from a live introspection.",
    )


class CanonicalSchema(BaseModel):
    """A built schema paired with the source text the diff is reported against."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    side: SchemaSide
    graphql_schema: GraphQLSchema
    source_text: str
    source_label: str

    @property
    def source(self) -> Source:
        return Source(self.source_text, self.source_label)


class Change(BaseModel):
    """A single classified difference between the old and new schema."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Change kind, e.g. FIELD_REMOVED.")
    message: str
    criticality: CriticalityLevel
    path: str | None = Field(
        default=None, description="Schema coordinate such as Query.user.id."
    )
    reason: str | None = None


class Annotation(BaseModel):
    """Inline annotation in the shape the check-run API accepts."""

    model_config = ConfigDict(frozen=True)

    path: str
    start_line: int
    end_line: int
    annotation_level: AnnotationLevel
    message: str
    title: str | None = None


class InvalidDocumentFinding(BaseModel):
    """An operation document that does not validate against the new schema."""

    model_config = ConfigDict(frozen=True)

    location: str = Field(..., description="File the operation was loaded from.")
    errors: list[str] = Field(default_factory=list)

    @property
    def reason(self) -> str:
        return "; ".join(self.errors)


class DocumentSource(BaseModel):
    """A parsed client operation and where it came from."""

    model_config = ConfigDict(frozen=True)

    location: str
    body: str


class PullRequestContext(BaseModel):
    """Pull request associated with the commit under check."""

    model_config = ConfigDict(frozen=True)

    number: int
    state: str
    base_ref: str | None = None
    labels: list[str] = Field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.state == "open"

    def has_label(self, name: str) -> bool:
        return name in self.labels


class UsageTarget(BaseModel):
    """Schema coordinate handed to a usage check."""

    model_config = ConfigDict(frozen=True)

    type: str
    field: str | None = None
    argument: str | None = None


class DiffResult(BaseModel):
    """Raw classifier output."""

    conclusion: CheckConclusion
    changes: list[Change] = Field(default_factory=list)
    annotations: list[Annotation] = Field(default_factory=list)


class PolicyResult(BaseModel):
    """Conclusion and annotations after override policies were applied."""

    conclusion: CheckConclusion
    annotations: list[Annotation] = Field(default_factory=list)
    overridden: bool = False


class CheckRunHandle(BaseModel):
    """Identifier of the in-progress check run."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    head_sha: str


class CheckRunOutput(BaseModel):
    """Payload of a terminal check-run update."""

    title: str
    summary: str
    annotations: list[Annotation] = Field(default_factory=list)
