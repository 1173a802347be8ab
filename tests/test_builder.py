"""Tests for building canonical schemas."""

import json

import pytest
from graphql import build_schema, introspection_from_schema

from graphql_inspector_check.errors import SchemaBuildError
from graphql_inspector_check.models import SchemaFormat, SchemaSide
from graphql_inspector_check.pipeline.builder import build, build_pair, detect_format
from graphql_inspector_check.schemas import RawSchemaPayload

SDL = """# keep this comment
type Query {
  a: String
}
"""


def _introspection_json(sdl: str) -> str:
    return json.dumps(introspection_from_schema(build_schema(sdl)))


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("schema.json", SchemaFormat.INTROSPECTION_JSON),
        ("api/Schema.JSON", SchemaFormat.INTROSPECTION_JSON),
        ("schema.graphql", SchemaFormat.SDL),
        ("schema.json.graphql", SchemaFormat.SDL),
        ("https://api.test/graphql", SchemaFormat.SDL),
    ],
)
def test_detect_format_uses_extension(path: str, expected: SchemaFormat) -> None:
    assert detect_format(path) == expected


def test_build_sdl_keeps_raw_text() -> None:
    payload = RawSchemaPayload(
        text=SDL, format=SchemaFormat.SDL, source_label="master:schema.graphql"
    )

    canonical = build(payload, SchemaSide.OLD)

    assert canonical.source_text == SDL
    assert canonical.source.name == "master:schema.graphql"
    assert "a" in canonical.graphql_schema.query_type.fields


def test_build_introspection_json_reprints_sdl() -> None:
    payload = RawSchemaPayload(
        text=_introspection_json(SDL),
        format=SchemaFormat.INTROSPECTION_JSON,
        source_label="schema.json",
    )

    canonical = build(payload, SchemaSide.NEW)

    assert not canonical.source_text.lstrip().startswith("{")
    assert "type Query {" in canonical.source_text
    assert "keep this comment" not in canonical.source_text


def test_build_introspection_json_accepts_data_wrapper() -> None:
    wrapped = json.dumps({"data": json.loads(_introspection_json(SDL))})
    payload = RawSchemaPayload(
        text=wrapped,
        format=SchemaFormat.INTROSPECTION_JSON,
        source_label="schema.json",
    )

    canonical = build(payload, SchemaSide.NEW)

    assert "a" in canonical.graphql_schema.query_type.fields


def test_build_introspection_from_endpoint_parses_sdl() -> None:
    payload = RawSchemaPayload(
        text=SDL,
        format=SchemaFormat.INTROSPECTION_JSON,
        source_label="https://api.test/graphql",
        from_endpoint=True,
    )

    canonical = build(payload, SchemaSide.OLD)

    assert "type Query {" in canonical.source_text
    assert canonical.source_text != SDL


def test_build_malformed_json_names_side() -> None:
    payload = RawSchemaPayload(
        text="{not json",
        format=SchemaFormat.INTROSPECTION_JSON,
        source_label="schema.json",
    )

    with pytest.raises(SchemaBuildError) as excinfo:
        build(payload, SchemaSide.OLD)

    assert excinfo.value.side == SchemaSide.OLD


async def test_build_pair_reports_unparsable_sdl() -> None:
    old = RawSchemaPayload(text=SDL, format=SchemaFormat.SDL, source_label="old")
    new = RawSchemaPayload(
        text="type Query {", format=SchemaFormat.SDL, source_label="schema.graphql"
    )

    with pytest.raises(SchemaBuildError, match="new schema"):
        await build_pair(old, new)


def test_build_rejects_invalid_type_system() -> None:
    payload = RawSchemaPayload(
        text=(
            "type Query { a: Foo }\n"
            "interface Bar { y: Int }\n"
            "type Foo implements Bar { x: Int }\n"
        ),
        format=SchemaFormat.SDL,
        source_label="schema.graphql",
    )

    with pytest.raises(SchemaBuildError, match="Bar.y") as excinfo:
        build(payload, SchemaSide.NEW)

    assert excinfo.value.side == SchemaSide.NEW
