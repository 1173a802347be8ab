"""Turning fetched schema text into comparable schemas."""

import asyncio
import json
import logging
from pathlib import PurePosixPath
from typing import Any

from graphql import (
    GraphQLError,
    GraphQLSchema,
    Source,
    assert_valid_schema,
    build_client_schema,
    build_schema,
    print_schema,
)

from graphql_inspector_check.errors import SchemaBuildError
from graphql_inspector_check.models import SchemaFormat, SchemaSide
from graphql_inspector_check.schemas import CanonicalSchema, RawSchemaPayload

logger = logging.getLogger(__name__)


def detect_format(schema_path: str) -> SchemaFormat:
    """
    Pick the payload format from the schema path's extension.

    Args:
        schema_path (str): Schema file path or URL.

    Returns:
        SchemaFormat: Introspection JSON for `.json` paths, SDL otherwise.
    """
    if PurePosixPath(schema_path.lower()).suffix == ".json":
        return SchemaFormat.INTROSPECTION_JSON
    return SchemaFormat.SDL


def _load_introspection(text: str) -> dict[str, Any]:
    result = json.loads(text)
    if not isinstance(result, dict):
        raise ValueError("Introspection result must be a JSON object")
    # both the raw response and its data portion are accepted
    if "__schema" not in result and isinstance(result.get("data"), dict):
        result = result["data"]
    return result


def _build_schema(payload: RawSchemaPayload) -> tuple[GraphQLSchema, str]:
    if payload.format == SchemaFormat.SDL:
        schema = build_schema(Source(payload.text, payload.source_label))
        source_text = payload.text
    else:
        if payload.from_endpoint:
            schema = build_schema(payload.text)
        else:
            schema = build_client_schema(_load_introspection(payload.text))
        source_text = print_schema(schema)

    # building only checks the SDL rules; type system rules are checked here
    assert_valid_schema(schema)
    return schema, source_text


def build(payload: RawSchemaPayload, side: SchemaSide) -> CanonicalSchema:
    """
    Build a canonical schema from a fetched payload.

    SDL keeps its raw text as the canonical source, so annotation lines match
    the file. Introspection JSON is converted to a schema and re-printed as
    SDL, which normalizes key ordering before the diff.

    Args:
        payload (RawSchemaPayload): Fetched schema text and its provenance.
        side (SchemaSide): Which side of the comparison is being built.

    Returns:
        CanonicalSchema: Schema with its canonical source text.

    Raises:
        SchemaBuildError: If the text is malformed JSON, unparsable SDL or an
            invalid type system.
    """
    try:
        schema, source_text = _build_schema(payload)
    except (GraphQLError, TypeError, ValueError, KeyError) as exc:
        raise SchemaBuildError(side, f"{payload.source_label}: {exc}") from exc

    logger.debug("Built %s schema from %s", side, payload.source_label)
    return CanonicalSchema(
        side=side,
        graphql_schema=schema,
        source_text=source_text,
        source_label=payload.source_label,
    )


async def build_pair(
    old: RawSchemaPayload,
    new: RawSchemaPayload,
) -> tuple[CanonicalSchema, CanonicalSchema]:
    """Build the old and new canonical schemas concurrently."""
    old_schema, new_schema = await asyncio.gather(
        asyncio.to_thread(build, old, SchemaSide.OLD),
        asyncio.to_thread(build, new, SchemaSide.NEW),
    )
    logger.info("Built both schemas")
    return old_schema, new_schema
