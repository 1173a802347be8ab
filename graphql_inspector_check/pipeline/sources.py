"""Fetching raw schema text for both sides of a comparison."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Protocol

import httpx
from graphql import GraphQLError

from graphql_inspector_check.config import is_url
from graphql_inspector_check.errors import SourceUnavailable
from graphql_inspector_check.models import ReferenceKind, SchemaSide
from graphql_inspector_check.schemas import RefDecision, SchemaReference

logger = logging.getLogger(__name__)


class FileReader(Protocol):
    async def read_file_at_revision(self, path: str, revision: str) -> str: ...


Introspector = Callable[[str], Awaitable[str]]


def build_references(
    decision: RefDecision,
    schema_path: str,
    endpoint: str | None = None,
) -> tuple[SchemaReference, SchemaReference]:
    """
    Turn a ref decision into locators for the old and new schema.

    With an endpoint configured the old side is introspected from it. If the
    new-side path is also a URL, the new side is introspected too, so two live
    endpoints are compared.

    Args:
        decision (RefDecision): Revisions chosen for both sides.
        schema_path (str): Schema file path, or URL for endpoint runs.
        endpoint (str | None): Live endpoint serving the old schema.

    Returns:
        tuple[SchemaReference, SchemaReference]: Old and new locators.
    """
    if endpoint:
        old = SchemaReference(path=endpoint, kind=ReferenceKind.LIVE_ENDPOINT)
    else:
        old = SchemaReference(
            revision=decision.old_ref,
            path=schema_path,
            kind=ReferenceKind.VERSIONED_FILE,
            workspace=decision.old_workspace,
        )

    if endpoint and is_url(schema_path):
        new = SchemaReference(path=schema_path, kind=ReferenceKind.LIVE_ENDPOINT)
    else:
        new = SchemaReference(
            revision=decision.new_ref,
            path=schema_path,
            kind=ReferenceKind.VERSIONED_FILE,
            workspace=decision.new_workspace,
        )
    return old, new


def _read_workspace_file(workspace: Path, path: str) -> str:
    return (workspace / path).read_text(encoding="utf-8")


async def fetch(
    reference: SchemaReference,
    files: FileReader,
    introspect: Introspector,
) -> str:
    """
    Fetch the raw schema text a locator points at.

    Args:
        reference (SchemaReference): Locator to fetch.
        files (FileReader): Remote content reader.
        introspect (Introspector): Introspects a live endpoint into SDL text.

    Returns:
        str: Schema text (SDL for live endpoints).
    """
    if reference.kind == ReferenceKind.LIVE_ENDPOINT:
        logger.debug("Introspecting %s", reference.path)
        return await introspect(reference.path)

    if reference.workspace is not None:
        logger.debug(
            "Reading %s from workspace %s", reference.path, reference.workspace
        )
        return await asyncio.to_thread(
            _read_workspace_file, reference.workspace, reference.path
        )

    logger.debug("Reading %s at %s", reference.path, reference.revision)
    return await files.read_file_at_revision(reference.path, reference.revision or "")


async def _fetch_side(
    side: SchemaSide,
    reference: SchemaReference,
    files: FileReader,
    introspect: Introspector,
) -> str:
    try:
        return await fetch(reference, files, introspect)
    except (httpx.HTTPError, OSError, GraphQLError, ValueError) as exc:
        raise SourceUnavailable(side, f"{reference.label}: {exc}") from exc


async def fetch_pair(
    old: SchemaReference,
    new: SchemaReference,
    files: FileReader,
    introspect: Introspector,
) -> tuple[str, str]:
    """
    Fetch the old and new schema text concurrently.

    Args:
        old (SchemaReference): Old-side locator.
        new (SchemaReference): New-side locator.
        files (FileReader): Remote content reader.
        introspect (Introspector): Live endpoint introspection.

    Returns:
        tuple[str, str]: Old and new schema text.

    Raises:
        SourceUnavailable: If either side cannot be fetched.
    """
    old_text, new_text = await asyncio.gather(
        _fetch_side(SchemaSide.OLD, old, files, introspect),
        _fetch_side(SchemaSide.NEW, new, files, introspect),
    )
    logger.info("Got both sources")
    return old_text, new_text
