"""Loading client operations and validating them against the new schema."""

import asyncio
import glob
import logging
import re
from pathlib import Path

from graphql import (
    DocumentNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLError,
    GraphQLSchema,
    OperationDefinitionNode,
    SelectionSetNode,
    Source,
    parse,
    print_ast,
    validate,
)

from graphql_inspector_check.schemas import DocumentSource, InvalidDocumentFinding

logger = logging.getLogger(__name__)

GRAPHQL_EXTENSIONS = {".graphql", ".graphqls", ".gql"}
CODE_EXTENSIONS = {".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".py"}

_TAGGED_TEMPLATE = re.compile(
    r"(?:\bgql|\bgraphql|/\*\s*GraphQL\s*\*/)\s*`([^`]*)`", re.IGNORECASE
)
_PY_CALL = re.compile(r"\bgql\(\s*r?(?:\"\"\"(.*?)\"\"\"|'''(.*?)''')", re.DOTALL)


def extract_documents(path: Path, text: str) -> list[str]:
    """
    Pull GraphQL document bodies out of a file.

    Args:
        path (Path): File the text was read from.
        text (str): File content.

    Returns:
        list[str]: Document bodies; the whole file for GraphQL files, tagged
            literals for code files.
    """
    suffix = path.suffix.lower()
    if suffix in GRAPHQL_EXTENSIONS:
        return [text]
    if suffix not in CODE_EXTENSIONS:
        return []

    bodies = [match.group(1) for match in _TAGGED_TEMPLATE.finditer(text)]
    for match in _PY_CALL.finditer(text):
        bodies.append(match.group(1) if match.group(1) is not None else match.group(2))
    # template interpolations like ${Fragment} cannot be parsed on their own
    return [re.sub(r"\$\{[^}]*\}", "", body) for body in bodies if body.strip()]


def _expand(patterns: list[str], base_dir: Path) -> list[Path]:
    paths: set[Path] = set()
    for pattern in patterns:
        if Path(pattern).is_absolute():
            matches = glob.glob(pattern, recursive=True)
        else:
            matches = [
                str(base_dir / match)
                for match in glob.glob(pattern, root_dir=base_dir, recursive=True)
            ]
        paths.update(Path(match) for match in matches)
    return sorted(path for path in paths if path.is_file())


def load_documents(patterns: list[str], base_dir: Path) -> list[DocumentSource]:
    """
    Load and parse operation documents matching glob patterns.

    Documents that do not parse are skipped and never reported as findings.

    Args:
        patterns (list[str]): Glob patterns, relative to `base_dir` unless absolute.
        base_dir (Path): Directory relative patterns are resolved against.

    Returns:
        list[DocumentSource]: Printed documents with their file location.
    """
    documents: list[DocumentSource] = []
    for path in _expand(patterns, base_dir):
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unreadable document %s: %s", path, exc)
            continue

        location = (
            path.relative_to(base_dir).as_posix()
            if path.is_relative_to(base_dir)
            else str(path)
        )
        for body in extract_documents(path, text):
            try:
                document = parse(Source(body, location))
            except GraphQLError as exc:
                logger.debug("Skipping unparsable document in %s: %s", location, exc)
                continue
            documents.append(
                DocumentSource(location=location, body=print_ast(document))
            )

    logger.info("Loaded %d documents", len(documents))
    return documents


def _spread_names(selection_set: SelectionSetNode | None) -> set[str]:
    names: set[str] = set()
    if selection_set is None:
        return names
    for selection in selection_set.selections:
        if isinstance(selection, FragmentSpreadNode):
            names.add(selection.name.value)
        else:
            names |= _spread_names(getattr(selection, "selection_set", None))
    return names


def _with_fragments(
    document: DocumentNode, fragments: dict[str, FragmentDefinitionNode]
) -> DocumentNode:
    defined = {
        definition.name.value
        for definition in document.definitions
        if isinstance(definition, FragmentDefinitionNode)
    }
    pending = set()
    for definition in document.definitions:
        pending |= _spread_names(getattr(definition, "selection_set", None))

    extra: list[FragmentDefinitionNode] = []
    while pending:
        name = pending.pop()
        if name in defined or name not in fragments:
            continue
        defined.add(name)
        extra.append(fragments[name])
        pending |= _spread_names(fragments[name].selection_set)

    if not extra:
        return document
    return DocumentNode(definitions=(*document.definitions, *extra))


def validate_documents(
    schema: GraphQLSchema, documents: list[DocumentSource]
) -> list[InvalidDocumentFinding]:
    """
    Validate operations against a schema.

    Fragments defined in any document are available to every operation.
    Files holding only fragments are validated through the operations using them.

    Args:
        schema (GraphQLSchema): New schema.
        documents (list[DocumentSource]): Parsed operation documents.

    Returns:
        list[InvalidDocumentFinding]: One finding per document with errors.
    """
    parsed = [
        (document, parse(Source(document.body, document.location)))
        for document in documents
    ]
    fragments: dict[str, FragmentDefinitionNode] = {}
    for _, ast in parsed:
        for definition in ast.definitions:
            if isinstance(definition, FragmentDefinitionNode):
                fragments.setdefault(definition.name.value, definition)

    findings: list[InvalidDocumentFinding] = []
    for document, ast in parsed:
        if not any(isinstance(d, OperationDefinitionNode) for d in ast.definitions):
            continue
        errors = validate(schema, _with_fragments(ast, fragments))
        if errors:
            findings.append(
                InvalidDocumentFinding(
                    location=document.location,
                    errors=[error.message for error in errors],
                )
            )
    return findings


class GraphQLCoreDocumentValidator:
    """Validates client operations with graphql-core's validation rules."""

    async def validate(
        self, schema: GraphQLSchema, documents: list[DocumentSource]
    ) -> list[InvalidDocumentFinding]:
        logger.info("Validate documents")
        return await asyncio.to_thread(validate_documents, schema, documents)
