"""Tests for loading and validating client operations."""

from pathlib import Path

from graphql import build_schema

from graphql_inspector_check.inspector.documents import (
    GraphQLCoreDocumentValidator,
    extract_documents,
    load_documents,
    validate_documents,
)

SCHEMA = build_schema("type Query { a: String b: Int }")


def _write(root: Path, relative: str, text: str) -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def test_extract_documents_from_code_files() -> None:
    ts = (
        "const Q = gql`\n  query Q { a }\n`;\n"
        "const F = graphql`fragment F on Query { b }`;"
    )
    py = 'QUERY = gql("""\nquery P { a }\n""")'

    assert [d.strip() for d in extract_documents(Path("app.ts"), ts)] == [
        "query Q { a }",
        "fragment F on Query { b }",
    ]
    assert [d.strip() for d in extract_documents(Path("client.py"), py)] == [
        "query P { a }"
    ]
    assert extract_documents(Path("README.md"), "gql`{ a }`") == []


def test_load_documents_skips_unparsable_files(tmp_path: Path) -> None:
    _write(tmp_path, "ops/valid.graphql", "{ a }")
    _write(tmp_path, "ops/broken.graphql", "{ a ")
    _write(tmp_path, "src/app/client.ts", "export const q = gql`query Client { b }`;")

    documents = load_documents(["ops/*.graphql", "src/**/*.ts"], tmp_path)

    assert [d.location for d in documents] == [
        "ops/valid.graphql",
        "src/app/client.ts",
    ]


def test_load_documents_without_patterns(tmp_path: Path) -> None:
    assert load_documents([], tmp_path) == []


def test_validate_documents_reports_invalid_operations(tmp_path: Path) -> None:
    _write(tmp_path, "ops/valid.graphql", "{ a }")
    _write(tmp_path, "ops/invalid.graphql", "query Broken { missing }")
    documents = load_documents(["ops/*.graphql"], tmp_path)

    findings = validate_documents(SCHEMA, documents)

    assert len(findings) == 1
    assert findings[0].location == "ops/invalid.graphql"
    assert "missing" in findings[0].reason


def test_validate_documents_shares_fragments_across_files(tmp_path: Path) -> None:
    _write(tmp_path, "ops/fragment.graphql", "fragment Fields on Query { a b }")
    _write(tmp_path, "ops/query.graphql", "query WithFragment { ...Fields }")
    documents = load_documents(["ops/*.graphql"], tmp_path)

    assert validate_documents(SCHEMA, documents) == []


async def test_validator_runs_against_schema(tmp_path: Path) -> None:
    _write(tmp_path, "ops/query.graphql", "{ a }")
    documents = load_documents(["ops/*.graphql"], tmp_path)

    findings = await GraphQLCoreDocumentValidator().validate(SCHEMA, documents)

    assert findings == []
