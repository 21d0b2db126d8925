import pytest

from sync_schema.describe import COMMON_OBJECTS, describe_schema, get_supported_versions
from sync_schema.document_cache import SchemaDocumentCache


def _cache(document):
    async def _load(version):
        return document

    return SchemaDocumentCache(_load)


def test_supported_versions():
    assert get_supported_versions() == {"versions": ["current"]}


@pytest.mark.asyncio
async def test_describe_reports_tables_and_errors(openapi_document):
    result = await describe_schema(
        _cache(openapi_document), objects=["customer", " invoice ", "", "nope", "empty"]
    )

    assert result["version"] == "2024-06-20"
    assert [table["name"] for table in result["tables"]] == ["customers", "invoices"]
    customers = result["tables"][0]
    assert customers["columns"][0]["name"] == "id"
    assert customers["columns"][0]["primary_key"] is True
    assert result["errors"] == [
        "Object 'nope' not found in spec",
        "Error processing 'empty': Failed to parse schema for empty: Schema empty has no properties",
    ]


@pytest.mark.asyncio
async def test_describe_defaults_to_common_objects(openapi_document):
    result = await describe_schema(_cache(openapi_document))
    assert [table["name"] for table in result["tables"]] == ["customers", "invoices"]
    assert len(result["errors"]) == len(COMMON_OBJECTS) - 2


@pytest.mark.asyncio
async def test_describe_omits_errors_when_clean(openapi_document):
    result = await describe_schema(_cache(openapi_document), objects=["line_item"])
    assert "errors" not in result
    assert result["tables"][0]["dependencies"] == []
