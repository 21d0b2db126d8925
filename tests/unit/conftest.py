"""Unit test environment helpers."""

import copy

import pytest

_SYNC_ENV_VARS = (
    "SYNC_API_KEY",
    "SYNC_API_BASE_URL",
    "SYNC_API_TIMEOUT_SECS",
    "SYNC_SCHEMA_DOCUMENT_PATH",
    "SYNC_SCHEMA_DOCUMENT_URL",
    "SYNC_SCHEMA_DOCUMENT_TIMEOUT_SECS",
)


@pytest.fixture(autouse=True)
def _minimal_env(monkeypatch):
    """Keep developer shell settings out of unit tests."""
    for name in _SYNC_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield

_DOCUMENT = {
    "openapi": "3.0.0",
    "info": {"version": "2024-06-20"},
    "components": {
        "schemas": {
            "customer": {
                "type": "object",
                "description": "A customer of the account.",
                "required": ["id"],
                "properties": {
                    "id": {"type": "string"},
                    "object": {"type": "string", "enum": ["customer"]},
                    "created": {"type": "integer", "format": "unix-time"},
                    "email": {"type": "string", "nullable": True, "description": "Email."},
                    "balance": {"type": "integer"},
                    "delinquent": {"type": "boolean", "nullable": True},
                    "metadata": {"type": "object", "additionalProperties": {"type": "string"}},
                    "preferred_locales": {"type": "array", "items": {"type": "string"}},
                    "address": {
                        "anyOf": [{"$ref": "#/components/schemas/address"}],
                        "nullable": True,
                    },
                    "default_source": {
                        "anyOf": [
                            {"type": "string"},
                            {"$ref": "#/components/schemas/payment_source"},
                        ],
                        "x-expansionResources": {
                            "oneOf": [{"$ref": "#/components/schemas/payment_source"}]
                        },
                    },
                },
            },
            "address": {
                "type": "object",
                "properties": {"city": {"type": "string", "nullable": True}},
            },
            "payment_source": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "customer": {
                        "anyOf": [{"type": "string"}, {"$ref": "#/components/schemas/customer"}]
                    },
                },
            },
            "invoice": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "customer": {
                        "anyOf": [{"type": "string"}, {"$ref": "#/components/schemas/customer"}]
                    },
                    "amount_due": {"type": "integer"},
                    "tax": {"type": "number", "nullable": True},
                    "lines": {"type": "array", "items": {"$ref": "#/components/schemas/line_item"}},
                    "from_invoice": {"$ref": "#/components/schemas/invoice"},
                },
            },
            "line_item": {"type": "object", "properties": {"id": {"type": "string"}}},
            "status_enum": {"type": "string", "enum": ["open", "paid"]},
            "empty": {"type": "object", "properties": {}},
            "broken": {
                "type": "object",
                "properties": {"x": {"$ref": "#/components/schemas/nope"}},
            },
        }
    },
}


@pytest.fixture
def openapi_document():
    """Small provider document with nested, cyclic and broken references."""
    return copy.deepcopy(_DOCUMENT)
