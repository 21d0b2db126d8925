"""Describe provider objects as canonical table definitions."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from sync_schema.document_cache import DEFAULT_VERSION, SchemaDocumentCache
from sync_schema.type_mapper import TypeMapper

logger = logging.getLogger(__name__)

# Object types most installations sync.
COMMON_OBJECTS: List[str] = [
    "customer",
    "product",
    "price",
    "subscription",
    "invoice",
    "charge",
    "payment_intent",
    "payment_method",
    "balance_transaction",
    "payout",
    "refund",
    "coupon",
    "discount",
    "tax_rate",
    "plan",
]

SUPPORTED_VERSIONS: List[str] = [DEFAULT_VERSION]


def get_supported_versions() -> Dict[str, List[str]]:
    return {"versions": list(SUPPORTED_VERSIONS)}


async def describe_schema(
    document_cache: SchemaDocumentCache,
    version: Optional[str] = None,
    objects: Optional[Sequence[str]] = None,
    type_mapper: Optional[TypeMapper] = None,
) -> Dict[str, Any]:
    """Map the requested object types to table definitions.

    Objects that are missing or fail to map are reported in ``errors``
    rather than failing the whole description. Failure to load the document
    itself propagates.
    """
    parser = await document_cache.get(version or DEFAULT_VERSION)
    mapper = type_mapper or TypeMapper()
    object_names = [name.strip() for name in objects if name.strip()] if objects else COMMON_OBJECTS

    tables = []
    errors: List[str] = []
    for object_name in object_names:
        try:
            object_schema = parser.get_object_schema(object_name)
            if object_schema is None:
                errors.append(f"Object '{object_name}' not found in spec")
                continue
            tables.append(mapper.map_object_schema(object_schema).model_dump())
        except Exception as exc:
            logger.warning("Failed to describe %s: %s", object_name, exc)
            errors.append(f"Error processing '{object_name}': {exc}")

    result: Dict[str, Any] = {"version": parser.api_version, "tables": tables}
    if errors:
        result["errors"] = errors
    return result
