"""Parsing of provider OpenAPI documents into flat object schemas.

Only internal ``#/...`` references are supported. References are resolved
recursively up to a depth limit, and a reference that is already being
resolved higher up the chain becomes a placeholder object instead of
recursing forever.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple, Union

logger = logging.getLogger(__name__)

SCHEMA_REF_PREFIX = "#/components/schemas/"
DEFAULT_MAX_DEPTH = 10

_KNOWN_TYPES = {"string", "integer", "number", "boolean", "object", "array", "null"}


class SchemaDocumentError(ValueError):
    """The provider schema document is malformed or cannot be resolved."""


@dataclass(frozen=True)
class PropertyDefinition:
    """One property of a provider object schema."""

    name: str
    type: str
    nullable: bool = False
    description: Optional[str] = None
    format: Optional[str] = None
    item_type: Optional[str] = None
    item_definition: Optional[Dict[str, Any]] = None
    references: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ObjectSchema:
    """A provider object type with its flattened properties."""

    name: str
    properties: List[PropertyDefinition] = field(default_factory=list)
    description: Optional[str] = None
    required: List[str] = field(default_factory=list)


class ReferenceResolver:
    """Resolve ``$ref`` pointers against a loaded document."""

    def __init__(self, document: Dict[str, Any], max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.document = document
        self.max_depth = max_depth
        self._visiting: Set[str] = set()

    def resolve(self, ref: str, depth: int = 0) -> Any:
        if depth > self.max_depth:
            raise SchemaDocumentError(
                f"Maximum reference resolution depth ({self.max_depth}) exceeded for: {ref}"
            )
        if ref in self._visiting:
            return {"type": "object", "description": f"Circular reference: {ref}"}

        self._visiting.add(ref)
        try:
            return self.resolve_nested(self._lookup(ref), depth + 1)
        finally:
            self._visiting.discard(ref)

    def resolve_nested(self, node: Any, depth: int = 0) -> Any:
        if depth > self.max_depth:
            return node
        if isinstance(node, list):
            return [self.resolve_nested(item, depth) for item in node]
        if not isinstance(node, dict):
            return node
        if "$ref" in node:
            return self.resolve(node["$ref"], depth)
        return {key: self.resolve_nested(value, depth) for key, value in node.items()}

    def _lookup(self, ref: str) -> Any:
        if not ref.startswith("#/"):
            raise SchemaDocumentError(
                f"Unsupported reference format: {ref}. Only internal references (#/...) are supported."
            )
        current: Any = self.document
        for raw_part in ref[2:].split("/"):
            part = raw_part.replace("~1", "/").replace("~0", "~")
            if not isinstance(current, dict) or part not in current:
                raise SchemaDocumentError(f"Cannot resolve reference {ref}: path does not exist")
            current = current[part]
        return current


def has_references(node: Any) -> bool:
    if isinstance(node, list):
        return any(has_references(item) for item in node)
    if isinstance(node, dict):
        return "$ref" in node or any(has_references(value) for value in node.values())
    return False


def referenced_schema_names(definition: Any) -> Tuple[str, ...]:
    """Collect object schema names a property points at.

    Looks at a direct ``$ref``, the branches of ``anyOf``/``oneOf``/``allOf``,
    array ``items`` and the ``x-expansionResources`` extension. Nested
    ``properties`` are not walked.
    """
    names: List[str] = []

    def _visit(node: Any) -> None:
        if isinstance(node, list):
            for item in node:
                _visit(item)
            return
        if not isinstance(node, dict):
            return
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith(SCHEMA_REF_PREFIX):
            name = ref[len(SCHEMA_REF_PREFIX) :]
            if name not in names:
                names.append(name)
        for key in ("anyOf", "oneOf", "allOf", "items"):
            if key in node:
                _visit(node[key])
        expansion = node.get("x-expansionResources")
        if isinstance(expansion, dict):
            _visit(expansion.get("oneOf", []))

    _visit(definition)
    return tuple(names)


def map_openapi_type(definition: Dict[str, Any]) -> str:
    """Reduce a JSON-schema definition to one of the basic OpenAPI types."""
    declared = definition.get("type")
    if declared:
        return declared if declared in _KNOWN_TYPES else "object"
    if any(key in definition for key in ("anyOf", "oneOf", "allOf")):
        return "object"
    if "enum" in definition:
        return "string"
    return "object"


class ObjectSchemaParser:
    """Load a provider OpenAPI document and extract object schemas."""

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.max_depth = max_depth
        self._document: Optional[Dict[str, Any]] = None
        self._version: str = "unknown"

    @property
    def is_loaded(self) -> bool:
        return self._document is not None

    @property
    def api_version(self) -> str:
        self._require_loaded()
        return self._version

    def load_document(self, document: Dict[str, Any]) -> None:
        """Validate and load an already-decoded OpenAPI document."""
        if not isinstance(document, dict):
            raise SchemaDocumentError("Invalid OpenAPI specification: expected a JSON object")
        if not document.get("openapi") and not document.get("swagger"):
            raise SchemaDocumentError(
                "Invalid OpenAPI specification: missing 'openapi' or 'swagger' field"
            )
        schemas = (document.get("components") or {}).get("schemas")
        if not isinstance(schemas, dict):
            raise SchemaDocumentError(
                "Invalid OpenAPI specification: missing 'components.schemas' section"
            )
        self._document = document
        self._version = (document.get("info") or {}).get("version") or "unknown"
        logger.info(
            "Loaded OpenAPI document version=%s schemas=%d", self._version, len(schemas)
        )

    def load_path(self, path: Union[str, Path]) -> None:
        """Load an OpenAPI document from a JSON file."""
        try:
            document = json.loads(Path(path).read_text(encoding="utf-8"))
            self.load_document(document)
        except (OSError, ValueError) as exc:
            raise SchemaDocumentError(f"Failed to load OpenAPI spec from {path}: {exc}") from exc

    def list_object_types(self) -> List[str]:
        self._require_loaded()
        return sorted(self._schemas())

    def get_object_schema(self, name: str) -> Optional[ObjectSchema]:
        """Return the flattened schema for ``name``, or None if it is absent."""
        self._require_loaded()
        raw = self._schemas().get(name)
        if raw is None:
            return None

        try:
            resolved = raw
            if has_references(raw):
                resolved = ReferenceResolver(self._document, self.max_depth).resolve_nested(raw)
            return self._parse_object_schema(name, raw, resolved)
        except SchemaDocumentError as exc:
            raise SchemaDocumentError(f"Failed to parse schema for {name}: {exc}") from exc

    def _parse_object_schema(
        self, name: str, raw: Dict[str, Any], resolved: Dict[str, Any]
    ) -> ObjectSchema:
        if resolved.get("type") != "object":
            raise SchemaDocumentError(
                f"Schema {name} is not an object type: {resolved.get('type')}"
            )
        properties = resolved.get("properties")
        if not properties:
            raise SchemaDocumentError(f"Schema {name} has no properties")

        raw_properties = raw.get("properties") or {}
        return ObjectSchema(
            name=name,
            properties=[
                self._parse_property(prop_name, definition, raw_properties.get(prop_name, {}))
                for prop_name, definition in properties.items()
            ],
            description=resolved.get("description"),
            required=list(resolved.get("required") or []),
        )

    @staticmethod
    def _parse_property(
        name: str, definition: Dict[str, Any], raw_definition: Dict[str, Any]
    ) -> PropertyDefinition:
        prop_type = map_openapi_type(definition)
        item_type = None
        item_definition = None
        if definition.get("type") == "array" and isinstance(definition.get("items"), dict):
            item_definition = definition["items"]
            item_type = map_openapi_type(item_definition)
        return PropertyDefinition(
            name=name,
            type=prop_type,
            nullable=definition.get("nullable") is True,
            description=definition.get("description"),
            format=definition.get("format"),
            item_type=item_type,
            item_definition=item_definition,
            references=referenced_schema_names(raw_definition),
        )

    def _schemas(self) -> Dict[str, Any]:
        return self._document["components"]["schemas"]

    def _require_loaded(self) -> None:
        if self._document is None:
            raise SchemaDocumentError("No OpenAPI spec loaded. Call load_document() first.")
