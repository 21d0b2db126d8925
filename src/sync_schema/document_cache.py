"""Process-wide cache of loaded provider schema documents.

The cache is explicit state: documents are loaded on first use and stay
until ``refresh`` or ``invalidate`` is called. There is no time-based
expiry.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from sync_common.config.env import get_env_float, get_env_str
from sync_schema.openapi import ObjectSchemaParser

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "current"
DEFAULT_SPEC_URL = "https://raw.githubusercontent.com/stripe/openapi/master/openapi/spec3.json"

DocumentLoader = Callable[[str], Awaitable[Dict[str, Any]]]


def file_loader(path_template: str) -> DocumentLoader:
    """Load documents from disk; ``{version}`` in the path is substituted."""

    async def _load(version: str) -> Dict[str, Any]:
        path = Path(path_template.format(version=version))
        text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        return json.loads(text)

    return _load


def http_loader(url_template: str = DEFAULT_SPEC_URL, timeout: float = 30.0) -> DocumentLoader:
    """Fetch documents over HTTP; ``{version}`` in the URL is substituted."""

    async def _load(version: str) -> Dict[str, Any]:
        url = url_template.format(version=version)
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.json()

    return _load


def loader_from_env() -> DocumentLoader:
    """Pick a loader from SYNC_SCHEMA_DOCUMENT_PATH or SYNC_SCHEMA_DOCUMENT_URL."""
    path = get_env_str("SYNC_SCHEMA_DOCUMENT_PATH")
    if path:
        return file_loader(path)
    url = get_env_str("SYNC_SCHEMA_DOCUMENT_URL", DEFAULT_SPEC_URL)
    return http_loader(url, timeout=get_env_float("SYNC_SCHEMA_DOCUMENT_TIMEOUT_SECS", 30.0))


class SchemaDocumentCache:
    """Loaded ``ObjectSchemaParser`` instances keyed by API version."""

    def __init__(self, loader: DocumentLoader) -> None:
        self._loader = loader
        self._parsers: Dict[str, ObjectSchemaParser] = {}
        self._lock = asyncio.Lock()

    async def get(self, version: str = DEFAULT_VERSION) -> ObjectSchemaParser:
        """Return the parser for ``version``, loading the document on first use."""
        parser = self._parsers.get(version)
        if parser is not None:
            return parser
        async with self._lock:
            parser = self._parsers.get(version)
            if parser is None:
                parser = await self._load(version)
                self._parsers[version] = parser
            return parser

    async def refresh(self, version: str = DEFAULT_VERSION) -> ObjectSchemaParser:
        """Reload the document for ``version`` unconditionally."""
        async with self._lock:
            parser = await self._load(version)
            self._parsers[version] = parser
            return parser

    def invalidate(self, version: Optional[str] = None) -> int:
        """Drop one version (or all of them) and return how many were dropped."""
        if version is None:
            count = len(self._parsers)
            self._parsers.clear()
            return count
        return 1 if self._parsers.pop(version, None) is not None else 0

    def __contains__(self, version: str) -> bool:
        return version in self._parsers

    async def _load(self, version: str) -> ObjectSchemaParser:
        logger.info("Loading provider schema document version=%s", version)
        document = await self._loader(version)
        parser = ObjectSchemaParser()
        parser.load_document(document)
        return parser
