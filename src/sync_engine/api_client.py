"""Provider API access used by the orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import httpx

from sync_common.config.env import get_env_float, get_env_str

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.stripe.com/v1"


@dataclass(frozen=True)
class Page:
    """One page of listed objects; ``next_cursor`` is None on the last page."""

    items: List[Dict[str, Any]] = field(default_factory=list)
    next_cursor: Optional[str] = None


@runtime_checkable
class ApiClient(Protocol):
    """Paginated read access to provider objects."""

    async def list_page(self, object_name: str, cursor: Optional[str], limit: int) -> Page:
        """Return the page of objects following ``cursor``."""
        ...

    async def retrieve(self, object_name: str, object_id: str) -> Optional[Dict[str, Any]]:
        """Return one object, or None if the provider does not have it."""
        ...


class HttpApiClient:
    """ApiClient over the provider's REST API using cursor pagination."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"Authorization": f"Bearer {api_key}"}

    @classmethod
    def from_env(cls) -> "HttpApiClient":
        """Build a client from SYNC_API_KEY, SYNC_API_BASE_URL and SYNC_API_TIMEOUT_SECS."""
        return cls(
            api_key=get_env_str("SYNC_API_KEY", required=True),
            base_url=get_env_str("SYNC_API_BASE_URL", DEFAULT_BASE_URL),
            timeout=get_env_float("SYNC_API_TIMEOUT_SECS", 30.0),
        )

    async def list_page(self, object_name: str, cursor: Optional[str], limit: int) -> Page:
        params: Dict[str, Any] = {"limit": limit}
        if cursor:
            params["starting_after"] = cursor
        response = await self._client.get(
            f"{self.base_url}/{object_name}", params=params, headers=self._headers
        )
        response.raise_for_status()
        body = response.json()

        items = list(body.get("data") or [])
        next_cursor = items[-1].get("id") if body.get("has_more") and items else None
        logger.debug(
            "Listed %d %s (has_more=%s)", len(items), object_name, next_cursor is not None
        )
        return Page(items=items, next_cursor=next_cursor)

    async def retrieve(self, object_name: str, object_id: str) -> Optional[Dict[str, Any]]:
        response = await self._client.get(
            f"{self.base_url}/{object_name}/{object_id}", headers=self._headers
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
