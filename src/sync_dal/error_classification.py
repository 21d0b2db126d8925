"""Provider-aware classification of raw driver exceptions.

Adapters use the category to decide whether a driver failure is a
connection problem (``DatabaseConnectionError``) or a statement problem
(``QueryError``). Nothing here retries; ``is_retryable`` is advisory for
the caller's own policy.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

CONNECTION_CATEGORIES = frozenset({"connectivity", "auth"})


@dataclass(frozen=True)
class ErrorClassification:
    """Structured provider-aware error classification."""

    category: str
    provider: str
    is_retryable: bool


def classify_error(provider: str, exc: BaseException) -> str:
    """Classify an error into a provider-agnostic category."""
    return classify_error_info(provider, exc).category


def classify_error_info(provider: str, exc: BaseException) -> ErrorClassification:
    """Classify an error into a provider-aware category with retryability."""
    message = str(exc).lower()
    class_name = exc.__class__.__name__.lower()
    module_name = exc.__class__.__module__.lower()
    provider = (provider or "unknown").lower()

    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)) or _matches_any(
        message, ("timeout", "timed out")
    ):
        return _classification("timeout", provider)
    if isinstance(exc, (ConnectionRefusedError, ConnectionResetError)) or _matches_any(
        message,
        (
            "could not connect",
            "connection refused",
            "connection reset",
            "can't connect",
            "unable to open database",
            "connection failed",
            "connection is closed",
            "name or service not known",
        ),
    ):
        return _classification("connectivity", provider)
    if _matches_any(
        message,
        (
            "password authentication failed",
            "access denied",
            "permission denied",
            "not authorized",
        ),
    ):
        return _classification("auth", provider)
    if _matches_any(
        message,
        (
            "unique constraint",
            "duplicate key",
            "duplicate entry",
            "foreign key constraint",
            "not null constraint",
            "violates",
            "constraint error",
        ),
    ):
        return _classification("constraint", provider)
    if _matches_any(message, ("syntax error", "parser error", "parse error", "near \"")):
        return _classification("syntax", provider)
    if _matches_any(message, ("no such table", "does not exist", "doesn't exist", "no such column")):
        return _classification("schema_drift", provider)

    if provider == "postgres":
        if _matches_any(message, ("deadlock detected",)):
            return _classification("deadlock", provider)
        if _matches_any(message, ("could not serialize",)):
            return _classification("serialization", provider)
        if module_name.startswith("asyncpg") and "invalidauthorization" in class_name:
            return _classification("auth", provider)
        if module_name.startswith("asyncpg") and "syntax" in class_name:
            return _classification("syntax", provider)

    if provider == "mysql" and _matches_any(message, ("lock wait timeout", "deadlock found")):
        return _classification("deadlock", provider)

    if class_name in {"connectionerror", "interfaceerror"}:
        return _classification("connectivity", provider)

    return _classification("unknown", provider)


def is_connection_failure(provider: str, exc: BaseException) -> bool:
    """Return True when the error means the backend itself is unreachable."""
    return classify_error(provider, exc) in CONNECTION_CATEGORIES


def _matches_any(text: str, fragments: tuple[str, ...]) -> bool:
    return any(fragment in text for fragment in fragments)


def _classification(category: str, provider: str) -> ErrorClassification:
    retryable = category in {"timeout", "connectivity", "deadlock", "serialization"}
    return ErrorClassification(category=category, provider=provider, is_retryable=retryable)
