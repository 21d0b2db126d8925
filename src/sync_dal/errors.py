"""Typed error taxonomy for the sync engine."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Sequence


class ErrorCode(str, Enum):
    """Bounded error codes surfaced in sync results and logs."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    DB_CONNECTION_ERROR = "DB_CONNECTION_ERROR"
    TRANSACTION_STATE_ERROR = "TRANSACTION_STATE_ERROR"
    DB_QUERY_ERROR = "DB_QUERY_ERROR"
    NOT_FOUND = "NOT_FOUND"
    MAPPING_ERROR = "MAPPING_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class SyncEngineError(Exception):
    """Base class for all errors raised by the sync engine."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR


class ConfigurationError(SyncEngineError):
    """Invalid entity configuration, such as a cyclic dependency graph.

    ``entities`` lists every entity implicated in the failure.
    """

    code = ErrorCode.CONFIGURATION_ERROR

    def __init__(self, message: str, entities: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.entities = tuple(entities)


class DatabaseConnectionError(SyncEngineError, ConnectionError):
    """Backend unreachable, bad credentials, or adapter not connected.

    ``sql`` and ``params`` are set when the failure surfaced while running a
    statement.
    """

    code = ErrorCode.DB_CONNECTION_ERROR

    def __init__(
        self,
        message: str,
        sql: Optional[str] = None,
        params: Optional[Sequence[Any]] = None,
    ) -> None:
        super().__init__(message)
        self.sql = sql
        self.params = list(params) if params is not None else []


class TransactionStateError(SyncEngineError):
    """Transaction discipline violated (double begin, commit without begin)."""

    code = ErrorCode.TRANSACTION_STATE_ERROR


class QueryError(SyncEngineError):
    """A statement failed; carries the offending SQL and parameters."""

    code = ErrorCode.DB_QUERY_ERROR

    def __init__(
        self,
        message: str,
        sql: str,
        params: Optional[Sequence[Any]] = None,
        category: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.sql = sql
        self.params = list(params) if params is not None else []
        self.category = category

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base}\nSQL: {self.sql}\nParams: {self.params!r}"


class NotFoundError(SyncEngineError):
    """The provider reports no object for the requested identifier."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, message: str, external_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.external_id = external_id
