"""Error kinds and exceptions shared by the ingestion and search paths.

Errors that only affect one unit of work (a CSV row, a single cascade layer)
are logged and absorbed where they happen. Errors that affect a whole batch or
a whole call are turned into structured results by
:class:`catalog_search.catalog_service.CatalogService`, so callers branch on a
``success`` flag rather than on exception types.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    SOURCE_NOT_FOUND = "source_not_found"
    PROVISIONING = "provisioning"
    PARSE = "parse"
    PARSE_ROW = "parse_row"
    BATCH_WRITE = "batch_write"
    SEARCH_EXECUTION = "search_execution"
    LAYER = "layer"


class CatalogSearchError(Exception):
    """Base class; ``kind`` tells the orchestrator how to report it."""

    kind: ErrorKind = ErrorKind.SEARCH_EXECUTION

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = list(details or [])


class SourceNotFound(CatalogSearchError):
    kind = ErrorKind.SOURCE_NOT_FOUND


class ProvisioningError(CatalogSearchError):
    kind = ErrorKind.PROVISIONING


class ParseError(CatalogSearchError):
    kind = ErrorKind.PARSE


class ParseRowError(CatalogSearchError):
    kind = ErrorKind.PARSE_ROW

    def __init__(self, row_number: int, message: str) -> None:
        super().__init__(f"Error parsing row {row_number}: {message}")
        self.row_number = row_number


class BatchWriteError(CatalogSearchError):
    kind = ErrorKind.BATCH_WRITE


class SearchExecutionError(CatalogSearchError):
    kind = ErrorKind.SEARCH_EXECUTION


class LayerError(CatalogSearchError):
    kind = ErrorKind.LAYER

    def __init__(self, position: int, reason: str) -> None:
        super().__init__(f"Layer {position} failed: {reason}")
        self.position = position
        self.reason = reason


class EngineError(Exception):
    """Raised by engine adapters when a call fails at transport or API level."""

    def __init__(self, message: str, status: int | None = None, error_type: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.error_type = error_type
