"""Search engine capability used by the loader, provisioner and executor.

The core only talks to :class:`SearchEngine`. :class:`ElasticsearchEngine`
binds it to the official synchronous client; blocking calls run through
``asyncio.to_thread`` so a cancelled task abandons the awaited request.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from elasticsearch import ApiError, Elasticsearch, NotFoundError, TransportError

from .errors import EngineError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BulkItem:
    id: str
    status: int
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status >= 400


class SearchEngine(Protocol):
    async def index_exists(self, index: str) -> bool: ...

    async def create_index(self, index: str, settings: Dict[str, Any], mappings: Dict[str, Any]) -> None: ...

    async def count(self, index: str) -> int: ...

    async def bulk_write(self, index: str, documents: Sequence[Tuple[str, Dict[str, Any]]]) -> List[BulkItem]: ...

    async def multi_search(self, payload: str) -> Dict[str, Any]: ...


def _engine_error(exc: Exception) -> EngineError:
    if isinstance(exc, ApiError):
        body = exc.body
        error_type = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            error_type = body["error"].get("type")
        message = json.dumps(body) if body else str(exc)
        return EngineError(message, status=exc.meta.status, error_type=error_type)
    return EngineError(str(exc))


def _describe_error(error: Any) -> Optional[str]:
    if error is None:
        return None
    if isinstance(error, dict):
        reason = error.get("reason")
        error_type = error.get("type")
        if reason or error_type:
            return f"{error_type}: {reason}" if error_type else str(reason)
        return json.dumps(error)
    return str(error)


def _iter_operations(documents: Sequence[Tuple[str, Dict[str, Any]]]):
    for doc_id, source in documents:
        yield {"index": {"_id": doc_id}}
        yield source


@dataclass
class ElasticsearchEngine:
    client: Elasticsearch

    async def index_exists(self, index: str) -> bool:
        try:
            response = await asyncio.to_thread(self.client.indices.exists, index=index)
        except (ApiError, TransportError) as exc:
            raise _engine_error(exc) from exc
        return bool(response)

    async def create_index(self, index: str, settings: Dict[str, Any], mappings: Dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(self.client.indices.create, index=index, settings=settings, mappings=mappings)
        except (ApiError, TransportError) as exc:
            raise _engine_error(exc) from exc

    async def count(self, index: str) -> int:
        try:
            response = await asyncio.to_thread(self.client.count, index=index)
        except NotFoundError:
            return 0
        except (ApiError, TransportError) as exc:
            raise _engine_error(exc) from exc
        return int(response.body.get("count", 0))

    async def bulk_write(self, index: str, documents: Sequence[Tuple[str, Dict[str, Any]]]) -> List[BulkItem]:
        operations = list(_iter_operations(documents))
        try:
            response = await asyncio.to_thread(self.client.bulk, index=index, operations=operations)
        except (ApiError, TransportError) as exc:
            raise _engine_error(exc) from exc
        items: List[BulkItem] = []
        for entry in response.body.get("items", []):
            # each entry is keyed by its op type ("index", "create", ...)
            for result in entry.values():
                items.append(
                    BulkItem(
                        id=str(result.get("_id", "")),
                        status=int(result.get("status", 0)),
                        error=_describe_error(result.get("error")),
                    )
                )
        return items

    async def multi_search(self, payload: str) -> Dict[str, Any]:
        try:
            response = await asyncio.to_thread(self.client.msearch, body=payload)
        except (ApiError, TransportError) as exc:
            raise _engine_error(exc) from exc
        return response.body
