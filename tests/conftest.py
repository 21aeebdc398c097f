"""Shared fixtures: an in-memory search engine and catalog helpers."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from catalog_search.config import Settings
from catalog_search.engine import BulkItem
from catalog_search.errors import EngineError
from catalog_search.models import Product

CSV_HEADER = (
    "title,brand,description,availability,reviews_count,categories,rank,rating,"
    "manufacturer,department,top_review,delivery,features,ingredients,is_available,"
    "root_bs_category,product_details"
)


class FakeEngine:
    """Records every call; behaves like a tiny single-node cluster."""

    def __init__(self) -> None:
        self.indices: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.created: List[Tuple[str, Dict[str, Any], Dict[str, Any]]] = []
        self.bulk_calls: List[List[str]] = []
        self.msearch_payloads: List[str] = []
        self.failing_ids: set[str] = set()
        self.create_error: Optional[EngineError] = None
        self.bulk_error: Optional[EngineError] = None
        self.msearch_error: Optional[EngineError] = None
        self.msearch_response: Optional[Dict[str, Any]] = None

    def seed(self, index: str, count: int) -> None:
        docs = self.indices.setdefault(index, {})
        for i in range(count):
            docs[f"seed-{i}"] = {"id": f"seed-{i}"}

    async def index_exists(self, index: str) -> bool:
        return index in self.indices

    async def create_index(self, index: str, settings: Dict[str, Any], mappings: Dict[str, Any]) -> None:
        if self.create_error is not None:
            raise self.create_error
        self.indices[index] = {}
        self.created.append((index, settings, mappings))

    async def count(self, index: str) -> int:
        return len(self.indices.get(index, {}))

    async def bulk_write(self, index: str, documents: Sequence[Tuple[str, Dict[str, Any]]]) -> List[BulkItem]:
        self.bulk_calls.append([doc_id for doc_id, _ in documents])
        if self.bulk_error is not None:
            raise self.bulk_error
        items = []
        for doc_id, source in documents:
            if doc_id in self.failing_ids:
                items.append(BulkItem(id=doc_id, status=400, error="mapper_parsing_exception: failed to parse"))
                continue
            self.indices.setdefault(index, {})[doc_id] = source
            items.append(BulkItem(id=doc_id, status=201))
        return items

    async def multi_search(self, payload: str) -> Dict[str, Any]:
        self.msearch_payloads.append(payload)
        if self.msearch_error is not None:
            raise self.msearch_error
        if self.msearch_response is not None:
            return self.msearch_response
        layers = len(payload.strip().splitlines()) // 2
        return {"responses": [hits_response() for _ in range(layers)]}


def make_products(count: int, prefix: str = "p") -> List[Product]:
    return [Product(id=f"{prefix}-{i}", title=f"Item {i}", brand="Acme", rank=i) for i in range(count)]


def hit(doc_id: str, rank: int = 1, **fields: Any) -> Dict[str, Any]:
    return {"_id": doc_id, "_source": {"id": doc_id, "title": f"Item {doc_id}", "rank": rank, **fields}}


def hits_response(*hits: Dict[str, Any]) -> Dict[str, Any]:
    return {"status": 200, "hits": {"hits": list(hits)}}


def error_response(reason: str = "failed to create query") -> Dict[str, Any]:
    return {"status": 400, "error": {"type": "search_phase_execution_exception", "reason": reason}}


def payload_bodies(payload: str) -> List[Dict[str, Any]]:
    lines = payload.strip().splitlines()
    return [json.loads(line) for line in lines[1::2]]


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def index_docs(tmp_path):
    settings_path = tmp_path / "index-settings.json"
    mappings_path = tmp_path / "index-mappings.json"
    settings_path.write_text(json.dumps({"number_of_shards": 1}), encoding="utf-8")
    mappings_path.write_text(json.dumps({"properties": {"rank": {"type": "integer"}}}), encoding="utf-8")
    return settings_path, mappings_path


@pytest.fixture
def app_settings(index_docs) -> Settings:
    settings_path, mappings_path = index_docs
    return Settings(
        settings_path=str(settings_path),
        mappings_path=str(mappings_path),
        batch_delay_seconds=0,
        verify_delay_seconds=0,
    )


@pytest.fixture
def write_csv(tmp_path):
    def _write(rows: Sequence[str], name: str = "data.csv"):
        path = tmp_path / name
        path.write_text("\n".join([CSV_HEADER, *rows]) + "\n", encoding="utf-8")
        return path

    return _write
