"""Runs the layered cascade as one multi-search call and merges the layers."""
from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, Iterable, List, Sequence

from pydantic import ValidationError

from .cascade import CascadeRequest, QueryLayer, build_layers, to_ndjson
from .engine import SearchEngine
from .errors import EngineError, LayerError, SearchExecutionError
from .models import Product

logger = logging.getLogger(__name__)


def _layer_hits(layer: QueryLayer, response: Any) -> List[Dict[str, Any]]:
    if not isinstance(response, dict):
        raise LayerError(layer.position, "malformed sub-response")
    error = response.get("error")
    if error is not None:
        reason = error.get("reason") if isinstance(error, dict) else str(error)
        raise LayerError(layer.position, reason or "unknown error")
    envelope = response.get("hits", {})
    hits = envelope.get("hits", []) if isinstance(envelope, dict) else None
    if not isinstance(hits, list):
        raise LayerError(layer.position, "malformed hits")
    return hits


def _to_product(hit: Any) -> Product | None:
    if not isinstance(hit, dict):
        logger.warning("Skipping malformed hit: %r", hit)
        return None
    source = hit.get("_source")
    if not isinstance(source, dict):
        return None
    if not source.get("id") and hit.get("_id"):
        source = {**source, "id": hit["_id"]}
    try:
        return Product(**source)
    except ValidationError as exc:
        logger.warning("Skipping hit %s with invalid source: %s", hit.get("_id"), exc)
        return None


def merge_layers(layers: Sequence[QueryLayer], responses: Iterable[Any]) -> List[Product]:
    """Concatenate layer hits in layer order, keeping the first hit per id.

    The result is not truncated back to the page size.
    """
    products: List[Product] = []
    seen: set[str] = set()
    for layer, response in zip(layers, responses):
        try:
            hits = _layer_hits(layer, response)
        except LayerError as exc:
            logger.warning("Layer search error: %s", exc.message)
            continue
        accepted = 0
        for hit in hits:
            product = _to_product(hit)
            if product is None or product.id in seen:
                continue
            seen.add(product.id)
            products.append(product)
            accepted += 1
        logger.debug("layer=%s hits=%s accepted=%s", layer.position, len(hits), accepted)
    return products


class SearchExecutor:
    def __init__(self, engine: SearchEngine) -> None:
        self.engine = engine

    async def execute(self, request: CascadeRequest) -> List[Product]:
        layers = build_layers(request)
        payload = to_ndjson(layers)

        started = perf_counter()
        try:
            response = await self.engine.multi_search(payload)
        except EngineError as exc:
            logger.error("Multi-search failed: %s", exc.message)
            raise SearchExecutionError(f"Search failed: {exc.message}") from exc

        if not isinstance(response, dict):
            raise SearchExecutionError("Failed to parse multi-search response")
        if response.get("error") is not None:
            raise SearchExecutionError(f"Search failed: {response['error']}")
        responses = response.get("responses")
        if not isinstance(responses, list) or len(responses) != len(layers):
            raise SearchExecutionError(
                f"Expected {len(layers)} layer responses, got "
                f"{len(responses) if isinstance(responses, list) else 'none'}"
            )

        products = merge_layers(layers, responses)
        logger.info(
            "Layered search completed q=%r index=%s size=%s found=%s took=%.2fms",
            request.term,
            request.index,
            request.page_size,
            len(products),
            (perf_counter() - started) * 1000,
        )
        return products
