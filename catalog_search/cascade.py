"""Layered query cascade.

A search term is expanded into an ordered list of progressively looser
queries that are sent together as one ``_msearch`` request:

    1) phrase match on title/brand/categories with slop 2
    2) term match on every searchable field, fuzziness 0
    3) same fields, fuzziness 1
    4) same fields, fuzziness 2

Layer *k* carries the positive clauses of layers ``1..k-1`` in its
``must_not`` list, so a document claimed by a stricter layer does not take a
slot in a looser one. Every layer is sorted by ``rank`` ascending and limited
to the caller's page size on its own.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

SEARCHABLE_FIELDS: Tuple[str, ...] = ("title", "brand", "description", "categories", "product_details")
PHRASE_FIELDS: Tuple[str, ...] = ("title", "brand", "categories")
SORT_ORDER: List[Dict[str, str]] = [{"rank": "asc"}]
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class MatchMode(str, Enum):
    PHRASE = "phrase"
    TERM = "term"


@dataclass(frozen=True)
class MatchSpec:
    fields: Tuple[str, ...]
    mode: MatchMode = MatchMode.TERM
    slop: Optional[int] = None
    fuzziness: Optional[int] = None
    operator: Optional[str] = None

    def to_clause(self, term: str) -> Dict[str, Any]:
        body: Dict[str, Any] = {"query": term, "fields": list(self.fields)}
        if self.mode is MatchMode.PHRASE:
            body["type"] = "phrase"
            if self.slop is not None:
                body["slop"] = self.slop
        elif self.fuzziness is not None:
            body["fuzziness"] = self.fuzziness
        if self.operator:
            body["operator"] = self.operator
        return {"multi_match": body}


DEFAULT_LAYERS: Tuple[MatchSpec, ...] = (
    MatchSpec(PHRASE_FIELDS, MatchMode.PHRASE, slop=2),
    MatchSpec(SEARCHABLE_FIELDS, fuzziness=0),
    MatchSpec(SEARCHABLE_FIELDS, fuzziness=1),
    MatchSpec(SEARCHABLE_FIELDS, fuzziness=2),
)


def normalize_page_size(
    page_size: int,
    default: int = DEFAULT_PAGE_SIZE,
    maximum: int = MAX_PAGE_SIZE,
) -> int:
    if page_size <= 0 or page_size > maximum:
        return default
    return page_size


@dataclass(frozen=True)
class CascadeRequest:
    index: str
    term: str
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if not self.index:
            raise ValueError("index name must not be empty")
        object.__setattr__(self, "page_size", normalize_page_size(self.page_size))


@dataclass(frozen=True)
class QueryLayer:
    position: int
    match: MatchSpec
    excludes: Tuple[MatchSpec, ...] = field(default_factory=tuple)
    index: str = ""
    term: str = ""
    size: int = DEFAULT_PAGE_SIZE

    def header(self) -> Dict[str, Any]:
        return {"index": self.index}

    def body(self) -> Dict[str, Any]:
        bool_clause: Dict[str, Any] = {"must": self.match.to_clause(self.term)}
        if self.excludes:
            bool_clause["must_not"] = [spec.to_clause(self.term) for spec in self.excludes]
        return {
            "query": {"bool": bool_clause},
            "sort": [dict(order) for order in SORT_ORDER],
            "size": self.size,
        }


def build_layers(request: CascadeRequest, specs: Sequence[MatchSpec] = DEFAULT_LAYERS) -> List[QueryLayer]:
    layers: List[QueryLayer] = []
    for position, spec in enumerate(specs, start=1):
        layers.append(
            QueryLayer(
                position=position,
                match=spec,
                excludes=tuple(specs[: position - 1]),
                index=request.index,
                term=request.term,
                size=request.page_size,
            )
        )
    return layers


def build_cascade(index_name: str, search_term: str, page_size: int) -> List[QueryLayer]:
    return build_layers(CascadeRequest(index_name, search_term, page_size))


def _dumps(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def to_ndjson(layers: Sequence[QueryLayer]) -> str:
    """Serialize layers as header/body line pairs for ``_msearch``."""
    lines: List[str] = []
    for layer in layers:
        lines.append(_dumps(layer.header()))
        lines.append(_dumps(layer.body()))
    payload = "\n".join(lines) + "\n"
    logger.debug("msearch payload=%s", payload)
    return payload


def build_multi_search(index_name: str, search_term: str, page_size: int) -> str:
    return to_ndjson(build_cascade(index_name, search_term, page_size))
