"""Pydantic models for catalog records, results and request/response payloads."""
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ErrorKind


class Product(BaseModel):
    """One catalog record, stored as-is in the search index."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str = ""
    brand: str = ""
    description: str = ""
    availability: str = ""
    reviews_count: int = 0
    categories: List[str] = Field(default_factory=list)
    rank: int = 0
    rating: float = 0.0
    manufacturer: str = ""
    department: str = ""
    top_review: str = ""
    delivery: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    ingredients: str = ""
    is_available: bool = False
    root_bs_category: str = ""
    product_details: str = ""

    @field_validator("categories", "delivery", "features", mode="before")
    @classmethod
    def none_to_empty_list(cls, value):
        return [] if value is None else value

    @field_validator(
        "title",
        "brand",
        "description",
        "availability",
        "manufacturer",
        "department",
        "top_review",
        "ingredients",
        "root_bs_category",
        "product_details",
        mode="before",
    )
    @classmethod
    def none_to_blank(cls, value):
        return "" if value is None else value

    def to_document(self) -> dict:
        return self.model_dump()


class LoadState(str, Enum):
    CHECKING_INDEX = "checking_index"
    ALREADY_LOADED = "already_loaded"
    PROVISIONING = "provisioning"
    PROVISIONING_FAILED = "provisioning_failed"
    PARSING = "parsing"
    PARSE_FAILED = "parse_failed"
    BATCH_LOADING = "batch_loading"
    BATCH_FAILED = "batch_failed"
    ALL_BATCHES_DONE = "all_batches_done"


class IndexResult(BaseModel):
    success: bool = False
    error_message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    total_parsed: Optional[int] = None
    total_indexed: Optional[int] = None
    already_loaded: bool = False
    errors: List[str] = Field(default_factory=list)
    state: Optional[LoadState] = None


class SearchResult(BaseModel):
    success: bool = True
    products: List[Product] = Field(default_factory=list)
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None


class SearchResponse(BaseModel):
    query: str
    count: int
    results: List[Product]


class IndexResponse(BaseModel):
    message: str
    index: str
    totalProductsParsed: Optional[int] = None
    totalProductsIndexed: Optional[int] = None
    alreadyLoaded: bool = False
    errors: List[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    message: str
    error: Optional[str] = None
    details: List[str] = Field(default_factory=list)
