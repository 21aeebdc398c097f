"""FastAPI application wiring the catalog service."""
from __future__ import annotations

import asyncio
import logging

from elasticsearch import Elasticsearch
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

from .catalog_service import CatalogService
from .config import settings
from .es_client import get_client, get_engine
from .indexing import index_is_empty
from .models import ErrorResponse, IndexResponse, SearchResponse

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

# uvicorn installs its own handlers; ``force=True`` replaces them so every
# module logger shares one format.
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "elastic_transport"):
    logging.getLogger(name).setLevel(LOG_LEVEL)

logger = logging.getLogger(__name__)
logger.info("Logging configured at %s", settings.log_level.upper())

app = FastAPI(title="Layered Product Search Service")


def get_service() -> CatalogService:
    return CatalogService(get_engine(), settings)


async def _index_on_startup(service: CatalogService) -> None:
    logger.info("Starting automatic product indexing...")
    await asyncio.sleep(settings.startup_delay_seconds)
    result = await service.index_from_source(settings.data_path, settings.es_index)
    if result.success:
        logger.info(
            "Automatic indexing completed. Indexed %s products (already loaded: %s).",
            result.total_indexed,
            result.already_loaded,
        )
    else:
        logger.error("Automatic indexing failed: %s", result.error_message)


@app.on_event("startup")
async def startup_event() -> None:
    if settings.load_on_startup:
        app.state.startup_indexing = asyncio.create_task(_index_on_startup(get_service()))


@app.on_event("shutdown")
async def shutdown_event() -> None:
    task = getattr(app.state, "startup_indexing", None)
    if task is not None and not task.done():
        task.cancel()


@app.get("/health")
async def health(
    es: Elasticsearch = Depends(get_client),
    service: CatalogService = Depends(get_service),
) -> dict:
    status = await asyncio.to_thread(es.cluster.health)
    empty = await index_is_empty(service.engine, settings.es_index)
    return {
        "elasticsearch": status.body.get("status"),
        "index": settings.es_index,
        "empty": empty,
    }


@app.post("/api/products/index", response_model=IndexResponse, responses={500: {"model": ErrorResponse}})
async def index_products(service: CatalogService = Depends(get_service)):
    logger.info("Starting product indexing from %s", settings.data_path)
    result = await service.index_from_source(settings.data_path, settings.es_index)
    if not result.success:
        payload = ErrorResponse(
            message="Failed to index products",
            error=result.error_message,
            details=result.errors,
        )
        return JSONResponse(status_code=500, content=payload.model_dump())
    message = "Products already indexed" if result.already_loaded else "Products indexed successfully"
    return IndexResponse(
        message=message,
        index=settings.es_index,
        totalProductsParsed=result.total_parsed,
        totalProductsIndexed=result.total_indexed,
        alreadyLoaded=result.already_loaded,
        errors=result.errors,
    )


@app.get("/api/products/search", response_model=SearchResponse, responses={500: {"model": ErrorResponse}})
async def search(
    q: str = Query("", description="Search term"),
    size: int = Query(20, description="Page size per layer (default 20, max 100)"),
    service: CatalogService = Depends(get_service),
):
    if not q.strip():
        raise HTTPException(status_code=400, detail="Search term 'q' is required")
    result = await service.search(settings.es_index, q, size)
    if not result.success:
        payload = ErrorResponse(message="An error occurred while searching products", error=result.error_message)
        return JSONResponse(status_code=500, content=payload.model_dump())
    return SearchResponse(query=q, count=len(result.products), results=result.products)
