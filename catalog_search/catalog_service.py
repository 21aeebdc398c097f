"""Ingestion and search entry points used by the HTTP layer and the CLI."""
from __future__ import annotations

import asyncio
import logging
import traceback
from pathlib import Path
from time import perf_counter

from .cascade import CascadeRequest
from .catalog_parser import parse_catalog
from .config import Settings
from .engine import SearchEngine
from .errors import CatalogSearchError, EngineError, ErrorKind, ParseError, SearchExecutionError, SourceNotFound
from .importer import BulkLoader
from .indexing import IndexProvisioner, load_index_documents
from .models import IndexResult, LoadState, SearchResult
from .search import SearchExecutor

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, engine: SearchEngine, config: Settings) -> None:
        self.engine = engine
        self.config = config
        self.provisioner = IndexProvisioner(engine)
        self.loader = BulkLoader(
            engine,
            batch_size=config.batch_size,
            batch_delay=config.batch_delay_seconds,
            verify_delay=config.verify_delay_seconds,
        )
        self.executor = SearchExecutor(engine)

    async def index_from_source(self, path: str | Path, index_name: str) -> IndexResult:
        """Provision ``index_name`` if needed and load the CSV at ``path`` into it.

        Always returns an :class:`IndexResult`; cancellation is the only
        thing that propagates.
        """
        try:
            return await self._index_from_source(Path(path), index_name)
        except CatalogSearchError as exc:
            logger.error("Indexing from %s failed: %s", path, exc.message)
            return IndexResult(success=False, error_kind=exc.kind, error_message=exc.message, errors=exc.details)
        except EngineError as exc:
            logger.error("Search engine call failed while indexing %s: %s", index_name, exc.message)
            return IndexResult(
                success=False,
                error_kind=ErrorKind.PROVISIONING,
                error_message=f"Search engine request failed: {exc.message}",
            )
        except Exception as exc:
            logger.exception("Error indexing products from %s", path)
            return IndexResult(
                success=False,
                error_message=f"An error occurred while indexing products: {exc}",
                errors=[traceback.format_exc()],
            )

    async def _index_from_source(self, source: Path, index_name: str) -> IndexResult:
        if not source.exists():
            raise SourceNotFound(f"CSV file not found at {source}")

        self._log_state(index_name, LoadState.CHECKING_INDEX)
        existing = await self.loader.existing_count(index_name)
        if existing:
            logger.info("Index %s already holds %s documents; skipping load", index_name, existing)
            self._log_state(index_name, LoadState.ALREADY_LOADED)
            return IndexResult(success=True, total_indexed=0, already_loaded=True, state=LoadState.ALREADY_LOADED)

        if existing is None:
            logger.info("Index %s does not exist. Creating with custom settings and mappings", index_name)
            self._log_state(index_name, LoadState.PROVISIONING)
            settings_doc, mappings_doc = load_index_documents(self.config.settings_path, self.config.mappings_path)
            provisioned = await self.provisioner.ensure(index_name, settings_doc, mappings_doc)
            if not provisioned:
                self._log_state(index_name, LoadState.PROVISIONING_FAILED)
                details = []
                if settings_doc is None or mappings_doc is None:
                    details.append(
                        f"Expected index documents at {self.config.settings_path} and {self.config.mappings_path}"
                    )
                return IndexResult(
                    success=False,
                    error_kind=provisioned.error_kind,
                    error_message=provisioned.error_message,
                    errors=details,
                    state=LoadState.PROVISIONING_FAILED,
                )

        logger.info("Starting CSV parsing from %s", source)
        self._log_state(index_name, LoadState.PARSING)
        try:
            catalog = await asyncio.to_thread(parse_catalog, source)
        except ParseError as exc:
            self._log_state(index_name, LoadState.PARSE_FAILED)
            logger.error("Parsing %s failed: %s", source, exc.message)
            return IndexResult(
                success=False,
                error_kind=exc.kind,
                error_message=exc.message,
                errors=exc.details,
                state=LoadState.PARSE_FAILED,
            )
        total_parsed = len(catalog.products)

        logger.info("Starting bulk indexing of %s products to %s", total_parsed, index_name)
        load = await self.loader.load(index_name, catalog.products)
        if not load.success:
            return IndexResult(
                success=False,
                error_kind=load.error,
                error_message=load.error_message or "Failed to index products to Elasticsearch",
                total_parsed=total_parsed,
                errors=catalog.errors + load.errors,
                state=load.state,
            )

        logger.info("Indexed %s products from %s into %s", load.indexed_count, source, index_name)
        return IndexResult(
            success=True,
            total_parsed=total_parsed,
            total_indexed=load.indexed_count,
            already_loaded=load.already_loaded,
            errors=catalog.errors,
            state=load.state,
        )

    @staticmethod
    def _log_state(index_name: str, state: LoadState) -> None:
        logger.debug("index=%s state=%s", index_name, state.value)

    async def search(self, index_name: str, term: str, page_size: int = 20) -> SearchResult:
        if not term or not term.strip():
            logger.warning("Search term is empty")
            return SearchResult(success=True, products=[])

        started = perf_counter()
        request = CascadeRequest(index_name, term, page_size)
        try:
            products = await self.executor.execute(request)
        except SearchExecutionError as exc:
            logger.error("Error searching products q=%r: %s", term, exc.message)
            return SearchResult(success=False, error_kind=exc.kind, error_message=exc.message)
        except Exception as exc:
            logger.exception("Unexpected error searching products q=%r", term)
            return SearchResult(
                success=False,
                error_kind=ErrorKind.SEARCH_EXECUTION,
                error_message=f"An error occurred while searching products: {exc}",
            )

        logger.info(
            "timing: total=%.2fms q=%r index=%s size=%s results=%s",
            (perf_counter() - started) * 1000,
            term,
            index_name,
            request.page_size,
            len(products),
        )
        return SearchResult(success=True, products=products)
