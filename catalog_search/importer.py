"""Batched bulk loader for parsed catalog records."""
from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .engine import BulkItem, SearchEngine
from .errors import BatchWriteError, EngineError, ErrorKind, ProvisioningError
from .models import LoadState, Product

logger = logging.getLogger(__name__)

BATCH_SIZE = 500
BATCH_DELAY_SECONDS = 0.1
VERIFY_DELAY_SECONDS = 0.5


@dataclass
class LoadResult:
    success: bool
    indexed_count: int = 0
    already_loaded: bool = False
    existing_count: int = 0
    batches_written: int = 0
    error: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    state: LoadState = LoadState.CHECKING_INDEX


def _batched(records: Sequence[Product], size: int) -> Iterable[Sequence[Product]]:
    for start in range(0, len(records), size):
        yield records[start : start + size]


def _describe_failure(item: BulkItem) -> str:
    return f"Failed to index document {item.id} - Status: {item.status}, Error: {item.error or 'No error details'}"


class BulkLoader:
    """Writes records once per index, in fixed-size batches.

    A non-empty target index is treated as already loaded and left alone.
    Any per-document status >= 400 aborts the load; batches that were already
    written stay in the index.
    """

    def __init__(
        self,
        engine: SearchEngine,
        batch_size: int = BATCH_SIZE,
        batch_delay: float = BATCH_DELAY_SECONDS,
        verify_delay: float = VERIFY_DELAY_SECONDS,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.engine = engine
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.verify_delay = verify_delay

    async def existing_count(self, index: str) -> Optional[int]:
        """Return the document count, or ``None`` when the index is absent."""
        if not await self.engine.index_exists(index):
            return None
        return await self.engine.count(index)

    async def load(self, index: str, records: Sequence[Product]) -> LoadResult:
        if not index:
            raise ValueError("index name must not be empty")
        records = list(records)
        if not records:
            logger.warning("No products to index")
            return LoadResult(success=True, state=LoadState.ALL_BATCHES_DONE)

        logger.debug("load index=%s state=%s", index, LoadState.CHECKING_INDEX.value)
        try:
            existing = await self.existing_count(index)
        except EngineError as exc:
            return self._failed(
                LoadState.PROVISIONING_FAILED,
                ProvisioningError(f"Failed to check index {index}: {exc.message}"),
            )
        if existing is None:
            return self._failed(
                LoadState.PROVISIONING_FAILED,
                ProvisioningError(f"Index {index} does not exist. Cannot index products."),
            )
        if existing > 0:
            logger.info("Index %s already contains %s documents. Skipping indexing.", index, existing)
            return LoadResult(
                success=True,
                already_loaded=True,
                existing_count=existing,
                state=LoadState.ALREADY_LOADED,
            )

        return await self._write_batches(index, records)

    async def _write_batches(self, index: str, records: List[Product]) -> LoadResult:
        total = len(records)
        total_batches = math.ceil(total / self.batch_size)
        indexed = 0
        logger.debug("load index=%s state=%s", index, LoadState.BATCH_LOADING.value)

        for number, batch in enumerate(_batched(records, self.batch_size), start=1):
            start = (number - 1) * self.batch_size
            logger.info(
                "Processing batch %s/%s (items %s-%s of %s)",
                number,
                total_batches,
                start + 1,
                start + len(batch),
                total,
            )
            logger.debug("Batch %s first id=%s last id=%s", number, batch[0].id, batch[-1].id)

            documents = [(product.id, product.to_document()) for product in batch]
            try:
                items = await self.engine.bulk_write(index, documents)
            except EngineError as exc:
                result = self._failed(
                    LoadState.BATCH_FAILED,
                    BatchWriteError(f"Bulk request for batch {number} failed: {exc.message}"),
                )
                result.indexed_count = indexed
                result.batches_written = number - 1
                return result

            failures = [item for item in items if item.failed]
            if failures:
                details = [_describe_failure(item) for item in failures]
                for line in details:
                    logger.error("%s", line)
                result = self._failed(
                    LoadState.BATCH_FAILED,
                    BatchWriteError(f"Some documents failed to index in batch {number}", details),
                )
                result.indexed_count = indexed
                result.batches_written = number - 1
                return result

            indexed += len(batch)
            logger.info(
                "Batch %s/%s completed. Total indexed so far: %s/%s products",
                number,
                total_batches,
                indexed,
                total,
            )
            if number < total_batches:
                await asyncio.sleep(self.batch_delay)

        logger.info("Successfully indexed all %s products", indexed)
        await self._verify(index, indexed)
        return LoadResult(
            success=True,
            indexed_count=indexed,
            batches_written=total_batches,
            state=LoadState.ALL_BATCHES_DONE,
        )

    async def _verify(self, index: str, expected: int) -> None:
        await asyncio.sleep(self.verify_delay)
        try:
            actual = await self.engine.count(index)
        except EngineError as exc:
            logger.warning("Verification count for %s failed: %s", index, exc.message)
            return
        if actual != expected:
            logger.warning("Verification: index %s contains %s documents, expected %s", index, actual, expected)
        else:
            logger.info("Verification: index %s now contains %s documents", index, actual)

    @staticmethod
    def _failed(state: LoadState, error: BatchWriteError | ProvisioningError) -> LoadResult:
        logger.error("Load failed (%s): %s", state.value, error.message)
        return LoadResult(
            success=False,
            error=error.kind,
            error_message=error.message,
            errors=list(error.details),
            state=state,
        )
