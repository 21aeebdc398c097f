"""Batching, idempotency gate and failure handling of the bulk loader."""
import asyncio
import logging

import pytest

from catalog_search import importer
from catalog_search.errors import EngineError, ErrorKind
from catalog_search.importer import BulkLoader, LoadState

from conftest import make_products


def _loader(engine, **kwargs):
    kwargs.setdefault("batch_delay", 0)
    kwargs.setdefault("verify_delay", 0)
    return BulkLoader(engine, **kwargs)


@pytest.mark.asyncio
async def test_loads_in_batches_of_five_hundred(engine):
    engine.seed("products", 0)
    records = make_products(1200)

    result = await _loader(engine).load("products", records)

    assert result.success
    assert result.indexed_count == 1200
    assert result.batches_written == 3
    assert [len(call) for call in engine.bulk_calls] == [500, 500, 200]
    assert engine.bulk_calls[0][0] == "p-0"
    assert engine.bulk_calls[2][-1] == "p-1199"
    assert result.state is LoadState.ALL_BATCHES_DONE


@pytest.mark.asyncio
async def test_non_empty_index_is_not_written(engine):
    engine.seed("products", 3)

    result = await _loader(engine).load("products", make_products(10))

    assert result.success
    assert result.already_loaded
    assert result.existing_count == 3
    assert result.indexed_count == 0
    assert engine.bulk_calls == []


@pytest.mark.asyncio
async def test_failing_document_aborts_remaining_batches(engine):
    engine.seed("products", 0)
    engine.failing_ids = {"p-742"}

    result = await _loader(engine).load("products", make_products(1200))

    assert not result.success
    assert result.error is ErrorKind.BATCH_WRITE
    assert len(engine.bulk_calls) == 2
    assert result.indexed_count == 500
    assert result.batches_written == 1
    assert any("p-742" in line and "400" in line for line in result.errors)
    # first batch stays in the index
    assert len(engine.indices["products"]) == 500 + 499


@pytest.mark.asyncio
async def test_bulk_transport_failure_aborts(engine):
    engine.seed("products", 0)
    engine.bulk_error = EngineError("ConnectionTimeout")

    result = await _loader(engine).load("products", make_products(3))

    assert not result.success
    assert result.error is ErrorKind.BATCH_WRITE
    assert "ConnectionTimeout" in result.error_message


@pytest.mark.asyncio
async def test_missing_index_fails_without_writing(engine):
    result = await _loader(engine).load("products", make_products(3))

    assert not result.success
    assert result.error is ErrorKind.PROVISIONING
    assert engine.bulk_calls == []


@pytest.mark.asyncio
async def test_empty_record_set_is_a_no_op(engine):
    result = await _loader(engine).load("products", [])

    assert result.success
    assert engine.bulk_calls == []


@pytest.mark.asyncio
async def test_pauses_only_between_batches(engine, monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(importer.asyncio, "sleep", fake_sleep)
    engine.seed("products", 0)

    await BulkLoader(engine, batch_size=2, batch_delay=0.1, verify_delay=0.5).load("products", make_products(5))

    # two pauses between three batches, then the verification wait
    assert delays == [0.1, 0.1, 0.5]


def test_batch_size_must_be_positive(engine):
    with pytest.raises(ValueError):
        BulkLoader(engine, batch_size=0)


@pytest.mark.asyncio
async def test_cancelled_load_keeps_committed_batches(engine):
    engine.seed("products", 0)
    loader = BulkLoader(engine, batch_size=2, batch_delay=30, verify_delay=0)

    task = asyncio.create_task(loader.load("products", make_products(5)))
    while not engine.bulk_calls:
        await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert engine.bulk_calls == [["p-0", "p-1"]]
    assert sorted(engine.indices["products"]) == ["p-0", "p-1"]


@pytest.mark.asyncio
async def test_verification_mismatch_is_only_logged(engine, caplog):
    engine.seed("products", 0)
    counts = iter([0, 7])

    async def drifting_count(index):
        return next(counts)

    engine.count = drifting_count
    caplog.set_level(logging.WARNING, logger="catalog_search.importer")

    result = await _loader(engine).load("products", make_products(3))

    assert result.success
    assert result.indexed_count == 3
    assert result.state is LoadState.ALL_BATCHES_DONE
    assert "contains 7 documents, expected 3" in caplog.text
