"""Layer-major merge and failure handling of the search executor."""
import pytest

from catalog_search.cascade import CascadeRequest
from catalog_search.errors import EngineError, SearchExecutionError
from catalog_search.search import SearchExecutor

from conftest import error_response, hit, hits_response, payload_bodies


@pytest.mark.asyncio
async def test_sends_one_multi_search_with_all_layers(engine):
    await SearchExecutor(engine).execute(CascadeRequest("products", "laptop", 5))

    assert len(engine.msearch_payloads) == 1
    bodies = payload_bodies(engine.msearch_payloads[0])
    assert len(bodies) == 4
    assert all(body["size"] == 5 for body in bodies)


@pytest.mark.asyncio
async def test_merge_is_layer_major_and_deduplicated(engine):
    engine.msearch_response = {
        "responses": [
            hits_response(hit("a", 5), hit("b", 9)),
            hits_response(hit("c", 1), hit("a", 5)),
            hits_response(hit("b", 9), hit("d", 2)),
            hits_response(hit("e", 0)),
        ]
    }

    products = await SearchExecutor(engine).execute(CascadeRequest("products", "laptop", 2))

    assert [p.id for p in products] == ["a", "b", "c", "d", "e"]


@pytest.mark.asyncio
async def test_results_are_not_truncated_to_page_size(engine):
    engine.msearch_response = {
        "responses": [hits_response(hit(f"{layer}-0"), hit(f"{layer}-1")) for layer in range(4)]
    }

    products = await SearchExecutor(engine).execute(CascadeRequest("products", "laptop", 2))

    assert len(products) == 8


@pytest.mark.asyncio
async def test_layer_error_is_skipped(engine):
    engine.msearch_response = {
        "responses": [
            hits_response(hit("a")),
            error_response("too_many_clauses"),
            hits_response(hit("b")),
            hits_response(),
        ]
    }

    products = await SearchExecutor(engine).execute(CascadeRequest("products", "laptop", 10))

    assert [p.id for p in products] == ["a", "b"]


@pytest.mark.asyncio
async def test_no_matches_returns_empty_list(engine):
    products = await SearchExecutor(engine).execute(CascadeRequest("products", "zzz-no-such-term-zzz", 10))
    assert products == []


@pytest.mark.asyncio
async def test_transport_failure_raises(engine):
    engine.msearch_error = EngineError("ConnectionError(connection refused)")

    with pytest.raises(SearchExecutionError) as excinfo:
        await SearchExecutor(engine).execute(CascadeRequest("products", "laptop", 10))
    assert "connection refused" in excinfo.value.message


@pytest.mark.asyncio
async def test_whole_request_error_raises(engine):
    engine.msearch_response = {"error": {"type": "illegal_argument_exception"}, "status": 400}

    with pytest.raises(SearchExecutionError):
        await SearchExecutor(engine).execute(CascadeRequest("products", "laptop", 10))


@pytest.mark.asyncio
async def test_response_count_mismatch_raises(engine):
    engine.msearch_response = {"responses": [hits_response(hit("a"))]}

    with pytest.raises(SearchExecutionError):
        await SearchExecutor(engine).execute(CascadeRequest("products", "laptop", 10))


@pytest.mark.asyncio
async def test_hits_without_usable_source_are_skipped(engine):
    engine.msearch_response = {
        "responses": [
            hits_response({"_id": "x"}, hit("a", categories=None)),
            hits_response({"_id": "y", "_source": {"title": "no id"}}),
            hits_response(),
            hits_response(),
        ]
    }

    products = await SearchExecutor(engine).execute(CascadeRequest("products", "laptop", 10))

    assert [p.id for p in products] == ["a", "y"]
    assert products[0].categories == []


@pytest.mark.asyncio
async def test_malformed_layer_hits_are_skipped(engine):
    engine.msearch_response = {
        "responses": [
            hits_response(hit("a")),
            {"status": 200, "hits": None},
            {"status": 200, "hits": {"hits": "oops"}},
            hits_response("not-a-hit", hit("b")),
        ]
    }

    products = await SearchExecutor(engine).execute(CascadeRequest("products", "laptop", 10))

    assert [p.id for p in products] == ["a", "b"]
