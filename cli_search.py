"""Terminal client that reuses the in-process catalog service."""
from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Iterable

from catalog_search.catalog_service import CatalogService
from catalog_search.config import settings
from catalog_search.es_client import get_engine
from catalog_search.models import IndexResult, SearchResult

DEFAULT_SIZE = 20
GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"


def _service() -> CatalogService:
    return CatalogService(get_engine(), settings)


async def perform_query(query: str, size: int) -> SearchResult:
    return await _service().search(settings.es_index, query, size)


async def perform_index(path: Path) -> IndexResult:
    return await _service().index_from_source(path, settings.es_index)


def interactive_shell(size: int) -> None:
    print("Interactive product search. Type 'exit' to quit.")
    while True:
        try:
            query = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if not query:
            continue
        if query.lower() in {"exit", "quit"}:
            return
        result = asyncio.run(perform_query(query, size))
        pretty_print_result(query, result)


def pretty_print_result(query: str, result: SearchResult) -> None:
    if not result.success:
        print(f"Query: {query} | {RED}failed{RESET}: {result.error_message}")
        return
    print(f"Query: {query} | results: {len(result.products)}")
    for idx, product in enumerate(result.products, start=1):
        print(f"  {idx:02d}. rank={product.rank} | {product.brand} | {product.title}")


def pretty_print_index(result: IndexResult) -> None:
    if result.success:
        label = "already loaded" if result.already_loaded else f"indexed {result.total_indexed}"
        print(f"{GREEN}ok{RESET}: parsed={result.total_parsed} {label}")
    else:
        print(f"{RED}failed{RESET}: {result.error_message}")
    for line in result.errors:
        print(f"  - {line}")


def batch_mode(file_path: Path, size: int) -> None:
    with file_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            query = line.strip()
            if not query:
                continue
            result = asyncio.run(perform_query(query, size))
            pretty_print_result(query, result)


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CLI client for the layered product search")
    parser.add_argument("query", nargs="?", help="Query string. If omitted, starts REPL mode.")
    parser.add_argument("--batch", type=Path, help="File with queries to execute line by line")
    parser.add_argument("--size", type=int, default=DEFAULT_SIZE, help="Page size per layer")
    parser.add_argument("--index", type=Path, metavar="CSV", help="Load a CSV catalog into the index and exit")
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.index:
        result = asyncio.run(perform_index(args.index))
        pretty_print_index(result)
        return 0 if result.success else 1
    if args.batch:
        batch_mode(args.batch, args.size)
        return 0
    if args.query:
        result = asyncio.run(perform_query(args.query, args.size))
        pretty_print_result(args.query, result)
        return 0 if result.success else 1
    interactive_shell(args.size)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
