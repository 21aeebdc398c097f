"""CSV catalog reader that turns raw rows into :class:`Product` records."""
from __future__ import annotations

import csv
import io
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from .errors import ParseError, ParseRowError, SourceNotFound
from .models import Product
from .utils import clean_text, parse_bool, parse_float, parse_int, parse_string_list

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 1000
TEXT_COLUMNS = (
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
)
LIST_COLUMNS = ("categories", "delivery", "features")


@dataclass
class ParsedCatalog:
    products: List[Product] = field(default_factory=list)
    rows_read: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def rows_skipped(self) -> int:
        return len(self.errors)


def _new_id() -> str:
    return str(uuid.uuid4())


def _prepare_product(raw: Dict[Optional[str], object], product_id: str) -> Product:
    document: dict = {"id": product_id}
    for column in TEXT_COLUMNS:
        document[column] = clean_text(raw.get(column))
    for column in LIST_COLUMNS:
        document[column] = parse_string_list(raw.get(column))
    document["reviews_count"] = parse_int(raw.get("reviews_count"))
    document["rank"] = parse_int(raw.get("rank"))
    document["rating"] = parse_float(raw.get("rating"))
    document["is_available"] = parse_bool(raw.get("is_available"))
    return Product(**document)


def _read_source(path: Path) -> str:
    if not path.exists():
        raise SourceNotFound(f"CSV file not found at {path}")
    # undecodable bytes become U+FFFD so one bad cell never fails the file
    try:
        return path.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as exc:
        raise ParseError(f"Failed to read CSV file {path}: {exc}") from exc


def parse_catalog(path: str | Path, id_factory: Optional[Callable[[], str]] = None) -> ParsedCatalog:
    """Parse a header-first CSV file.

    Bad rows are logged and skipped; only an unreadable file is fatal.
    """
    source = Path(path)
    text = _read_source(source)
    reader = csv.DictReader(io.StringIO(text, newline=""))
    catalog = ParsedCatalog()
    make_id = id_factory or _new_id

    row_number = 0
    while True:
        row_number += 1
        try:
            raw = next(reader)
            if None in raw:
                logger.warning("Bad data found at row %s: %s extra field(s)", row_number, len(raw[None]))
            try:
                catalog.products.append(_prepare_product(raw, make_id()))
            except (ValidationError, TypeError, ValueError) as exc:
                raise ParseRowError(row_number, str(exc)) from exc
        except StopIteration:
            break
        except csv.Error as exc:
            error = ParseRowError(row_number, str(exc))
            logger.error("%s", error.message)
            catalog.errors.append(error.message)
        except ParseRowError as error:
            logger.error("%s", error.message)
            catalog.errors.append(error.message)
        catalog.rows_read = row_number
        if row_number % PROGRESS_EVERY == 0:
            logger.info(
                "CSV parsing progress: %s rows processed, %s products parsed",
                row_number,
                len(catalog.products),
            )

    logger.info(
        "Parsed %s products from %s (processed %s rows, skipped %s)",
        len(catalog.products),
        source,
        catalog.rows_read,
        catalog.rows_skipped,
    )
    return catalog
