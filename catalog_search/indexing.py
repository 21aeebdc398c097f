"""Index creation helpers."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .engine import SearchEngine
from .errors import EngineError, ErrorKind, ProvisioningError

logger = logging.getLogger(__name__)

ALREADY_EXISTS = "resource_already_exists_exception"


def _load_document(path: Path, label: str) -> Optional[Dict[str, Any]]:
    if not path.exists():
        logger.warning("Index %s file %s not found", label, path)
        return None
    try:
        with path.open("r", encoding="utf-8") as fh:
            document = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise ProvisioningError(f"Index {label} file {path} is not readable JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise ProvisioningError(f"Index {label} file {path} must contain a JSON object")
    return document


def load_index_documents(
    settings_path: str | Path, mappings_path: str | Path
) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
    """Read the settings and mappings artifacts; a missing file yields ``None``."""
    return (
        _load_document(Path(settings_path), "settings"),
        _load_document(Path(mappings_path), "mappings"),
    )


@dataclass(frozen=True)
class ProvisionResult:
    success: bool
    created: bool = False
    error_message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    def __bool__(self) -> bool:
        return self.success


class IndexProvisioner:
    """Creates an index from external settings/mappings, at most once."""

    def __init__(self, engine: SearchEngine) -> None:
        self.engine = engine

    async def ensure(
        self,
        index: str,
        settings_doc: Optional[Dict[str, Any]],
        mappings_doc: Optional[Dict[str, Any]],
    ) -> ProvisionResult:
        if not index:
            raise ValueError("index name must not be empty")

        try:
            exists = await self.engine.index_exists(index)
        except EngineError as exc:
            return self._failed(f"Failed to check index {index}: {exc.message}")
        if exists:
            logger.info("Index %s already exists", index)
            return ProvisionResult(success=True)

        missing = [
            label
            for label, document in (("settings", settings_doc), ("mappings", mappings_doc))
            if document is None
        ]
        if missing:
            return self._failed(
                f"Cannot create index {index}: missing index {' and '.join(missing)} document"
            )

        logger.info("Creating index %s with custom settings and mappings", index)
        try:
            await self.engine.create_index(index, settings_doc, mappings_doc)
        except EngineError as exc:
            if exc.error_type == ALREADY_EXISTS:
                logger.info("Index %s already exists", index)
                return ProvisionResult(success=True)
            return self._failed(exc.message)

        logger.info("Successfully created index %s", index)
        return ProvisionResult(success=True, created=True)

    def _failed(self, message: str) -> ProvisionResult:
        logger.error("Index provisioning failed: %s", message)
        return ProvisionResult(success=False, error_message=message, error_kind=ProvisioningError.kind)


async def index_is_empty(engine: SearchEngine, index: str) -> bool:
    if not await engine.index_exists(index):
        return True
    return await engine.count(index) == 0
