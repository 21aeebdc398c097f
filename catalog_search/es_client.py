"""Elasticsearch client factory.

The rest of the code works against the official synchronous client. Blocking
calls are wrapped via ``asyncio.to_thread`` by :mod:`catalog_search.engine`.
Retry and timeout policy is fixed here, once, for every call.
"""
from __future__ import annotations

import logging
from functools import lru_cache

from elasticsearch import Elasticsearch

from .config import Settings, settings
from .engine import ElasticsearchEngine

logger = logging.getLogger(__name__)


def build_client(config: Settings) -> Elasticsearch:
    logger.info("Connecting to Elasticsearch at %s", config.es_host)
    options: dict = {
        "request_timeout": config.es_request_timeout,
        "max_retries": config.es_max_retries,
        "retry_on_timeout": True,
    }
    if config.es_username and config.es_password:
        options["basic_auth"] = (config.es_username, config.es_password)
    return Elasticsearch(config.es_host, **options)


@lru_cache(maxsize=1)
def get_client() -> Elasticsearch:
    return build_client(settings)


def get_engine() -> ElasticsearchEngine:
    return ElasticsearchEngine(get_client())
