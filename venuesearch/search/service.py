from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from ..businesses.models import Business
from ..embeddings.config import DEFAULT_EMBEDDING_CONFIG, EmbeddingConfig
from ..embeddings.encoder import (
    create_embedding_for_business,
    generate_embedding,
    validate_embedding,
)
from ..errors import NotFoundError, ValidationError, parse_model
from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..llm.translator import translate
from ..store.base import BusinessStore, VectorCollection
from .config import DEFAULT_SEARCH_SETTINGS, SearchSettings
from .filters import build_filter, build_projection
from .hours import filter_open
from .models import SearchConfig, SearchResult, SimilarityResult, UserLocation, Viewport
from .semantic import similarity_search

logger = logging.getLogger(__name__)

Translator = Callable[..., Awaitable[SearchConfig]]


async def known_categories(store: BusinessStore) -> set[str]:
    return {category.alias for category in await store.unique_categories()}


async def translate_and_search(
    query: str,
    store: BusinessStore,
    viewport: Viewport | dict | None = None,
    user_location: UserLocation | dict | None = None,
    *,
    translator: Translator | None = None,
    llm_config: LLMConfig = DEFAULT_LLM_CONFIG,
    settings: SearchSettings = DEFAULT_SEARCH_SETTINGS,
    now: datetime | None = None,
) -> SearchResult:
    """
    Natural-language search: translate, build filters, query the store.

    Proximity to ``user_location`` wins over ``viewport`` when the translated
    configuration asks for it. Any failure propagates; there is no partial
    result.
    """
    if not query.strip():
        raise ValidationError("Query must include some sort of text")
    viewport = parse_model(Viewport, viewport) if viewport is not None else None
    user_location = (
        parse_model(UserLocation, user_location) if user_location is not None else None
    )

    categories = await known_categories(store)
    translator = translator or translate
    search_config = await translator(query, categories, user_location, config=llm_config)

    store_query = build_filter(search_config, viewport, user_location, settings)
    logger.debug("Store query: %s", json.dumps(store_query))

    results = await store.find(store_query, build_projection(search_config))
    if search_config.should_check_hours:
        results = filter_open(results, now or datetime.now(timezone.utc), settings)

    logger.info("%d results for query %r", len(results), query)
    return SearchResult(
        results=results,
        search_config=search_config,
        total_results=len(results),
    )


async def vector_search(
    query: str,
    collection_name: str,
    collections: Mapping[str, VectorCollection],
    limit: int = DEFAULT_SEARCH_SETTINGS.default_limit,
    min_score: float = DEFAULT_SEARCH_SETTINGS.default_min_score,
    config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG,
) -> list[SimilarityResult]:
    """Pure vector search against a named collection; bypasses translation."""
    collection = collections.get(collection_name)
    if collection is None:
        raise NotFoundError(f"Collection '{collection_name}' not found")
    return await similarity_search(query, collection, limit, min_score, config)


async def embed_text(
    text: str,
    config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG,
) -> list[float]:
    return validate_embedding(await generate_embedding(text, config), config.dimension)


async def embed_record(
    record: Business | dict[str, Any],
    config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG,
) -> list[float]:
    business = parse_model(Business, record)
    return validate_embedding(
        await create_embedding_for_business(business, config), config.dimension
    )
