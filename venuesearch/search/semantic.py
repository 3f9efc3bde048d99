from __future__ import annotations

import logging

from ..embeddings.config import DEFAULT_EMBEDDING_CONFIG, EmbeddingConfig
from ..embeddings.encoder import generate_embedding, validate_embedding
from ..errors import ValidationError, parse_model
from ..store.base import VectorCollection
from .config import DEFAULT_SEARCH_SETTINGS, SearchSettings
from .models import SimilarityResult

logger = logging.getLogger(__name__)


async def similarity_search(
    query: str,
    collection: VectorCollection,
    limit: int = DEFAULT_SEARCH_SETTINGS.default_limit,
    min_score: float = DEFAULT_SEARCH_SETTINGS.default_min_score,
    config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG,
    settings: SearchSettings = DEFAULT_SEARCH_SETTINGS,
) -> list[SimilarityResult]:
    """
    Nearest documents to ``query`` in ``collection``, most similar first.

    The index is asked for ``limit * candidate_multiplier`` candidates narrowed
    to ``limit`` hits. Only hits scoring strictly above ``min_score`` are kept;
    the index order is preserved.
    """
    if limit < 1:
        raise ValidationError("limit must be at least 1")

    query_embedding = validate_embedding(
        await generate_embedding(query, config), config.dimension
    )

    hits = await collection.vector_search(
        query_embedding,
        limit=limit,
        num_candidates=limit * settings.candidate_multiplier,
    )

    result_model = SimilarityResult[collection.document_model]
    results = [
        result_model(
            score=float(hit["score"]),
            document=parse_model(collection.document_model, hit["document"]),
        )
        for hit in hits
        if float(hit["score"]) > min_score
    ]
    logger.info(
        "%d of %d hits above %.3f for query %r in %s",
        len(results),
        len(hits),
        min_score,
        query,
        collection.name,
    )
    return results
