"""
Regenerate stored business embeddings.

Usage:
    python -m venuesearch.embeddings.precompute [alias ...]
"""
from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..businesses.models import Business, EmbeddingUpdate
from ..errors import VenueSearchError
from ..store.base import BusinessStore
from .config import DEFAULT_EMBEDDING_CONFIG, EmbeddingConfig
from .encoder import create_embedding_for_business, validate_embedding
from .pool import BoundedTaskPool

logger = logging.getLogger(__name__)


async def regenerate_embeddings(
    store: BusinessStore,
    aliases: list[str] | None = None,
    config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG,
) -> list[EmbeddingUpdate]:
    """
    Recompute and persist embeddings for ``aliases`` (all businesses if None).

    Individual failures are logged and reported per alias; they do not stop
    the remaining updates.
    """
    documents = await store.get_many(aliases)
    found = {doc.get("alias") for doc in documents}
    missing = [
        EmbeddingUpdate(alias=alias, success=False, error="Business not found")
        for alias in aliases or []
        if alias not in found
    ]

    async def _update(document: dict[str, Any]) -> EmbeddingUpdate:
        alias = str(document.get("alias", ""))
        try:
            # The stored vector is about to be replaced, don't validate it
            business = Business.model_validate(
                {k: v for k, v in document.items() if k != "embedding"}
            )
            embedding = await create_embedding_for_business(business, config)
            embedding = validate_embedding(embedding, config.dimension)
            await store.set_embedding(business.alias, embedding)
        except (VenueSearchError, PydanticValidationError) as exc:
            logger.warning("Embedding update failed for %s", alias, exc_info=True)
            return EmbeddingUpdate(alias=alias, success=False, error=str(exc))
        return EmbeddingUpdate(alias=alias, success=True)

    pool = BoundedTaskPool(config.max_concurrency)
    updates = await pool.map(_update, documents)

    succeeded = sum(1 for u in updates if u.success)
    logger.info(
        "Regenerated %d of %d embeddings (%d aliases not found)",
        succeeded,
        len(updates),
        len(missing),
    )
    return updates + missing


def run_precompute(aliases: list[str] | None = None) -> list[EmbeddingUpdate]:
    from ..store.data_store import get_store

    return asyncio.run(regenerate_embeddings(get_store(), aliases or None))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    results = run_precompute(sys.argv[1:])
    failed = [r for r in results if not r.success]
    print(f"Updated {len(results) - len(failed)} embeddings, {len(failed)} failed")
    for r in failed:
        print(f"  {r.alias}: {r.error}")
