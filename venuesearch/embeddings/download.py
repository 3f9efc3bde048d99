"""
Fetch the embedding model into the local cache ahead of the first request.

Usage:
    python -m venuesearch.embeddings.download
"""
from __future__ import annotations

import logging

from .config import DEFAULT_EMBEDDING_CONFIG, EmbeddingConfig
from .encoder import _get_model

logger = logging.getLogger(__name__)


def download_model(config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG) -> None:
    config.cache_dir.mkdir(parents=True, exist_ok=True)
    _get_model(config)
    logger.info("Model %s cached in %s", config.model_name, config.cache_dir)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    download_model()
    print(f"Model downloaded to: {DEFAULT_EMBEDDING_CONFIG.cache_dir}")
