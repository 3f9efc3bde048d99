from __future__ import annotations

import asyncio
import logging
import math
import threading
from collections.abc import Sequence
from typing import Any

import numpy as np
from sentence_transformers import SentenceTransformer

from ..businesses.models import Business
from ..errors import UpstreamUnavailableError, ValidationError
from .config import DEFAULT_EMBEDDING_CONFIG, EmbeddingConfig
from .weighted_text import business_embedding_text

logger = logging.getLogger(__name__)

_models: dict[str, SentenceTransformer] = {}
_model_lock = threading.Lock()


def _get_model(config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG) -> SentenceTransformer:
    """Return the sentence-transformer, downloading it into the cache on first use."""
    model = _models.get(config.model_name)
    if model is not None:
        return model
    # Inference runs in worker threads; only one of them may load the model
    with _model_lock:
        model = _models.get(config.model_name)
        if model is None:
            logger.info("Loading embedding model %s", config.model_name)
            try:
                model = SentenceTransformer(
                    config.model_name, cache_folder=str(config.cache_dir)
                )
            except Exception as exc:
                raise UpstreamUnavailableError("Embedding model is unavailable") from exc
            _models[config.model_name] = model
    return model


def _to_numpy(tensor: Any) -> np.ndarray:
    if hasattr(tensor, "detach"):
        tensor = tensor.detach().cpu().numpy()
    return np.asarray(tensor, dtype=np.float32)


def mean_pool(token_embeddings: np.ndarray) -> np.ndarray:
    """Average a ``(batch, tokens, dim)`` array over the token axis and flatten it."""
    if token_embeddings.ndim != 3:
        raise UpstreamUnavailableError(
            f"Unexpected embedding output shape {token_embeddings.shape}, expected (batch, tokens, dim)"
        )
    return token_embeddings.mean(axis=1).flatten()


def _token_embeddings(text: str, config: EmbeddingConfig) -> np.ndarray:
    model = _get_model(config)
    try:
        outputs = model.encode(
            [text],
            output_value="token_embeddings",
            show_progress_bar=False,
        )
    except Exception as exc:
        raise UpstreamUnavailableError("Embedding inference failed") from exc
    return np.stack([_to_numpy(t) for t in outputs])


def validate_embedding(
    vector: Sequence[float],
    dimension: int = DEFAULT_EMBEDDING_CONFIG.dimension,
) -> list[float]:
    """Return ``vector`` as a list if it has ``dimension`` finite components."""
    if len(vector) != dimension:
        raise ValidationError(
            f"Invalid embedding dimension. Expected {dimension}, got {len(vector)}"
        )
    values = [float(v) for v in vector]
    if not all(math.isfinite(v) for v in values):
        raise ValidationError("Embedding contains non-finite components")
    return values


async def generate_embedding(
    text: str,
    config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG,
) -> list[float]:
    """Encode ``text`` into a single mean-pooled vector.

    Inference runs in a worker thread; every call recomputes.
    """
    token_embeddings = await asyncio.to_thread(_token_embeddings, text, config)
    return mean_pool(token_embeddings).tolist()


async def create_embedding_for_business(
    business: Business,
    config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG,
) -> list[float]:
    text = business_embedding_text(business)
    logger.debug("Embedding text for %s: %s", business.alias, text)
    return await generate_embedding(text, config)
