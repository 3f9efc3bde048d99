from __future__ import annotations

import logging

from ..errors import ValidationError
from .base import BusinessStore, VectorCollection
from .config import DEFAULT_STORE_CONFIG, StoreConfig
from .memory import InMemoryBusinessStore
from .mongo import MongoBusinessStore

logger = logging.getLogger(__name__)

_store: BusinessStore | None = None


def _create(config: StoreConfig) -> BusinessStore:
    if config.backend == "mongo":
        return MongoBusinessStore(config)
    if config.backend == "memory":
        logger.info("Loading businesses from %s", config.data_path)
        return InMemoryBusinessStore.from_json(config.data_path, name=config.businesses_collection)
    raise ValidationError(f"Unknown store backend '{config.backend}'")


def get_store(config: StoreConfig = DEFAULT_STORE_CONFIG) -> BusinessStore:
    """Return the process-wide business store, creating it on first call."""
    global _store
    if _store is None:
        _store = _create(config)
    return _store


def set_store(store: BusinessStore | None) -> None:
    global _store
    _store = store


def get_collections() -> dict[str, VectorCollection]:
    """Collections that carry a vector index, by name."""
    store = get_store()
    return {store.name: store}


async def close_store() -> None:
    """Release the process-wide store's connections, if it holds any."""
    global _store
    store, _store = _store, None
    close = getattr(store, "close", None)
    if close is not None:
        logger.info("Closing business store")
        await close()
