from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from ..businesses.models import Business, Category
from ..errors import NotFoundError, UpstreamUnavailableError
from .config import DEFAULT_STORE_CONFIG, StoreConfig

logger = logging.getLogger(__name__)


def _serialize(document: dict[str, Any]) -> dict[str, Any]:
    if "_id" in document:
        document["_id"] = str(document["_id"])
    return document


class MongoBusinessStore:
    """Businesses in MongoDB, searched through an Atlas vector index."""

    document_model = Business

    def __init__(
        self,
        config: StoreConfig = DEFAULT_STORE_CONFIG,
        client: AsyncMongoClient | None = None,
    ) -> None:
        self.config = config
        self.name = config.businesses_collection
        self._client = client or AsyncMongoClient(config.mongodb_uri)
        self._collection = self._client[config.database][config.businesses_collection]

    async def find(
        self,
        query: dict[str, Any],
        projection: dict[str, int] | None = None,
    ) -> list[dict[str, Any]]:
        try:
            documents = await self._collection.find(query, projection).to_list(None)
        except PyMongoError as exc:
            logger.error("Business query failed: %s", exc)
            raise UpstreamUnavailableError("Document store query failed") from exc
        return [_serialize(doc) for doc in documents]

    async def vector_search(
        self,
        vector: list[float],
        *,
        limit: int,
        num_candidates: int,
    ) -> list[dict[str, Any]]:
        pipeline = [
            {
                "$vectorSearch": {
                    "index": self.config.vector_index,
                    "path": self.config.embedding_path,
                    "queryVector": vector,
                    "numCandidates": num_candidates,
                    "limit": limit,
                }
            },
            {
                "$project": {
                    "score": {"$meta": "vectorSearchScore"},
                    "document": "$$ROOT",
                }
            },
        ]
        try:
            cursor = await self._collection.aggregate(pipeline)
            hits = await cursor.to_list(None)
        except PyMongoError as exc:
            logger.error("Vector search failed: %s", exc)
            raise UpstreamUnavailableError("Document store vector search failed") from exc
        return [
            {"score": hit["score"], "document": _serialize(hit["document"])}
            for hit in hits
        ]

    async def unique_categories(self) -> list[Category]:
        pipeline = [
            {"$unwind": "$yelpData.categories"},
            {
                "$group": {
                    "_id": "$yelpData.categories.alias",
                    "title": {"$first": "$yelpData.categories.title"},
                }
            },
            {"$sort": {"_id": 1}},
        ]
        try:
            cursor = await self._collection.aggregate(pipeline)
            groups = await cursor.to_list(None)
        except PyMongoError as exc:
            raise UpstreamUnavailableError("Document store query failed") from exc
        return [Category(alias=g["_id"], title=g.get("title") or "") for g in groups if g["_id"]]

    async def get_many(self, aliases: list[str] | None = None) -> list[dict[str, Any]]:
        query = {"alias": {"$in": aliases}} if aliases is not None else {}
        return await self.find(query, {"embedding": 0})

    async def set_embedding(self, alias: str, embedding: list[float]) -> None:
        try:
            result = await self._collection.update_one(
                {"alias": alias},
                {"$set": {"embedding": embedding, "lastUpdated": datetime.now(timezone.utc)}},
            )
        except PyMongoError as exc:
            raise UpstreamUnavailableError("Document store update failed") from exc
        if result.matched_count == 0:
            raise NotFoundError(f"Business '{alias}' not found")

    async def close(self) -> None:
        await self._client.close()
