from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from ..businesses.models import Category


@runtime_checkable
class VectorCollection(Protocol):
    """A named collection with a vector index over its ``embedding`` field."""

    name: str
    document_model: type[BaseModel]

    async def vector_search(
        self,
        vector: list[float],
        *,
        limit: int,
        num_candidates: int,
    ) -> list[dict[str, Any]]:
        """Return ``{"score", "document"}`` hits, most similar first."""
        ...


@runtime_checkable
class BusinessStore(VectorCollection, Protocol):
    async def find(
        self,
        query: dict[str, Any],
        projection: dict[str, int] | None = None,
    ) -> list[dict[str, Any]]:
        ...

    async def unique_categories(self) -> list[Category]:
        ...

    async def get_many(self, aliases: list[str] | None = None) -> list[dict[str, Any]]:
        """Full documents for ``aliases``, or every document when None."""
        ...

    async def set_embedding(self, alias: str, embedding: list[float]) -> None:
        ...
