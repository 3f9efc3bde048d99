"""
In-memory business store backed by a pandas DataFrame.

Evaluates the subset of filter operators the search layer emits ($or, $and,
$regex, equality, $gte/$lte ranges and $near) as boolean masks, and answers
vector queries with exact cosine similarity.
"""
from __future__ import annotations

import copy
import json
import re
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from sklearn.metrics.pairwise import cosine_similarity

from ..businesses.models import EMBEDDING_DIMENSION, Business, Category
from ..embeddings.encoder import validate_embedding
from ..errors import NotFoundError, ValidationError

EARTH_RADIUS_M = 6_371_008.8


def _haversine(lng: np.ndarray, lat: np.ndarray, origin: tuple[float, float]) -> np.ndarray:
    """Great-circle distance in meters from ``origin`` ([lng, lat]) to each point."""
    lng0, lat0 = np.radians(origin[0]), np.radians(origin[1])
    lng, lat = np.radians(lng), np.radians(lat)
    a = (
        np.sin((lat - lat0) / 2) ** 2
        + np.cos(lat0) * np.cos(lat) * np.sin((lng - lng0) / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * np.arcsin(np.sqrt(a))


def _regex_matches(pattern: re.Pattern[str], value: Any) -> bool:
    if isinstance(value, str):
        return bool(pattern.search(value))
    if isinstance(value, (list, tuple)):
        return any(isinstance(v, str) and pattern.search(v) for v in value)
    return False


def _copy_path(source: dict[str, Any], target: dict[str, Any], parts: list[str]) -> None:
    key = parts[0]
    if key not in source:
        return
    if len(parts) == 1:
        target[key] = copy.deepcopy(source[key])
    elif isinstance(source[key], dict):
        _copy_path(source[key], target.setdefault(key, {}), parts[1:])


def _delete_path(document: dict[str, Any], parts: list[str]) -> None:
    key = parts[0]
    if len(parts) == 1:
        document.pop(key, None)
    elif isinstance(document.get(key), dict):
        _delete_path(document[key], parts[1:])


def _project(document: dict[str, Any], projection: dict[str, int] | None) -> dict[str, Any]:
    if not projection:
        return copy.deepcopy(document)
    if any(projection.values()):
        projected: dict[str, Any] = {}
        if "_id" in document and projection.get("_id", 1):
            projected["_id"] = document["_id"]
        for path, include in projection.items():
            if include:
                _copy_path(document, projected, path.split("."))
        return projected
    projected = copy.deepcopy(document)
    for path in projection:
        _delete_path(projected, path.split("."))
    return projected


class InMemoryBusinessStore:
    document_model = Business

    def __init__(self, documents: Iterable[dict[str, Any]] = (), name: str = "businesses") -> None:
        self.name = name
        self._documents: list[dict[str, Any]] = []
        for index, raw in enumerate(documents):
            business = Business.model_validate(raw)
            document = business.model_dump(mode="json", by_alias=True, exclude_none=True)
            document.setdefault("_id", business.alias)
            document.setdefault("addedIndex", index)
            self._documents.append(document)
        self._df: pd.DataFrame | None = None

    @classmethod
    def from_json(cls, path: Path, name: str = "businesses") -> "InMemoryBusinessStore":
        with open(path, encoding="utf-8") as fh:
            return cls(json.load(fh), name=name)

    # ------------------------------------------------------------------
    # Frame
    # ------------------------------------------------------------------

    def _frame(self) -> pd.DataFrame:
        if self._df is None:
            df = pd.json_normalize(self._documents)
            # Category aliases as a list per row, like the Mongo multikey path
            df["yelpData.categories.alias"] = [
                [c.get("alias", "") for c in cats] if isinstance(cats, list) else []
                for cats in self._column(df, "yelpData.categories")
            ]
            self._df = df
        return self._df

    def _column(self, df: pd.DataFrame, field: str) -> pd.Series:
        if field in df.columns:
            return df[field]
        return pd.Series([None] * len(df), index=df.index, dtype=object)

    def _field_mask(self, df: pd.DataFrame, field: str, condition: Any) -> pd.Series:
        column = self._column(df, field)
        if not isinstance(condition, dict):
            return column.apply(lambda v: v == condition).astype(bool)

        if "$regex" in condition:
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            pattern = re.compile(condition["$regex"], flags)
            return column.apply(lambda v: _regex_matches(pattern, v)).astype(bool)

        numeric = pd.to_numeric(column, errors="coerce")
        mask = pd.Series(True, index=df.index)
        for operator, value in condition.items():
            if operator == "$gte":
                mask &= numeric >= value
            elif operator == "$lte":
                mask &= numeric <= value
            else:
                raise ValidationError(f"Unsupported filter operator {operator}")
        return mask

    def _mask(self, df: pd.DataFrame, query: dict[str, Any]) -> pd.Series:
        mask = pd.Series(True, index=df.index)
        for key, condition in query.items():
            if key == "$or":
                any_mask = pd.Series(False, index=df.index)
                for clause in condition:
                    any_mask |= self._mask(df, clause)
                mask &= any_mask
            elif key == "$and":
                for clause in condition:
                    mask &= self._mask(df, clause)
            else:
                mask &= self._field_mask(df, key, condition)
        return mask

    def _distances(self, df: pd.DataFrame, field: str, near: dict[str, Any]) -> pd.Series:
        points = self._column(df, f"{field}.coordinates")
        lng = np.array([p[0] if isinstance(p, (list, tuple)) else np.nan for p in points], dtype=float)
        lat = np.array([p[1] if isinstance(p, (list, tuple)) else np.nan for p in points], dtype=float)
        origin = near["$geometry"]["coordinates"]
        return pd.Series(_haversine(lng, lat, (origin[0], origin[1])), index=df.index)

    # ------------------------------------------------------------------
    # BusinessStore
    # ------------------------------------------------------------------

    async def find(
        self,
        query: dict[str, Any],
        projection: dict[str, int] | None = None,
    ) -> list[dict[str, Any]]:
        if not self._documents:
            return []
        df = self._frame()

        query = dict(query)
        near_field = next(
            (k for k, v in query.items() if isinstance(v, dict) and "$near" in v), None
        )
        near = query.pop(near_field)["$near"] if near_field else None

        mask = self._mask(df, query)
        if near is not None:
            distances = self._distances(df, near_field, near)
            mask &= distances <= near["$maxDistance"]
            # $near returns nearest first
            index = distances[mask].sort_values(kind="stable").index
        else:
            index = df.index[mask]

        return [_project(self._documents[i], projection) for i in index]

    async def vector_search(
        self,
        vector: list[float],
        *,
        limit: int,
        num_candidates: int,
    ) -> list[dict[str, Any]]:
        embedded = [doc for doc in self._documents if doc.get("embedding")]
        if not embedded:
            return []

        matrix = np.array([doc["embedding"] for doc in embedded], dtype=float)
        similarities = cosine_similarity(np.array([vector], dtype=float), matrix).flatten()
        # Same [0, 1] scale as the Atlas cosine score
        scores = (similarities + 1.0) / 2.0

        order = np.argsort(-scores, kind="stable")[:num_candidates][:limit]
        return [
            {"score": float(scores[i]), "document": copy.deepcopy(embedded[i])}
            for i in order
        ]

    async def unique_categories(self) -> list[Category]:
        titles: dict[str, str] = {}
        for doc in self._documents:
            for category in doc.get("yelpData", {}).get("categories", []):
                titles.setdefault(category["alias"], category.get("title", ""))
        return [Category(alias=alias, title=titles[alias]) for alias in sorted(titles)]

    async def get_many(self, aliases: list[str] | None = None) -> list[dict[str, Any]]:
        wanted = set(aliases) if aliases is not None else None
        return [
            _project(doc, {"embedding": 0})
            for doc in self._documents
            if wanted is None or doc["alias"] in wanted
        ]

    async def set_embedding(self, alias: str, embedding: list[float]) -> None:
        embedding = validate_embedding(embedding, EMBEDDING_DIMENSION)
        for doc in self._documents:
            if doc["alias"] == alias:
                doc["embedding"] = embedding
                doc["lastUpdated"] = datetime.now(timezone.utc).isoformat()
                self._df = None
                return
        raise NotFoundError(f"Business '{alias}' not found")
