from __future__ import annotations

import math
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMBEDDING_DIMENSION = 384


class Category(BaseModel):
    alias: str
    title: str = ""


class Coordinates(BaseModel):
    latitude: float | None = None
    longitude: float | None = None


class Address(BaseModel):
    address1: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    timezone: str | None = None


class OpenPeriod(BaseModel):
    start: str = Field(..., pattern=r"^\d{4}$", description="HHMM, local time")
    end: str = Field(..., pattern=r"^\d{4}$", description="HHMM, local time")
    day: int = Field(..., ge=0, le=6, description="0 is Monday")


class Hours(BaseModel):
    open: list[OpenPeriod] = Field(default_factory=list)


class YelpData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    image_url: str | None = None
    rating: float | None = None
    review_count: int | None = None
    is_claimed: bool | None = None
    is_closed: bool | None = None
    coordinates: Coordinates | None = None
    location: Address | None = None
    categories: list[Category] = Field(default_factory=list)
    hours: list[Hours] | None = None


class GeoPoint(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float] = Field(..., description="[longitude, latitude]")


class Business(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | None = Field(default=None, alias="_id")
    alias: str = Field(..., min_length=1)
    note: str | None = None
    addedIndex: int | None = None
    visited: bool | None = None
    url: str | None = None
    collectionId: str | None = None
    lastUpdated: datetime | None = None
    geoPoint: GeoPoint | None = None
    embedding: list[float] | None = None
    yelpData: YelpData | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_object_id(cls, value: object) -> object:
        # Mongo ObjectId and similar wrappers
        if value is not None and not isinstance(value, str):
            return str(value)
        return value

    @field_validator("embedding")
    @classmethod
    def _check_embedding(cls, value: list[float] | None) -> list[float] | None:
        if value is None:
            return value
        if len(value) != EMBEDDING_DIMENSION:
            raise ValueError(
                f"Embedding must have exactly {EMBEDDING_DIMENSION} dimensions, got {len(value)}"
            )
        if not all(math.isfinite(v) for v in value):
            raise ValueError("Embedding components must be finite numbers")
        return value


class EmbeddingUpdate(BaseModel):
    alias: str
    success: bool
    error: str | None = None
