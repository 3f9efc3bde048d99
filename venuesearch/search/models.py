from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .config import DEFAULT_SEARCH_SETTINGS

DocumentT = TypeVar("DocumentT")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ProximityLocation(_CamelModel):
    near: tuple[float, float] = Field(..., description="[longitude, latitude]")
    max_distance: float | None = Field(default=None, ge=0, description="Meters")


class SearchConfig(_CamelModel):
    """Structured filters translated from a free-text query."""

    text_search: list[str] | None = None
    categories: list[str] | None = None
    visited: StrictBool | None = None
    is_claimed: StrictBool | None = None
    should_check_hours: StrictBool | None = None
    use_proximity: StrictBool | None = None
    location: ProximityLocation | None = None

    @field_validator("text_search", "categories")
    @classmethod
    def _drop_blank_terms(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return value
        return [term.strip() for term in value if term.strip()]


class UserLocation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    latitude: float = Field(..., ge=-90, le=90, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(
        ..., ge=-180, le=180, validation_alias=AliasChoices("longitude", "lng")
    )

    @property
    def lng_lat(self) -> tuple[float, float]:
        return (self.longitude, self.latitude)


class Viewport(BaseModel):
    """Map bounding box, corners given as [longitude, latitude]."""

    southwest: tuple[float, float]
    northeast: tuple[float, float]

    @model_validator(mode="after")
    def _check_corners(self) -> "Viewport":
        sw_lng, sw_lat = self.southwest
        ne_lng, ne_lat = self.northeast
        if not (
            ne_lng > sw_lng
            and ne_lat > sw_lat
            and -180 <= sw_lng <= 180
            and -180 <= ne_lng <= 180
        ):
            raise ValueError("Invalid viewport coordinates")
        return self


class SearchRequest(_CamelModel):
    query: str = Field(..., min_length=1, max_length=1000)
    viewport: Viewport | None = None
    user_location: UserLocation | None = None


class SearchResult(_CamelModel):
    results: list[dict[str, Any]]
    search_config: SearchConfig
    total_results: int


class SimilarityResult(BaseModel, Generic[DocumentT]):
    score: float
    document: DocumentT


class SemanticSearchRequest(_CamelModel):
    query: str = Field(..., min_length=1, max_length=1000)
    limit: int = Field(default=DEFAULT_SEARCH_SETTINGS.default_limit, ge=1, le=100)
    min_score: float = Field(default=DEFAULT_SEARCH_SETTINGS.default_min_score, ge=0.0, le=1.0)

    @field_validator("query")
    @classmethod
    def _strip_query(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Query must include some sort of text")
        return value.strip()


class EmbeddingRequest(BaseModel):
    text: str

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Must include some sort of text")
        return value.strip()


class UpdateEmbeddingsRequest(_CamelModel):
    business_aliases: list[str] | None = None
