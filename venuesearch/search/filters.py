"""
Build document-store filters from a translated SearchConfig.

The result is a MongoDB-style filter document; executing it is the store's job.
"""
from __future__ import annotations

import re
from typing import Any

from ..errors import parse_model
from .config import DEFAULT_SEARCH_SETTINGS, SearchSettings
from .models import SearchConfig, UserLocation, Viewport

NAME_FIELD = "yelpData.name"
NOTE_FIELD = "note"
CATEGORY_ALIAS_FIELD = "yelpData.categories.alias"
VISITED_FIELD = "visited"
CLAIMED_FIELD = "yelpData.is_claimed"
GEO_FIELD = "geoPoint"
LATITUDE_FIELD = "yelpData.coordinates.latitude"
LONGITUDE_FIELD = "yelpData.coordinates.longitude"

SEARCH_PROJECTION: dict[str, int] = {
    "alias": 1,
    "note": 1,
    "visited": 1,
    "url": 1,
    "yelpData.name": 1,
    "yelpData.categories": 1,
    "yelpData.coordinates": 1,
    "yelpData.location": 1,
    "yelpData.is_claimed": 1,
}


def _contains(term: str) -> dict[str, str]:
    # Literal, case-insensitive substring match
    return {"$regex": re.escape(term), "$options": "i"}


def _category_terms(config: SearchConfig, settings: SearchSettings) -> list[str]:
    return [
        c for c in config.categories or []
        if c.strip().lower() != settings.generic_category
    ]


def build_filter(
    config: SearchConfig,
    viewport: Viewport | dict | None = None,
    user_location: UserLocation | dict | None = None,
    settings: SearchSettings = DEFAULT_SEARCH_SETTINGS,
) -> dict[str, Any]:
    """
    Turn ``config`` into a filter document.

    Clauses are AND-ed at the top level. Proximity (user location plus
    ``useProximity``) takes precedence over the viewport box; with neither,
    no geographic clause is added.
    """
    viewport = parse_model(Viewport, viewport) if viewport is not None else None
    user_location = (
        parse_model(UserLocation, user_location) if user_location is not None else None
    )

    query: dict[str, Any] = {}
    and_conditions: list[dict[str, Any]] = []

    if config.text_search:
        query["$or"] = [
            *({NAME_FIELD: _contains(term)} for term in config.text_search),
            *({NOTE_FIELD: _contains(term)} for term in config.text_search),
        ]

    categories = _category_terms(config, settings)
    if categories:
        and_conditions.append(
            {"$or": [{CATEGORY_ALIAS_FIELD: _contains(c)} for c in categories]}
        )

    if config.visited is not None:
        query[VISITED_FIELD] = config.visited

    if config.is_claimed is not None:
        query[CLAIMED_FIELD] = config.is_claimed

    if user_location is not None and config.use_proximity:
        max_distance = config.location.max_distance if config.location else None
        query[GEO_FIELD] = {
            "$near": {
                "$geometry": {
                    "type": "Point",
                    "coordinates": [user_location.longitude, user_location.latitude],
                },
                "$maxDistance": max_distance or settings.default_max_distance,
            }
        }
    elif viewport is not None:
        query[LATITUDE_FIELD] = {"$gte": viewport.southwest[1], "$lte": viewport.northeast[1]}
        query[LONGITUDE_FIELD] = {"$gte": viewport.southwest[0], "$lte": viewport.northeast[0]}

    if and_conditions:
        query["$and"] = and_conditions

    return query


def build_projection(config: SearchConfig) -> dict[str, int]:
    projection = dict(SEARCH_PROJECTION)
    if config.should_check_hours:
        projection["yelpData.hours"] = 1
        projection["yelpData.is_closed"] = 1
    return projection
