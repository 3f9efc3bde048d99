from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SearchSettings:
    default_max_distance: float = 2000.0  # meters
    # numCandidates = limit * candidate_multiplier for the vector index
    candidate_multiplier: int = 10
    default_limit: int = 20
    default_min_score: float = 0.0
    generic_category: str = "restaurant"
    default_timezone: str = "America/Los_Angeles"


DEFAULT_SEARCH_SETTINGS = SearchSettings()
