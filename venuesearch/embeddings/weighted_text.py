"""
Weighted text rendering for business embeddings.

Each field is repeated ``weight`` times so the sentence encoder gives it
proportionally more influence. The output must be byte-identical for identical
records, otherwise stored embeddings drift between regenerations.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from ..businesses.models import Business

SEPARATOR = " | "
HIGHLY_RATED_THRESHOLD = 4.0


@dataclass(frozen=True)
class WeightedField:
    value: str | None
    weight: int
    preprocessor: Callable[[str], str] | None = None


def render_weighted_text(fields: Iterable[WeightedField]) -> str:
    tokens: list[str] = []
    for field in fields:
        if not field.value:
            continue
        rendered = field.preprocessor(field.value) if field.preprocessor else field.value
        tokens.extend([rendered] * field.weight)
    return SEPARATOR.join(tokens).lower()


def _format_number(value: float | int) -> str:
    # 4.0 -> "4", 4.5 -> "4.5"
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _city_state(business: Business) -> str | None:
    location = business.yelpData.location if business.yelpData else None
    if location is None:
        return None
    parts = [p for p in (location.city, location.state) if p]
    return ", ".join(parts) or None


def _rating_summary(business: Business) -> str | None:
    data = business.yelpData
    if data is None or data.rating is None:
        return None
    summary = f"rating {_format_number(data.rating)} stars"
    if data.review_count is not None:
        summary += f" with {data.review_count} reviews"
    return summary


def _label(flag: bool | None, yes: str, no: str) -> str | None:
    if flag is None:
        return None
    return yes if flag else no


def business_fields(business: Business) -> list[WeightedField]:
    """The nine weighted fields of a business, in rendering order."""
    data = business.yelpData
    categories = data.categories if data else []
    rating = data.rating if data else None

    return [
        # High importance
        WeightedField(data.name if data else None, 3),
        WeightedField(", ".join(c.title for c in categories if c.title), 3),
        WeightedField(business.note, 3),
        # Medium importance
        WeightedField(
            "highly rated restaurant"
            if rating is not None and rating >= HIGHLY_RATED_THRESHOLD
            else None,
            2,
        ),
        WeightedField(_label(business.visited, "visited", "not visited"), 2),
        WeightedField(_label(data.is_claimed if data else None, "claimed", "unclaimed"), 2),
        # Standard importance
        WeightedField(_city_state(business), 1),
        WeightedField(_rating_summary(business), 1),
        WeightedField(" ".join(c.alias for c in categories if c.alias), 1),
    ]


def business_embedding_text(business: Business) -> str:
    return render_weighted_text(business_fields(business))
