from __future__ import annotations

import json

from venuesearch.businesses.models import Business, YelpData
from venuesearch.embeddings.weighted_text import (
    WeightedField,
    business_embedding_text,
    render_weighted_text,
)
from venuesearch.tests.fixtures import BUSINESSES_JSON


def _business(alias: str) -> Business:
    documents = json.loads(BUSINESSES_JSON.read_text(encoding="utf-8"))
    return Business.model_validate(next(d for d in documents if d["alias"] == alias))


def test_full_record_renders_weighted_fields_in_order():
    text = business_embedding_text(_business("flour-water-san-francisco"))

    assert text == " | ".join(
        ["flour + water"] * 3
        + ["italian, pizza"] * 3
        + ["amazing pasta tasting menu"] * 3
        + ["highly rated restaurant"] * 2
        + ["visited"] * 2
        + ["claimed"] * 2
        + ["san francisco, ca"]
        + ["rating 4.5 stars with 3000 reviews"]
        + ["italian pizza"]
    )


def test_rendering_is_deterministic():
    business = _business("la-taqueria-san-francisco")
    assert business_embedding_text(business) == business_embedding_text(business)
    assert business_embedding_text(business) == business_embedding_text(
        Business.model_validate(business.model_dump())
    )


def test_all_fields_absent_renders_empty_string():
    assert business_embedding_text(Business(alias="empty")) == ""


def test_missing_source_block_keeps_note_and_visited():
    business = _business("friends-secret-spot")
    assert business.yelpData is None
    assert business_embedding_text(business) == " | ".join(
        ["friend says the dumplings are great"] * 3
    )

    business.visited = False
    assert business_embedding_text(business).endswith("not visited | not visited")


def test_low_rating_and_unclaimed_labels():
    text = business_embedding_text(_business("golden-boy-pizza-san-francisco"))

    assert "highly rated restaurant" not in text
    assert text.count("not visited") == 2
    assert text.count("unclaimed") == 2
    assert "rating 3.9 stars with 4000 reviews" in text


def test_whole_number_rating_has_no_decimal():
    business = Business(
        alias="x",
        yelpData=YelpData(name="Spot", rating=4.0, review_count=10),
    )
    text = business_embedding_text(business)
    assert "rating 4 stars with 10 reviews" in text
    assert text.count("highly rated restaurant") == 2


def test_render_repeats_contiguously_and_skips_empty_values():
    fields = [
        WeightedField("Alpha", 2),
        WeightedField(None, 3),
        WeightedField("", 1),
        WeightedField("beta", 1, preprocessor=lambda v: f"<{v}>"),
    ]
    assert render_weighted_text(fields) == "alpha | alpha | <beta>"
