from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from groq import APIConnectionError

from venuesearch.errors import UpstreamFormatError, UpstreamUnavailableError, ValidationError
from venuesearch.llm.config import LLMConfig
from venuesearch.llm.translator import (
    build_system_prompt,
    enforce_rules,
    parse_json,
    translate,
    validate_search_config,
)
from venuesearch.search.models import SearchConfig, UserLocation
from venuesearch.tests.fixtures import SF_LOCATION

KNOWN_CATEGORIES = {"italian", "chinese", "mexican", "pizza"}
ENABLED_CONFIG = LLMConfig(api_key="test-key", enabled=True)
DISABLED_CONFIG = LLMConfig(api_key="test-key", enabled=False)
USER_LOCATION = UserLocation(**SF_LOCATION)


def _mock_groq_response(content: str | None) -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


def _client(mock_groq_cls: MagicMock) -> MagicMock:
    # `async with AsyncGroq(...) as client` yields the instance itself
    client = mock_groq_cls.return_value
    client.__aenter__.return_value = client
    client.__aexit__.return_value = False
    return client


def _install(mock_groq_cls: MagicMock, content: str | None) -> AsyncMock:
    create = AsyncMock(return_value=_mock_groq_response(content))
    _client(mock_groq_cls).chat.completions.create = create
    return create


# ── Scenarios ────────────────────────────────────────────────────────────


class TestTranslate:
    @patch("venuesearch.llm.translator.AsyncGroq")
    def test_near_me_with_user_location(self, mock_groq_cls):
        _install(mock_groq_cls, json.dumps({
            "categories": ["italian"],
            "useProximity": True,
            "location": {"near": [-122.4194, 37.7749]},
        }))

        config = asyncio.run(translate(
            "italian restaurants near me", KNOWN_CATEGORIES, USER_LOCATION, config=ENABLED_CONFIG,
        ))

        assert config.categories == ["italian"]
        assert config.use_proximity is True
        assert config.location.near == (-122.4194, 37.7749)

    @patch("venuesearch.llm.translator.AsyncGroq")
    def test_near_me_without_user_location_never_sets_proximity(self, mock_groq_cls):
        _install(mock_groq_cls, json.dumps({"categories": ["italian"], "useProximity": True}))

        config = asyncio.run(translate(
            "italian restaurants near me", KNOWN_CATEGORIES, None, config=ENABLED_CONFIG,
        ))

        assert not config.use_proximity
        assert config.categories == ["italian"]

    @patch("venuesearch.llm.translator.AsyncGroq")
    def test_generic_restaurant_category_is_dropped(self, mock_groq_cls):
        _install(mock_groq_cls, json.dumps({
            "textSearch": ["carbonara"],
            "categories": ["italian", "restaurant", "Restaurants"],
        }))

        config = asyncio.run(translate(
            "italian restaurant with carbonara", KNOWN_CATEGORIES, config=ENABLED_CONFIG,
        ))

        assert config.categories == ["italian"]
        assert config.text_search == ["carbonara"]

    @patch("venuesearch.llm.translator.AsyncGroq")
    def test_proximity_fills_location_from_user(self, mock_groq_cls):
        _install(mock_groq_cls, json.dumps({"useProximity": True, "location": {"near": [0, 0], "maxDistance": 800}}))

        config = asyncio.run(translate(
            "tacos within half a mile", KNOWN_CATEGORIES, USER_LOCATION, config=ENABLED_CONFIG,
        ))

        assert config.location.near == (-122.4194, 37.7749)
        assert config.location.max_distance == 800

    @patch("venuesearch.llm.translator.AsyncGroq")
    def test_request_is_single_deterministic_turn(self, mock_groq_cls):
        create = _install(mock_groq_cls, "{}")

        asyncio.run(translate("bars", KNOWN_CATEGORIES, USER_LOCATION, config=ENABLED_CONFIG))

        create.assert_awaited_once()
        kwargs = create.call_args.kwargs
        assert kwargs["temperature"] == 0.0
        assert kwargs["response_format"] == {"type": "json_object"}
        roles = [m["role"] for m in kwargs["messages"]]
        assert roles == ["system", "user"]
        assert '"bars"' in kwargs["messages"][1]["content"]

    @patch("venuesearch.llm.translator.AsyncGroq")
    def test_client_is_closed_after_call(self, mock_groq_cls):
        _install(mock_groq_cls, "{}")

        asyncio.run(translate("bars", KNOWN_CATEGORIES, config=ENABLED_CONFIG))

        mock_groq_cls.return_value.__aexit__.assert_awaited_once()

    @patch("venuesearch.llm.translator.AsyncGroq")
    def test_client_is_closed_after_api_error(self, mock_groq_cls):
        request = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")
        _client(mock_groq_cls).chat.completions.create = AsyncMock(
            side_effect=APIConnectionError(request=request)
        )

        with pytest.raises(UpstreamUnavailableError):
            asyncio.run(translate("bars", KNOWN_CATEGORIES, config=ENABLED_CONFIG))

        mock_groq_cls.return_value.__aexit__.assert_awaited_once()

    @patch("venuesearch.llm.translator.AsyncGroq")
    def test_fenced_json_is_accepted(self, mock_groq_cls):
        _install(mock_groq_cls, '```json\n{"visited": false}\n```')

        config = asyncio.run(translate("places I haven't been", KNOWN_CATEGORIES, config=ENABLED_CONFIG))

        assert config.visited is False


# ── Failure modes ────────────────────────────────────────────────────────


class TestTranslateFailures:
    @patch("venuesearch.llm.translator.AsyncGroq")
    def test_invalid_json_is_format_error(self, mock_groq_cls):
        _install(mock_groq_cls, "not valid json{{{")

        with pytest.raises(UpstreamFormatError):
            asyncio.run(translate("pizza", KNOWN_CATEGORIES, config=ENABLED_CONFIG))

    @patch("venuesearch.llm.translator.AsyncGroq")
    def test_missing_text_content_is_format_error(self, mock_groq_cls):
        _install(mock_groq_cls, None)

        with pytest.raises(UpstreamFormatError, match="unexpected format"):
            asyncio.run(translate("pizza", KNOWN_CATEGORIES, config=ENABLED_CONFIG))

    @patch("venuesearch.llm.translator.AsyncGroq")
    def test_no_choices_is_format_error(self, mock_groq_cls):
        response = MagicMock()
        response.choices = []
        _client(mock_groq_cls).chat.completions.create = AsyncMock(return_value=response)

        with pytest.raises(UpstreamFormatError):
            asyncio.run(translate("pizza", KNOWN_CATEGORIES, config=ENABLED_CONFIG))

    @patch("venuesearch.llm.translator.AsyncGroq")
    def test_schema_mismatch_is_validation_error(self, mock_groq_cls):
        _install(mock_groq_cls, json.dumps({"visited": "yes", "categories": "italian"}))

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(translate("pizza", KNOWN_CATEGORIES, config=ENABLED_CONFIG))

        assert exc_info.value.details

    @patch("venuesearch.llm.translator.AsyncGroq")
    def test_api_error_is_upstream_unavailable(self, mock_groq_cls):
        request = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")
        _client(mock_groq_cls).chat.completions.create = AsyncMock(
            side_effect=APIConnectionError(request=request)
        )

        with pytest.raises(UpstreamUnavailableError):
            asyncio.run(translate("pizza", KNOWN_CATEGORIES, config=ENABLED_CONFIG))

    @patch("venuesearch.llm.translator.AsyncGroq")
    def test_disabled_config_does_not_call_groq(self, mock_groq_cls):
        with pytest.raises(UpstreamUnavailableError):
            asyncio.run(translate("pizza", KNOWN_CATEGORIES, config=DISABLED_CONFIG))

        mock_groq_cls.assert_not_called()


# ── Prompt and parsing stages ────────────────────────────────────────────


class TestPrompt:
    def test_lists_sorted_categories(self):
        prompt = build_system_prompt({"pizza", "chinese", "italian"})
        assert "chinese, italian, pizza" in prompt

    def test_includes_user_coordinates(self):
        prompt = build_system_prompt(KNOWN_CATEGORIES, USER_LOCATION)
        assert "latitude 37.7749" in prompt
        assert "longitude -122.4194" in prompt
        assert "No user location provided" not in prompt

    def test_states_missing_user_location(self):
        prompt = build_system_prompt(KNOWN_CATEGORIES)
        assert "No user location provided" in prompt
        assert "never set useProximity" in prompt


class TestParsingStages:
    def test_parse_json_rejects_non_object(self):
        with pytest.raises(UpstreamFormatError):
            parse_json("[1, 2, 3]")

    def test_parse_json_returns_dict(self):
        assert parse_json('{"visited": true}') == {"visited": True}

    def test_validate_accepts_camel_case_fields(self):
        config = validate_search_config({
            "textSearch": ["ramen"],
            "isClaimed": True,
            "shouldCheckHours": True,
            "extraField": "ignored",
        })
        assert config.text_search == ["ramen"]
        assert config.is_claimed is True
        assert config.should_check_hours is True

    def test_validate_rejects_bad_location(self):
        with pytest.raises(ValidationError):
            validate_search_config({"location": {"near": [1.0]}})

    def test_enforce_rules_leaves_clean_config_untouched(self):
        config = SearchConfig(categories=["thai"], visited=True)
        assert enforce_rules(config, None) is config
