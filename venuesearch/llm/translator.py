from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from typing import Any

from groq import APIError, AsyncGroq

from ..errors import UpstreamFormatError, UpstreamUnavailableError, parse_model
from ..search.config import DEFAULT_SEARCH_SETTINGS
from ..search.models import ProximityLocation, SearchConfig, UserLocation
from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# LLM Prompt
# ---------------------------------------------------------------------------

SEARCH_CONFIG_PROMPT = """\
You translate search requests against a database of bookmarked Yelp businesses \
into a search configuration. Return ONLY a valid JSON object with these fields \
(omit any field the request does not imply):
{{
  "textSearch": ["term"],
  "categories": ["alias"],
  "visited": true,
  "isClaimed": true,
  "shouldCheckHours": true,
  "useProximity": true,
  "location": {{"near": [longitude, latitude], "maxDistance": 2000}}
}}

Field rules:
- textSearch: terms matched against business names and personal notes. Notes \
mention menu items, dishes and ambiance, so any term that is not clearly a \
business name or a category belongs here. Put each term in its own string.
- categories: the kind of business ("coffee", "bars") or cuisine ("italian", \
"mexican", "thai"), singular even when the request is plural. "Restaurant" is \
never a category: "thai restaurant" yields the category "thai" and the word \
"restaurant" is discarded.
- visited / isClaimed: only when the request asks about visited or claimed status.
- shouldCheckHours: true when the request asks for places that are open now.
- location.maxDistance is in meters.

Match categories against these known category aliases: {categories}.

{location_line}
IMPORTANT: Only set useProximity to true if the request explicitly refers to a \
location relative to the user ("near me", "nearby", "close to me", "within 2 \
miles") AND a user location is provided above. If no user location is \
provided, ignore proximity wording entirely and never set useProximity."""

USER_MESSAGE_TEMPLATE = 'Convert this search request to a search configuration: "{query}"'

_GENERIC_CATEGORIES = {
    DEFAULT_SEARCH_SETTINGS.generic_category,
    DEFAULT_SEARCH_SETTINGS.generic_category + "s",
}
_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def build_system_prompt(
    known_categories: Iterable[str],
    user_location: UserLocation | None = None,
) -> str:
    if user_location is not None:
        location_line = (
            f"Current user location: latitude {user_location.latitude}, "
            f"longitude {user_location.longitude}"
        )
    else:
        location_line = "No user location provided."
    return SEARCH_CONFIG_PROMPT.format(
        categories=", ".join(sorted(set(known_categories))),
        location_line=location_line,
    )


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def extract_text(response: Any) -> str:
    """Return the text content of a chat completion, or raise UpstreamFormatError."""
    choices = getattr(response, "choices", None) or []
    content = choices[0].message.content if choices else None
    if not isinstance(content, str) or not content.strip():
        raise UpstreamFormatError("Response returned unexpected format: no text content")
    return content


def parse_json(text: str) -> dict[str, Any]:
    """First stage: the text must hold a JSON object."""
    stripped = text.strip()
    fenced = _CODE_FENCE_RE.match(stripped)
    if fenced:
        stripped = fenced.group(1)
    try:
        data = json.loads(stripped)
    except json.JSONDecodeError as exc:
        raise UpstreamFormatError("Response is not valid JSON") from exc
    if not isinstance(data, dict):
        raise UpstreamFormatError("Response JSON is not an object")
    return data


def validate_search_config(data: dict[str, Any]) -> SearchConfig:
    """Second stage: the object must match the SearchConfig shape."""
    return parse_model(SearchConfig, data)


def enforce_rules(config: SearchConfig, user_location: UserLocation | None) -> SearchConfig:
    """Apply the translation rules the model may have ignored."""
    updates: dict[str, Any] = {}

    if config.categories:
        kept = [c for c in config.categories if c.strip().lower() not in _GENERIC_CATEGORIES]
        if kept != config.categories:
            updates["categories"] = kept or None

    if user_location is None:
        if config.use_proximity is not None:
            updates["use_proximity"] = None
    elif config.use_proximity:
        max_distance = config.location.max_distance if config.location else None
        updates["location"] = ProximityLocation(
            near=user_location.lng_lat, max_distance=max_distance
        )

    return config.model_copy(update=updates) if updates else config


# ---------------------------------------------------------------------------
# LLM Call
# ---------------------------------------------------------------------------


async def _complete(system_prompt: str, user_message: str, config: LLMConfig) -> Any:
    if not config.enabled or not config.api_key:
        raise UpstreamUnavailableError("Query translation is not configured")

    async with AsyncGroq(api_key=config.api_key, timeout=config.timeout) as client:
        try:
            return await client.chat.completions.create(
                model=config.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                response_format={"type": "json_object"},
            )
        except APIError as exc:
            logger.warning("Groq query translation call failed", exc_info=True)
            raise UpstreamUnavailableError("Query translation service failed") from exc


async def translate(
    query: str,
    known_categories: Iterable[str],
    user_location: UserLocation | None = None,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> SearchConfig:
    """
    Translate a free-text query into a SearchConfig with a single LLM call.

    Raises UpstreamFormatError when the answer has no text or no JSON object,
    ValidationError when the JSON does not match SearchConfig, and
    UpstreamUnavailableError when the service cannot be reached. No retries.
    """
    system_prompt = build_system_prompt(known_categories, user_location)
    logger.info("Processing search query: %s", query)
    logger.debug("System prompt: %s", system_prompt)

    response = await _complete(
        system_prompt, USER_MESSAGE_TEMPLATE.format(query=query), config
    )
    data = parse_json(extract_text(response))
    search_config = enforce_rules(validate_search_config(data), user_location)

    logger.info(
        "Search config: %s",
        search_config.model_dump(by_alias=True, exclude_none=True),
    )
    return search_config
