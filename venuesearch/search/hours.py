from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import ValidationError as PydanticValidationError

from ..businesses.models import YelpData
from .config import DEFAULT_SEARCH_SETTINGS, SearchSettings

logger = logging.getLogger(__name__)


def _minutes(hhmm: str) -> int:
    return int(hhmm[:2]) * 60 + int(hhmm[2:])


def _zone(name: str | None, default: str) -> ZoneInfo:
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.debug("Unknown timezone %r, using %s", name, default)
    return ZoneInfo(default)


def is_open_at(
    data: YelpData | None,
    at: datetime,
    settings: SearchSettings = DEFAULT_SEARCH_SETTINGS,
) -> bool:
    """
    Whether a business is open at the aware datetime ``at``.

    Hours follow Yelp's layout: ``day`` 0 is Monday, times are local ``HHMM``,
    and a period whose end is not after its start runs past midnight.
    Businesses without hours or marked closed are never open.
    """
    if data is None or not data.hours or data.is_closed:
        return False

    timezone = data.location.timezone if data.location else None
    local = at.astimezone(_zone(timezone, settings.default_timezone))
    weekday = local.weekday()
    minute = local.hour * 60 + local.minute

    for block in data.hours:
        for period in block.open:
            start, end = _minutes(period.start), _minutes(period.end)
            if end <= start:
                if period.day == weekday and minute >= start:
                    return True
                if (period.day + 1) % 7 == weekday and minute < end:
                    return True
            elif period.day == weekday and start <= minute < end:
                return True
    return False


def filter_open(
    documents: list[dict[str, Any]],
    at: datetime,
    settings: SearchSettings = DEFAULT_SEARCH_SETTINGS,
) -> list[dict[str, Any]]:
    kept: list[dict[str, Any]] = []
    for document in documents:
        raw = document.get("yelpData")
        try:
            data = YelpData.model_validate(raw) if raw else None
        except PydanticValidationError:
            logger.debug("Unreadable hours for %s, treating as closed", document.get("alias"))
            data = None
        if is_open_at(data, at, settings):
            kept.append(document)
    return kept
