from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class VenueSearchError(Exception):
    """Base class for errors surfaced to callers of the search core."""

    status_code: int = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(VenueSearchError):
    """Malformed input: search configuration, viewport or embedding shape."""

    status_code = 400


class UpstreamFormatError(VenueSearchError):
    """The language model answered, but not with a usable JSON object."""

    status_code = 502


class UpstreamUnavailableError(VenueSearchError):
    """Completion service, embedding backend or document store failed."""

    status_code = 503


class NotFoundError(VenueSearchError):
    status_code = 404


def parse_model(model: type[ModelT], data: Any) -> ModelT:
    """Validate ``data`` into ``model``, raising :class:`ValidationError` on mismatch."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid {model.__name__}",
            details=exc.errors(include_url=False, include_context=False, include_input=False),
        ) from exc
