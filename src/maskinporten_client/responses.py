# maskinporten_client/responses.py
"""Mapping of authority responses to results or typed errors."""

import logging
from typing import Type, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from .errors import TokenRequestError
from .token_types import ErrorResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMPTY_BODY_MARKER = "<empty>"


def classify_error(body: str) -> ErrorResponse:
    """
    Classify an error body.

    Structured ``{"error": ..., "error_description": ...}`` or
    ``{"errorType": ..., "description": ...}`` bodies are parsed as is. Anything else becomes an ``Other`` error carrying the raw body, or
    ``<empty>`` when there is no body.
    """
    try:
        return ErrorResponse.model_validate_json(body)
    except ValidationError:
        return ErrorResponse(
            error="Other", error_description=body if body else EMPTY_BODY_MARKER
        )


def parse_response(response: httpx.Response, model: Type[T]) -> T:
    """
    Parse an authority response.

    Args:
        response: HTTP response from the authority
        model: Type of the expected success body, e.g. TokenResponse or str

    Returns:
        The success body validated as ``model``

    Raises:
        TokenRequestError: On a non-success status or an invalid success body
    """
    body = response.text

    if response.is_success:
        try:
            return TypeAdapter(model).validate_json(body)
        except ValidationError as e:
            logger.error(
                f"errorType=Other description=invalid response body ({e.error_count()} errors) "
                f"statuscode={response.status_code}"
            )
            raise TokenRequestError(
                f"Unable to parse response from server: {body or EMPTY_BODY_MARKER}",
                status_code=response.status_code,
            ) from e

    error = classify_error(body)
    description = error.description or ""
    logger.error(
        f"errorType={error.error_type} description={description} "
        f"statuscode={response.status_code}"
    )
    raise TokenRequestError(
        description, error_type=error.error_type, status_code=response.status_code
    )
