"""Classification of model provider failures into user-facing categories.

Provider errors arrive in many shapes (SDK exceptions, HTTP bodies, status
strings). Both the relay and the client reduce them to a small set of
categories by looking for well-known markers in the error text.
"""

from enum import Enum


class ErrorCategory(str, Enum):
    """User-facing error categories."""

    RATE_LIMIT = "rate_limit"
    SAFETY_BLOCK = "safety_block"
    INVALID_API_KEY = "invalid_api_key"
    MODEL_NOT_FOUND = "model_not_found"
    GENERIC = "generic"


# Checked in order; the first category with a matching marker wins
_MARKERS: list[tuple[ErrorCategory, tuple[str, ...]]] = [
    (ErrorCategory.RATE_LIMIT, ("429", "rate limit", "rate_limit", "quota", "resource_exhausted")),
    (ErrorCategory.SAFETY_BLOCK, ("safety", "blocked", "content_filter")),
    (
        ErrorCategory.INVALID_API_KEY,
        ("401", "api key not valid", "invalid api key", "incorrect api key", "invalid_api_key"),
    ),
    (ErrorCategory.MODEL_NOT_FOUND, ("model not found", "model_not_found", "does not exist")),
]

_USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.RATE_LIMIT: "The API quota has hit its rate limit. Please try again later.",
    ErrorCategory.SAFETY_BLOCK: "The response was blocked by the safety policy. Try a different topic.",
    ErrorCategory.INVALID_API_KEY: "Invalid API key on the server. Check the LLM_API_KEY setting.",
    ErrorCategory.MODEL_NOT_FOUND: "Model not found. Check the LLM_MODEL setting.",
    ErrorCategory.GENERIC: "Something went wrong while generating the response.",
}

_HTTP_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.RATE_LIMIT: 429,
    ErrorCategory.SAFETY_BLOCK: 400,
    ErrorCategory.INVALID_API_KEY: 502,
    ErrorCategory.MODEL_NOT_FOUND: 502,
    ErrorCategory.GENERIC: 500,
}


def classify_error(text: str) -> ErrorCategory:
    """Classify an error description by its markers.

    Args:
        text: Exception message, error payload or response body.

    Returns:
        The matching category, GENERIC if nothing matched.
    """
    lowered = text.lower()
    for category, markers in _MARKERS:
        if any(marker in lowered for marker in markers):
            return category
    return ErrorCategory.GENERIC


def user_message(category: ErrorCategory) -> str:
    """Return the user-facing message for a category."""
    return _USER_MESSAGES[category]


def http_status(category: ErrorCategory) -> int:
    """Return the HTTP status used when a request fails before streaming."""
    return _HTTP_STATUS[category]
