"""Error taxonomy for the recommendation pipeline.

Each error knows the HTTP status and the public body it maps to. Internal
detail (status codes from the generation service, parser messages) lives on
the exception for operators and is never copied into the public body, except
for request-shape errors whose field-level message is meant for the caller.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

UNAVAILABLE_ERROR = "AI recommendations unavailable"
UNAVAILABLE_MESSAGE = "Unable to generate recommendations at this time. Please try again later."
CONFIGURATION_ERROR = "API configuration error - AI recommendations unavailable"


class RecommendationError(Exception):
    """Base class for every failure the recommendation endpoint reports."""

    status_code: int = 500
    public_error: str = UNAVAILABLE_ERROR
    public_message: Optional[str] = UNAVAILABLE_MESSAGE

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.public_error}
        if self.public_message:
            payload["message"] = self.public_message
        return payload


class ConfigurationMissing(RecommendationError):
    """Raised when the generation service credential is not configured."""

    public_error = CONFIGURATION_ERROR
    public_message = None


class RequestShapeInvalid(RecommendationError):
    """Raised when a required request field is missing or structurally wrong."""

    status_code = 400
    public_message = None

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.public_error = message
        self.public_message = detail


class GenerationUnavailable(RecommendationError):
    """Raised on transport failure or a non-success status from the generator."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class GenerationMalformed(RecommendationError):
    """Raised when the generator's response envelope lacks message content."""


class ResponseUnparseable(RecommendationError):
    """Raised when no JSON object can be extracted from generated text."""


class ResponseShapeInvalid(RecommendationError):
    """Raised when parsed JSON has no usable recommendations list."""


class RecommendationUnavailable(RecommendationError):
    """Raised for unexpected pipeline failures so they map to the generic body."""
