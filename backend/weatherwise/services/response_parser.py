"""Extract the candidate schedule from generated text."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List

from weatherwise.core.errors import ResponseShapeInvalid, ResponseUnparseable

logger = logging.getLogger(__name__)

# Greedy: from the first "{" to the last "}".
_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)


@dataclass(frozen=True)
class CandidateSchedule:
    """Untrusted generator output.

    ``recommendations`` is known to be a list but nothing is known about its
    items; only the reconciliation engine turns this into a WeeklySummary.
    """

    summary: Any
    recommendations: List[Any]


def parse_candidate(text: str) -> CandidateSchedule:
    match = _OBJECT_PATTERN.search(text)
    raw = match.group(0) if match else text
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, ValueError) as exc:
        logger.error("Failed to parse generated text as JSON: %s", exc)
        logger.error("Raw content: %s", text)
        raise ResponseUnparseable("Failed to parse generated response") from exc

    if not isinstance(parsed, dict):
        logger.error("Generated JSON is not an object: %r", parsed)
        raise ResponseShapeInvalid("Generated JSON is not an object")

    recommendations = parsed.get("recommendations")
    if not isinstance(recommendations, list):
        logger.error("Invalid recommendations format: %r", recommendations)
        raise ResponseShapeInvalid("Generated JSON has no recommendations list")

    return CandidateSchedule(summary=parsed.get("summary"), recommendations=list(recommendations))
