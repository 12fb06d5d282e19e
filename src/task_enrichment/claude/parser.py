"""Parse structured JSON out of reasoning service replies."""

import json
import logging
import re
from typing import Any

from task_enrichment.api.models import DurationEstimate, ResourceSuggestion, Strategy

logger = logging.getLogger(__name__)

MIN_DURATION_MINUTES = 5
MAX_DURATION_MINUTES = 480  # 8 hours
VALID_CONFIDENCE = ("high", "medium", "low")


class ReasoningError(RuntimeError):
    """Raised when the reasoning service fails or replies with unusable output."""


def extract_json(text: str) -> dict[str, Any]:
    """Extract the first JSON object from a reply.

    Accepts bare JSON, JSON inside a ```json fence, or JSON surrounded by prose.

    Raises:
        ReasoningError: If no JSON object can be decoded
    """
    fenced = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", text, re.DOTALL)
    candidates = [fenced.group(1)] if fenced else []
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    logger.debug(f"No JSON object in reply: {text[:200]!r}")
    raise ReasoningError("Reply did not contain a JSON object")


def _string_list(data: dict[str, Any], key: str, required: bool = True) -> list[str] | None:
    value = data.get(key)
    if value is None and not required:
        return None
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ReasoningError(f"Field '{key}' must be a list of strings")
    return value


def _optional_int(data: dict[str, Any], key: str) -> int | None:
    value = data.get(key)
    # Check bool before int (bool is subclass of int in Python)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return round(value)
    return None


def _confidence(value: Any, default: str | None) -> str | None:
    if isinstance(value, str) and value.lower() in VALID_CONFIDENCE:
        return value.lower()
    return default


def parse_strategy(text: str) -> Strategy:
    """Build a Strategy from a reply."""
    data = extract_json(text)
    overview = data.get("overview")
    if not isinstance(overview, str) or not overview.strip():
        raise ReasoningError("Strategy reply is missing an overview")

    return Strategy(
        overview=overview.strip(),
        key_points=_string_list(data, "key_points") or [],
        actionable_steps=_string_list(data, "actionable_steps") or [],
        potential_obstacles=_string_list(data, "potential_obstacles", required=False),
        estimated_minutes=_optional_int(data, "estimated_minutes"),
        confidence=_confidence(data.get("confidence"), None),
        thought_process=data.get("thought_process"),
    )


def parse_duration(text: str) -> DurationEstimate:
    """Build a DurationEstimate from a reply, clamping minutes to 5..480."""
    data = extract_json(text)
    minutes = _optional_int(data, "minutes")
    if minutes is None:
        raise ReasoningError("Duration reply is missing minutes")

    reasoning = data.get("reasoning")
    return DurationEstimate(
        minutes=min(max(minutes, MIN_DURATION_MINUTES), MAX_DURATION_MINUTES),
        confidence=_confidence(data.get("confidence"), "medium") or "medium",
        reasoning=reasoning if isinstance(reasoning, str) else None,
    )


def parse_resources(text: str, max_results: int) -> list[ResourceSuggestion]:
    """Build resource suggestions from a reply, skipping malformed items."""
    data = extract_json(text)
    queries = data.get("queries")
    if not isinstance(queries, list):
        raise ReasoningError("Resource reply is missing 'queries'")

    resources: list[ResourceSuggestion] = []
    for item in queries:
        if not isinstance(item, dict):
            continue
        query, title = item.get("search_query"), item.get("display_title")
        if not isinstance(query, str) or not isinstance(title, str):
            logger.debug(f"Skipping malformed resource item: {item}")
            continue
        score = item.get("relevance_score")
        resources.append(
            ResourceSuggestion(
                display_title=title,
                search_query=query,
                reasoning=item.get("reasoning"),
                relevance_score=float(score) if isinstance(score, (int, float)) else None,
            )
        )

    if not resources:
        raise ReasoningError("Resource reply contained no usable queries")
    return resources[:max_results]
