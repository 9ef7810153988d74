"""Defensive parsing of model output into an AutoIngestResult.

Only a top-level JSON failure is fatal. Every field is coerced on its own
and degrades to an empty string, an empty list or None when it has the
wrong shape.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any

from ducktylo.config import get_logger
from ducktylo.exceptions import MalformedIngestResponseError
from ducktylo.ingest.models import (
    MAX_DESCRIPTION_LENGTH,
    AutoIngestCharacter,
    AutoIngestResult,
    age_range_problem,
)
from ducktylo.ingest.taxonomy import (
    CONTENT_WARNINGS,
    ERAS,
    GENRES,
    normalize,
    normalize_format,
)

logger = get_logger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)

_TRUE_STRINGS = frozenset({"true", "yes", "y", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "n", "0"})


def extract_json_object(content: Any) -> dict[str, Any]:
    r"""Recover a JSON object from a model response.

    Three shapes are tolerated, tried in order:

    1. The whole response is a JSON object
    2. The object sits inside a markdown code fence (with or without ``json``)
    3. The object is surrounded by prose; the slice from the first ``{`` to
       the last ``}`` is parsed

    Args:
        content: Message content returned by the provider

    Returns:
        The parsed JSON object

    Raises:
        MalformedIngestResponseError: If content is missing, not a string, or
            none of the shapes yields a JSON object

    Example:
        >>> extract_json_object('```json\n{"logline": "X"}\n```')
        {'logline': 'X'}
    """
    if not isinstance(content, str) or not content.strip():
        raise MalformedIngestResponseError(
            message="Model returned empty or non-string content"
        )

    trimmed = content.strip()
    candidates: list[str] = [trimmed]

    fence_match = _FENCE_PATTERN.search(trimmed)
    if fence_match:
        candidates.append(fence_match.group(1))

    first_brace = trimmed.find("{")
    last_brace = trimmed.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        candidates.append(trimmed[first_brace : last_brace + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    logger.error(
        "Failed to parse model response as JSON",
        response_preview=trimmed[:500],
        response_length=len(trimmed),
    )
    raise MalformedIngestResponseError(
        message="Failed to parse JSON from auto-ingest model response",
        details={"response_preview": trimmed[:200]},
    )


def coerce_str(value: Any) -> str:
    """Trimmed string, or an empty string for anything else."""
    return value.strip() if isinstance(value, str) else ""


def coerce_optional_str(value: Any) -> str | None:
    """Trimmed non-empty string, or None."""
    return coerce_str(value) or None


def coerce_int(value: Any) -> int | None:
    """Integer from a number or numeric string, or None.

    Booleans, non-finite numbers and fractional values are rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return None
            return coerce_int(number)
    return None


def coerce_bool(value: Any, default: bool = False) -> bool:
    """Boolean from a bool, number or yes/no style string."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):  # noqa: UP038
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    return default


def _first_present(data: dict[str, Any], *keys: str) -> Any:
    """Value of the first key present and not None."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def map_character(raw: Any) -> AutoIngestCharacter | None:
    """Map one raw character entry, or None when it has no usable name.

    The age invariant is enforced here: an inconsistent or incomplete range
    is normalized to "any age" with no bounds.
    """
    if not isinstance(raw, dict):
        return None
    name = coerce_str(raw.get("name"))
    if not name:
        return None

    any_age = coerce_bool(_first_present(raw, "any_age", "anyAge"), default=False)
    start_age = coerce_int(_first_present(raw, "start_age", "startAge"))
    end_age = coerce_int(_first_present(raw, "end_age", "endAge"))

    problem = age_range_problem(any_age, start_age, end_age)
    if problem:
        logger.warning(
            "Normalizing character age range to any age",
            character=name,
            start_age=start_age,
            end_age=end_age,
            reason=problem,
        )
        any_age = True
    if any_age:
        start_age = end_age = None

    description = coerce_optional_str(raw.get("description"))
    if description and len(description) > MAX_DESCRIPTION_LENGTH:
        description = description[:MAX_DESCRIPTION_LENGTH].rstrip()

    return AutoIngestCharacter(
        name=name,
        role=coerce_optional_str(raw.get("role")),
        genders=normalize(raw.get("genders")),
        races=normalize(raw.get("races")),
        start_age=start_age,
        end_age=end_age,
        any_age=any_age,
        description=description,
    )


def map_ingest_payload(
    payload: dict[str, Any],
    model: str,
    usage: dict[str, Any] | None = None,
    raw_response: Any = None,
) -> AutoIngestResult:
    """Build an AutoIngestResult from a parsed model payload.

    Args:
        payload: JSON object recovered from the model output
        model: Model name used for the call
        usage: Provider token usage block, when present
        raw_response: Full provider response kept for the job audit record

    Returns:
        Normalized result
    """
    raw_characters = payload.get("characters")
    characters: list[AutoIngestCharacter] = []
    if isinstance(raw_characters, list):
        for entry in raw_characters:
            character = map_character(entry)
            if character is not None:
                characters.append(character)
        dropped = len(raw_characters) - len(characters)
        if dropped:
            logger.info("Dropped unusable character entries", count=dropped)

    usage = usage if isinstance(usage, dict) else {}

    return AutoIngestResult(
        logline=coerce_str(payload.get("logline")),
        synopsis=coerce_str(payload.get("synopsis")),
        genres=normalize(payload.get("genres"), GENRES),
        eras=normalize(payload.get("eras"), ERAS),
        locations=normalize(payload.get("locations")),
        content_warnings=normalize(
            _first_present(payload, "content_warnings", "contentWarnings"),
            CONTENT_WARNINGS,
        ),
        format=normalize_format(payload.get("format")),
        estimated_page_count=coerce_int(
            _first_present(payload, "estimated_page_count", "estimatedPageCount")
        ),
        characters=characters,
        model=model,
        prompt_tokens=coerce_int(usage.get("prompt_tokens")),
        completion_tokens=coerce_int(usage.get("completion_tokens")),
        raw_response=raw_response,
    )
