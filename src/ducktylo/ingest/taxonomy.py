"""Closed vocabularies for script classification.

Fields with a vocabulary (genres, eras, content warnings, format) are
uppercased and filtered against it. Free-form fields (locations, genders,
races) are only trimmed and deduplicated.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

_CODE_SEPARATORS = re.compile(r"[\s\-]+")

GENRES: frozenset[str] = frozenset(
    {
        "ACTION",
        "ADVENTURE",
        "ANIMATION",
        "BIOGRAPHY",
        "COMEDY",
        "CRIME",
        "DOCUMENTARY",
        "DRAMA",
        "FAMILY",
        "FANTASY",
        "HISTORICAL",
        "HORROR",
        "MUSICAL",
        "MYSTERY",
        "ROMANCE",
        "SCIENCE_FICTION",
        "SPORTS",
        "THRILLER",
        "WAR",
        "WESTERN",
    }
)

ERAS: frozenset[str] = frozenset(
    {
        "PREHISTORIC",
        "ANCIENT",
        "MEDIEVAL",
        "RENAISSANCE",
        "HISTORICAL",
        "19TH_CENTURY",
        "1900S",
        "1910S",
        "1920S",
        "1930S",
        "1940S",
        "1950S",
        "1960S",
        "1970S",
        "1980S",
        "1990S",
        "2000S",
        "2010S",
        "CONTEMPORARY",
        "NEAR_FUTURE",
        "FUTURE",
        "ALTERNATE_REALITY",
    }
)

CONTENT_WARNINGS: frozenset[str] = frozenset(
    {
        "VIOLENCE",
        "GRAPHIC_VIOLENCE",
        "STRONG_LANGUAGE",
        "SEXUAL_CONTENT",
        "NUDITY",
        "SUBSTANCE_ABUSE",
        "SELF_HARM",
        "SUICIDE",
        "ABUSE",
        "SEXUAL_VIOLENCE",
        "DISCRIMINATION",
        "ANIMAL_HARM",
        "GORE",
        "FLASHING_LIGHTS",
    }
)

FORMATS: frozenset[str] = frozenset(
    {
        "FEATURE_FILM",
        "TV_SERIES",
        "TV_PILOT",
        "MINI_SERIES",
        "SHORT_FILM",
        "DOCUMENTARY",
        "WEB_SERIES",
    }
)


def normalize(values: Any, allowed: Iterable[str] | None = None) -> list[str]:
    """Clean a list of free-form strings.

    Non-list input yields an empty list and non-string elements are dropped.
    Strings are trimmed and empties discarded. With ``allowed``, values are
    uppercased (spaces and hyphens become underscores) and kept only when
    they belong to the vocabulary; without it they are kept as written.
    Order of first occurrence is preserved.

    Args:
        values: Raw value from the model output
        allowed: Optional closed vocabulary of uppercase codes

    Returns:
        Deduplicated list of cleaned strings
    """
    if not isinstance(values, (list, tuple)):  # noqa: UP038
        return []
    vocabulary = frozenset(allowed) if allowed is not None else None

    seen: dict[str, None] = {}
    for value in values:
        if not isinstance(value, str):
            continue
        cleaned = value.strip()
        if not cleaned:
            continue
        if vocabulary is not None:
            cleaned = _CODE_SEPARATORS.sub("_", cleaned.upper())
            if cleaned not in vocabulary:
                continue
        seen.setdefault(cleaned, None)
    return list(seen)


def normalize_format(value: Any) -> str | None:
    """Map a single format value onto ``FORMATS``, or None."""
    if not isinstance(value, str):
        return None
    matches = normalize([value], FORMATS)
    return matches[0] if matches else None
