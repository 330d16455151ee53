"""Fuzzy name matching used to suggest channel names."""

from __future__ import annotations

import json
from typing import Iterable, List

from rapidfuzz.distance import Levenshtein

from core.errors import SuggestionError

MAX_SUGGESTIONS = 10


def edit_distance(source: str, target: str) -> int:
    """Levenshtein distance; insert, delete and substitute each cost 1."""

    return Levenshtein.distance(source, target)


def suggest_names(target: str, candidates: Iterable[str], limit: int = MAX_SUGGESTIONS) -> List[str]:
    """Return up to `limit` candidates ordered by distance to `target`.

    sorted() is stable, so candidates at the same distance keep their input
    order.
    """

    scored = [(edit_distance(target, name), name) for name in candidates]
    scored = sorted(scored, key=lambda item: item[0])
    return [name for _, name in scored[:limit]]


def format_suggestions(names: List[str]) -> str:
    """Render suggestions as a JSON array for log output."""

    try:
        return json.dumps(names, ensure_ascii=False)
    except (TypeError, ValueError) as err:
        raise SuggestionError(f"unable to encode suggested names: {err}") from err
