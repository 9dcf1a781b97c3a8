"""Resolve a free-text task reference to candidate tasks.

Tiers short-circuit at the first non-empty result:
exact title → substring of title → token-overlap ranking.
"""

from __future__ import annotations

from collections.abc import Sequence

from src.infra.text import token_jaccard
from src.tasks.models import Task


def find_candidates(payload: str, tasks: Sequence[Task]) -> list[Task]:
    """Return the tasks payload most likely refers to, best first."""
    needle = payload.strip().lower()
    if not needle:
        return []

    exact = [t for t in tasks if t.title.strip().lower() == needle]
    if exact:
        return exact

    contained = [t for t in tasks if needle in t.title.lower()]
    if contained:
        return contained

    scored = [(token_jaccard(needle, t.title), t) for t in tasks]
    ranked = [pair for pair in scored if pair[0] > 0]
    # sorted() is stable: equal scores keep store order
    ranked = sorted(ranked, key=lambda pair: pair[0], reverse=True)
    return [t for _, t in ranked]
