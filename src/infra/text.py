"""Token-set helpers shared by the candidate resolver and memory extractor."""

from __future__ import annotations


def token_set(text: str) -> set[str]:
    """Lower-cased, whitespace-separated tokens of text."""
    return set(text.lower().split())


def token_jaccard(a: str, b: str) -> float:
    """Jaccard similarity of the token sets of a and b (0.0 when both are empty)."""
    a_tokens = token_set(a)
    b_tokens = token_set(b)
    union = a_tokens | b_tokens
    if not union:
        return 0.0
    return len(a_tokens & b_tokens) / len(union)
