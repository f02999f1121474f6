"""
Relevance scoring for the product name search index.
"""

from __future__ import annotations

import re
from typing import Iterable, TypeVar

T = TypeVar("T")

_TOKEN_RE = re.compile(r"\w+")


def tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall((text or "").lower())


def score_name(name: str, terms: list[str]) -> float:
    """
    Score a product name against query terms.

    Exact token matches count fully; the last query term may also match as a
    prefix (type-ahead) for half weight.
    """
    if not terms:
        return 0.0
    tokens = tokenize(name)
    token_set = set(tokens)
    score = 0.0
    last = len(terms) - 1
    for i, term in enumerate(terms):
        if term in token_set:
            score += 1.0
        elif i == last and any(token.startswith(term) for token in tokens):
            score += 0.5
    return score


def rank_by_name(query: str, items: Iterable[T], name_of) -> list[T]:
    """Return items with a positive score, best first, stable on ties."""
    terms = tokenize(query)
    if not terms:
        return []
    scored: list[tuple[float, int, T]] = []
    for position, item in enumerate(items):
        score = score_name(name_of(item), terms)
        if score > 0:
            scored.append((score, position, item))
    scored.sort(key=lambda entry: (-entry[0], entry[1]))
    return [item for _, _, item in scored]
