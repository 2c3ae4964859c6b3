"""Similarity scoring between queries and stored chunks."""

from __future__ import annotations

import math
import re
from typing import List, Sequence


MIN_TOKEN_LENGTH = 3


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 when the lengths differ or either vector has zero norm.
    """
    if len(a) != len(b):
        return 0.0

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if not norm_a or not norm_b:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def query_tokens(query: str) -> List[str]:
    """Lowercased whitespace tokens longer than two characters."""
    return [w for w in query.lower().split() if len(w) >= MIN_TOKEN_LENGTH]


def keyword_score(query: str, chunk: str) -> int:
    """Total case-insensitive occurrences of the query's tokens in a chunk."""
    chunk_lower = chunk.lower()
    score = 0
    for token in query_tokens(query):
        score += len(re.findall(re.escape(token), chunk_lower))
    return score
