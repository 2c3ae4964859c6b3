"""Similarity scoring and retrieval for MedTutor."""

from .rankers import KeywordRanker, Ranker, VectorRanker, retrieve, select_ranker
from .similarity import cosine_similarity, keyword_score

__all__ = [
    "KeywordRanker",
    "Ranker",
    "VectorRanker",
    "cosine_similarity",
    "keyword_score",
    "retrieve",
    "select_ranker",
]
