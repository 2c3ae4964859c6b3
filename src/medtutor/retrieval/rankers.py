"""Ranking strategies and top-K retrieval over a user's knowledge entry.

Two strategies share one interface: :class:`VectorRanker` scores chunks by
cosine similarity against an embedded query, :class:`KeywordRanker` by
keyword counts. :func:`select_ranker` picks one per entry.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from medtutor.llm.embeddings import EmbeddingClient
from medtutor.models.content import KnowledgeEntry, RankedChunk
from medtutor.retrieval.similarity import cosine_similarity, keyword_score

logger = logging.getLogger(__name__)


class Ranker(Protocol):
    """Scores every chunk in an entry against a query."""

    name: str

    def rank(self, query: str, entry: KnowledgeEntry) -> List[RankedChunk]:
        ...


class KeywordRanker:
    """Keyword-overlap scoring, used when no vectors exist."""

    name = "keyword"

    def rank(self, query: str, entry: KnowledgeEntry) -> List[RankedChunk]:
        return [
            RankedChunk(index=i, text=chunk, score=float(keyword_score(query, chunk)))
            for i, chunk in enumerate(entry.chunks)
        ]


class VectorRanker:
    """Cosine similarity between the embedded query and stored vectors."""

    name = "vector"

    def __init__(self, embedder: EmbeddingClient):
        self.embedder = embedder

    def rank(self, query: str, entry: KnowledgeEntry) -> List[RankedChunk]:
        query_vector = self.embedder.embed_query(query)
        return [
            RankedChunk(index=i, text=entry.chunks[i], score=cosine_similarity(query_vector, vector))
            for i, vector in enumerate(entry.vectors)
        ]


def select_ranker(entry: KnowledgeEntry, embedder: Optional[EmbeddingClient]) -> Ranker:
    """Use vectors when the entry has them and an embedder can embed queries."""
    if entry.has_vectors and embedder is not None and embedder.is_configured:
        return VectorRanker(embedder)
    return KeywordRanker()


def retrieve(
    query: str,
    entry: KnowledgeEntry,
    ranker: Ranker,
    top_k: int,
    fallback_count: int = 3,
) -> List[RankedChunk]:
    """Top-K chunks with a positive score.

    If nothing scores above zero, the first ``fallback_count`` chunks in
    storage order are returned instead (with score 0).
    """
    ranked = ranker.rank(query, entry)
    ranked.sort(key=lambda r: r.score, reverse=True)
    results = [r for r in ranked[:top_k] if r.score > 0]

    if not results and fallback_count > 0:
        logger.debug("No %s matches for query; using first %d chunks", ranker.name, fallback_count)
        results = [RankedChunk(index=i, text=c, score=0.0) for i, c in enumerate(entry.chunks[:fallback_count])]

    return results
