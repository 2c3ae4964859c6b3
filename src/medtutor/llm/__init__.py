"""LLM and embedding clients for MedTutor."""

from .client import LLMClient
from .embeddings import EmbeddingClient

__all__ = ["EmbeddingClient", "LLMClient"]
