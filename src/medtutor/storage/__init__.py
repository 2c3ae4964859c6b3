"""Knowledge storage for MedTutor."""

from .knowledge_store import InMemoryKnowledgeStore, KnowledgeStore

__all__ = ["InMemoryKnowledgeStore", "KnowledgeStore"]
