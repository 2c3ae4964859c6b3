"""Text chunking for MedTutor."""

from .window import ChunkerConfig, WindowChunker, chunk_text

__all__ = ["ChunkerConfig", "WindowChunker", "chunk_text"]
