"""Fixed-size overlapping character windows for retrieval.

Guideline PDFs are chunked into windows of ``size`` characters where each
window repeats the last ``overlap`` characters of the previous one, so a
sentence cut at a boundary still appears whole in one of the two chunks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass
class ChunkerConfig:
    """Configuration for the window chunker."""

    size: int = 1200
    overlap: int = 200

    @property
    def step(self) -> int:
        return self.size - self.overlap

    @property
    def is_valid(self) -> bool:
        return self.size > 0 and self.overlap >= 0 and self.size > self.overlap


def chunk_text(text: str, size: int = 1200, overlap: int = 200) -> List[str]:
    """Split text into overlapping windows.

    Args:
        text: Text to split.
        size: Window length in characters.
        overlap: Characters shared by consecutive windows.

    Returns:
        List of chunks. Empty if the text is empty or the configuration
        would never advance (``size <= overlap``).
    """
    config = ChunkerConfig(size=size, overlap=overlap)
    if not config.is_valid:
        logger.warning("Refusing to chunk with size=%d overlap=%d", size, overlap)
        return []

    chunks: List[str] = []
    start = 0
    while start < len(text):
        end = min(start + config.size, len(text))
        chunks.append(text[start:end])
        if end == len(text):
            break
        start += config.step
    return chunks


class WindowChunker:
    """Chunker bound to a configuration."""

    def __init__(self, config: Optional[ChunkerConfig] = None):
        self.config = config or ChunkerConfig()

    def chunk(self, text: str) -> List[str]:
        return chunk_text(text, size=self.config.size, overlap=self.config.overlap)

    def join(self, chunks: List[str]) -> str:
        """Rebuild the source text from chunks produced by :meth:`chunk`."""
        if not chunks:
            return ""
        parts = [chunks[0]]
        for chunk in chunks[1:]:
            parts.append(chunk[self.config.overlap :])
        return "".join(parts)
