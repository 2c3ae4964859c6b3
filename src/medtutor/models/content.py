"""Content models for PDF extraction and the per-user knowledge base."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class ExtractedPage(BaseModel):
    """A single page extracted from a PDF."""

    page_number: int = Field(..., description="1-based page number")
    text: str = Field(..., description="Cleaned text content of the page")
    char_count: int = Field(default=0, description="Character count")
    word_count: int = Field(default=0, description="Word count")

    def model_post_init(self, __context: Any) -> None:
        """Calculate counts after initialization."""
        if self.char_count == 0:
            object.__setattr__(self, "char_count", len(self.text))
        if self.word_count == 0:
            object.__setattr__(self, "word_count", len(self.text.split()))


class ExtractedDocument(BaseModel):
    """An uploaded PDF after text extraction."""

    filename: str = Field(..., description="Original filename as uploaded")
    title: Optional[str] = Field(default=None, description="PDF title from metadata")
    author: Optional[str] = Field(default=None, description="PDF author from metadata")
    pages: List[ExtractedPage] = Field(default_factory=list)
    extracted_at: datetime = Field(default_factory=datetime.now, description="Extraction timestamp")

    @computed_field
    @property
    def total_pages(self) -> int:
        return len(self.pages)

    @computed_field
    @property
    def total_words(self) -> int:
        return sum(p.word_count for p in self.pages)

    @property
    def text(self) -> str:
        """Full document text, pages separated by blank lines."""
        return "\n\n".join(p.text for p in self.pages if p.text)

    @computed_field
    @property
    def short_name(self) -> str:
        """Filename without directory or extension."""
        return Path(self.filename).stem


class KnowledgeEntry(BaseModel):
    """One user's indexed knowledge: chunks plus their aligned vectors.

    Entries are frozen; an upload builds a new entry and replaces the old one.
    """

    model_config = ConfigDict(frozen=True)

    chunks: Tuple[str, ...] = ()
    vectors: Tuple[Tuple[float, ...], ...] = ()
    sources: Tuple[str, ...] = ()

    @model_validator(mode="after")
    def _check_alignment(self) -> "KnowledgeEntry":
        if self.vectors and len(self.vectors) != len(self.chunks):
            raise ValueError(
                f"Vector count ({len(self.vectors)}) does not match chunk count ({len(self.chunks)})"
            )
        return self

    @property
    def has_vectors(self) -> bool:
        return len(self.vectors) > 0

    @property
    def is_empty(self) -> bool:
        return len(self.chunks) == 0


class RankedChunk(BaseModel):
    """A chunk with its retrieval score."""

    index: int = Field(..., description="Position of the chunk in storage order")
    text: str
    score: float = 0.0
