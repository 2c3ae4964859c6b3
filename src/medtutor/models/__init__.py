"""Data models for MedTutor."""

from .content import ExtractedDocument, ExtractedPage, KnowledgeEntry, RankedChunk
from .tutor import (
    AdaptiveCase,
    ConversationMessage,
    PerformanceRecord,
    Step,
    StepDecision,
    StepEvaluation,
)

__all__ = [
    "AdaptiveCase",
    "ConversationMessage",
    "ExtractedDocument",
    "ExtractedPage",
    "KnowledgeEntry",
    "PerformanceRecord",
    "RankedChunk",
    "Step",
    "StepDecision",
    "StepEvaluation",
]
