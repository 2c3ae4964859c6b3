"""Tutor engine for MedTutor."""

from .engine import IngestResult, TutorEngine

__all__ = ["IngestResult", "TutorEngine"]
