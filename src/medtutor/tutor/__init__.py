"""Case-based tutoring: adaptive difficulty, evaluation and progression."""

from .adaptive import next_difficulty, steps_for_level
from .evaluator import DecisionEvaluator
from .progression import CaseSession

__all__ = ["CaseSession", "DecisionEvaluator", "next_difficulty", "steps_for_level"]
